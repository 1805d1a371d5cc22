"""Entry point for ``python -m foreman``."""

from foreman.cli.commands import app

if __name__ == "__main__":
    app()
