"""foreman - supervisor for a long-lived assistant and its mini-goal workers."""

__version__ = "0.1.0"
__logo__ = "🛠"
