"""Event types for the restart channel."""

from dataclasses import dataclass
from enum import Enum


class RestartReason(str, Enum):
    topic = "topic"  # Classifier judged the new instruction a fresh topic
    size = "size"  # Main session log over the size ceiling at prompt submit
    continue_ = "continue"  # Same, detected while dispatching a mini goal


@dataclass(frozen=True)
class RestartRequest:
    """Ask the supervisor to relaunch the assistant with *carried_prompt*."""

    reason: RestartReason
    carried_prompt: str
