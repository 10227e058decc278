"""Conversation data models."""
from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Author of a conversation turn."""
    USER = "user"
    MODEL = "model"


@dataclass(frozen=True)
class ConversationTurn:
    """A single message in the active document session."""
    role: Role
    content: str
