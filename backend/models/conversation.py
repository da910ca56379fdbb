"""Conversation data models."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Sender(str, Enum):
    """Author of a chat message."""
    USER = "user"
    AI = "ai"


@dataclass
class Message:
    """Represents a single message in a session's chat history."""
    message_id: str
    text: str
    sender: Sender
    timestamp: datetime
