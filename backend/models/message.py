from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime


class MessageCreate(BaseModel):
    receiver_id: str
    content: str
    order_id: Optional[str] = None
    attachments: List[str] = []


class Message(BaseModel):
    id: str
    sender_id: str
    receiver_id: str
    order_id: Optional[str] = None
    content: str
    attachments: List[str] = []
    timestamp: datetime
    read: bool = False

    @classmethod
    def from_row(cls, row: dict) -> "Message":
        data = dict(row)
        data["attachments"] = row.get("attachments") or []
        return cls(**data)


def conversation_id(a: str, b: str) -> str:
    """Participants are unordered: (a, b) and (b, a) share one conversation."""
    first, second = sorted((a, b))
    return f"{first}:{second}"


class Conversation(BaseModel):
    id: str
    participants: List[str]
    last_message: Optional[Message] = None
    order_id: Optional[str] = None
    unread_count: int = 0
