"""Client-side models for identity, contact and message display."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from ..shared.schemas import MessageRecord
from ..shared.utils import avatar_url, format_display_time


@dataclass(frozen=True)
class Identity:
    username: str
    token: str

    def is_valid(self) -> bool:
        return bool(self.username) and bool(self.token)


class Presence(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


@dataclass
class Contact:
    name: str
    avatar_url: str
    status: Presence = Presence.OFFLINE
    last_message_preview: str = ""
    last_message_time: str = ""

    @classmethod
    def from_username(cls, username: str) -> "Contact":
        return cls(name=username, avatar_url=avatar_url(username))


@dataclass(frozen=True)
class ChatMessage:
    id: str
    sender_username: str
    receiver_username: str
    body: str
    sent_at: Union[str, int, float, None]
    display_time: str = field(default="", compare=False)

    @classmethod
    def from_record(cls, record: MessageRecord) -> "ChatMessage":
        """Build a display message; the display time is derived here."""
        return cls(
            id=record.id,
            sender_username=record.sender_username,
            receiver_username=record.receiver_username,
            body=record.body,
            sent_at=record.sent_at,
            display_time=format_display_time(record.sent_at),
        )

    def is_from(self, username: str) -> bool:
        return self.sender_username == username
