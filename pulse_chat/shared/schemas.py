"""Pydantic schemas for REST bodies and push-channel payloads."""
from typing import List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class UserOut(WireModel):
    username: str


class MessageRecord(WireModel):
    """A message as the server sends it, in history and in live events."""

    id: str = Field(alias="_id")
    sender_username: str = Field(alias="senderUsername")
    receiver_username: str = Field(alias="receiverUsername")
    body: str = Field(alias="message")
    sent_at: Union[str, int, float, None] = Field(default=None, alias="time")

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("id")
    @classmethod
    def _non_empty_id(cls, value: str) -> str:
        if not value:
            raise ValueError("message id must not be empty")
        return value


class HistoryResponse(WireModel):
    success: bool
    data: List[MessageRecord] = Field(default_factory=list)


class PrivateMessageOut(WireModel):
    receiver_id: str = Field(alias="receiverId")
    content: str
    type: Literal["text"] = "text"


class RegisterRequest(WireModel):
    email: str
    username: str
    password: str


class LoginRequest(WireModel):
    email: str
    password: str


class LoginResponse(WireModel):
    token: str = Field(min_length=1)
    username: str = Field(min_length=1)
