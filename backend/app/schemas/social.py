"""Social Schemas: Pydantic request bodies for the social actions.

Invariants:
    - Text fields are stripped; whitespace-only text is rejected with 400
    - client_mutation_id is opaque to the server, bounded to 64 chars
    - Services re-validate identifiers and lengths, so these models only
      guard the HTTP boundary
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("text cannot be empty or whitespace")
    return v


class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=2000)
    parent_comment_id: int | None = Field(None, gt=0)
    client_mutation_id: str | None = Field(None, max_length=64)

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        return _strip_required(v)


class MessageCreate(BaseModel):
    text: str = Field(min_length=1, max_length=4000)
    client_mutation_id: str | None = Field(None, max_length=64)

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return _strip_required(v)


class StoryReplyCreate(MessageCreate):
    """Story reply body: same shape as a direct message."""


class DirectConversationCreate(BaseModel):
    user_id: int = Field(gt=0)


class DeviceRegister(BaseModel):
    device_id: str = Field(min_length=1, max_length=128)
    push_token: str = Field(min_length=1, max_length=256)
    platform: Literal["ios", "android", "web"] | None = None


class GroupConversationCreate(BaseModel):
    participant_ids: list[int] = Field(min_length=1, max_length=49)
    name: str | None = Field(None, max_length=100)
