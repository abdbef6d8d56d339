from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal
from uuid import uuid4


Role = Literal["user", "assistant"]


def _new_id() -> str:
    return uuid4().hex


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Message:
    """One transcript entry. Image bytes are kept for display only and are
    never sent to the generator."""

    role: Role
    text: str
    image: bytes | None = None
    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=_utc_now)

    @classmethod
    def user(cls, text: str) -> Message:
        return cls(role="user", text=text)

    @classmethod
    def assistant(cls, text: str) -> Message:
        return cls(role="assistant", text=text)

    @classmethod
    def user_image(cls, data: bytes, caption: str = "") -> Message:
        return cls(role="user", text=caption, image=data)

    @classmethod
    def assistant_image(cls, data: bytes, caption: str = "") -> Message:
        return cls(role="assistant", text=caption, image=data)

    @property
    def is_user(self) -> bool:
        return self.role == "user"

    @property
    def has_image(self) -> bool:
        return self.image is not None


@dataclass(frozen=True, slots=True)
class Thread:
    """An archived, read-only conversation."""

    title: str
    messages: tuple[Message, ...]
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utc_now)
