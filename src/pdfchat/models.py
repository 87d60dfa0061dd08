"""Data models for persisted conversations."""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 string; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    text: str
    is_user: bool = Field(alias="isUser")


class Conversation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    pdf_uri: str | None = Field(default=None, alias="pdfUri")
    file_name: str = Field(alias="fileName")
    title: str
    messages: list[Message] = []
    created_at: str = Field(alias="createdAt")
    last_updated: str = Field(alias="lastUpdated")


def new_conversation_id() -> str:
    return uuid.uuid4().hex


def new_message_id(existing: list[Message]) -> str:
    """Millisecond clock reading, bumped until unique within ``existing``."""
    taken = {m.id for m in existing}
    candidate = time.time_ns() // 1_000_000
    while str(candidate) in taken:
        candidate += 1
    return str(candidate)
