"""Conversation storage on top of the key-value store.

The whole collection lives as one JSON array under a single key. Every
operation is a full read-modify-write of that array, so two writers racing
each other end with the last one's snapshot (no locking, no versioning).
Storage and decoding failures are logged and turned into empty/False/None
results; nothing is raised to the caller. A collection that cannot be read
is never overwritten.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import NamedTuple

from pydantic import TypeAdapter, ValidationError

from .config import CONVERSATIONS_STORAGE_KEY, SEED_MESSAGE
from .kvstore import KeyValueStore
from .models import Conversation, Message, new_conversation_id, utc_now_iso

logger = logging.getLogger(__name__)

STORAGE_ERRORS = (sqlite3.Error, OSError, ValidationError, ValueError)

_collection = TypeAdapter(list[Conversation])


class LoadResult(NamedTuple):
    """Conversations read from storage; ``ok`` is False if the read failed."""

    conversations: list[Conversation]
    ok: bool


class ConversationStore:
    """Durable list of conversations, keyed by conversation id."""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def load(self) -> LoadResult:
        try:
            raw = self.kv.get(CONVERSATIONS_STORAGE_KEY)
            if raw is None:
                return LoadResult([], True)
            return LoadResult(_collection.validate_json(raw), True)
        except STORAGE_ERRORS:
            logger.error("Error getting conversations", exc_info=True)
            return LoadResult([], False)

    def list_all(self) -> list[Conversation]:
        return self.load().conversations

    def get_by_id(self, conversation_id: str) -> Conversation | None:
        for conv in self.list_all():
            if conv.id == conversation_id:
                return conv
        return None

    def save(self, conversation: Conversation) -> bool:
        """Replace the record with the same id, or append a new one."""
        loaded = self.load()
        if not loaded.ok:
            logger.error("Not saving conversation %s: stored collection is unreadable", conversation.id)
            return False
        conversations = loaded.conversations
        for idx, conv in enumerate(conversations):
            if conv.id == conversation.id:
                conversations[idx] = conversation
                break
        else:
            conversations.append(conversation)
        return self._write(conversations, "saving conversation")

    def delete(self, conversation_id: str) -> bool:
        loaded = self.load()
        if not loaded.ok:
            logger.error("Not deleting conversation %s: stored collection is unreadable", conversation_id)
            return False
        conversations = [c for c in loaded.conversations if c.id != conversation_id]
        return self._write(conversations, "deleting conversation")

    def create_new(self, pdf_identity: str, pdf_location: str | None) -> Conversation:
        """Build a fresh conversation with a greeting. Not persisted."""
        now = utc_now_iso()
        return Conversation(
            id=new_conversation_id(),
            pdf_uri=pdf_location,
            file_name=pdf_identity,
            title=f"{pdf_identity} - {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            messages=[Message(id="1", text=SEED_MESSAGE, is_user=False)],
            created_at=now,
            last_updated=now,
        )

    def _write(self, conversations: list[Conversation], action: str) -> bool:
        try:
            payload = _collection.dump_json(conversations, by_alias=True).decode("utf-8")
            self.kv.set(CONVERSATIONS_STORAGE_KEY, payload)
            return True
        except STORAGE_ERRORS:
            logger.error("Error %s", action, exc_info=True)
            return False
