"""Derived view from PDF display name to its conversations."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from .models import Conversation, parse_timestamp

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def find_conversations_for_pdf(
    conversations: list[Conversation], pdf_identity: str | None
) -> list[Conversation]:
    """Conversations whose file name equals ``pdf_identity`` exactly.

    An empty or missing identity matches nothing.
    """
    if not pdf_identity:
        return []
    return [c for c in conversations if c.file_name == pdf_identity]


def _last_updated(conv: Conversation) -> datetime:
    try:
        return parse_timestamp(conv.last_updated)
    except ValueError:
        logger.warning("Conversation %s has an unreadable lastUpdated: %r", conv.id, conv.last_updated)
        return _EPOCH


def sort_by_recency(conversations: list[Conversation]) -> list[Conversation]:
    """Most recently updated first; ties keep their stored order."""
    return sorted(conversations, key=_last_updated, reverse=True)


def most_recent(conversations: list[Conversation]) -> Conversation | None:
    ordered = sort_by_recency(conversations)
    return ordered[0] if ordered else None
