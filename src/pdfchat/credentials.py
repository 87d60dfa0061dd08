"""Storage for the user's Gemini API key."""

from __future__ import annotations

import logging
import sqlite3

from .config import API_KEY_STORAGE_KEY
from .kvstore import KeyValueStore

logger = logging.getLogger(__name__)

STORAGE_ERRORS = (sqlite3.Error, OSError)


class CredentialStore:
    """Keeps a single API key under a fixed storage key. No encryption."""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def get(self) -> str | None:
        try:
            return self.kv.get(API_KEY_STORAGE_KEY)
        except STORAGE_ERRORS:
            logger.error("Error getting API key", exc_info=True)
            return None

    def save(self, api_key: str | None) -> bool:
        """Store ``api_key``; an empty key removes the stored one."""
        if not api_key:
            return self.remove()
        try:
            self.kv.set(API_KEY_STORAGE_KEY, api_key)
            return True
        except STORAGE_ERRORS:
            logger.error("Error saving API key", exc_info=True)
            return False

    def remove(self) -> bool:
        try:
            self.kv.remove(API_KEY_STORAGE_KEY)
            return True
        except STORAGE_ERRORS:
            logger.error("Error removing API key", exc_info=True)
            return False


def mask_key(api_key: str | None) -> str:
    return "•" * min(len(api_key or ""), 20)
