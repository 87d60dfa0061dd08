"""Gemini client answering questions about the loaded document."""

from __future__ import annotations

import logging
from typing import Any, Callable

from google import genai
from google.genai import errors
from google.genai.types import Content, Part

from .config import (
    GEMINI_MODEL,
    GENERIC_FAILURE_ANSWER,
    INVALID_KEY_ANSWER,
    MISSING_CONTENT_ANSWER,
    MISSING_KEY_ANSWER,
)
from .credentials import CredentialStore
from .models import Message

logger = logging.getLogger(__name__)


def format_history(prior_turns: list[Message]) -> str:
    return "\n\n".join(
        f"{'User' if m.is_user else 'Assistant'}: {m.text}" for m in prior_turns
    )


def build_prompt(document_text: str, question: str, prior_turns: list[Message]) -> str:
    history = format_history(prior_turns)
    sections = [f"I have the following PDF content:\n{document_text}"]
    if history:
        sections.append(f"Here is our conversation so far:\n{history}")
    sections.append(
        "Based on this PDF content and our conversation history, "
        f"please answer the following question:\n{question}"
    )
    return "\n\n".join(sections)


def _is_key_error(exc: Exception) -> bool:
    if isinstance(exc, errors.ClientError) and exc.code in (401, 403):
        return True
    return "API key" in str(exc)


class GeminiClient:
    """Stateless per query; holds the current document text and the SDK client.

    Every failure comes back as a human-readable answer string rather than an
    exception, so it can be shown in the transcript like any other reply.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        model: str = GEMINI_MODEL,
        client_factory: Callable[..., Any] = genai.Client,
    ):
        self.credentials = credentials
        self.model = model
        self._client_factory = client_factory
        self._client: Any = None
        self.document_text: str | None = None

    @property
    def initialized(self) -> bool:
        return self._client is not None

    def initialize(self) -> bool:
        """Build the SDK client from the stored key."""
        api_key = self.credentials.get()
        if not api_key:
            logger.warning("No Gemini API key found in storage")
            self._client = None
            return False
        try:
            self._client = self._client_factory(api_key=api_key)
        except Exception:
            logger.error("Error initializing Gemini client", exc_info=True)
            self._client = None
            return False
        logger.debug("Gemini client initialized (key length %d)", len(api_key))
        return True

    def update_api_key(self, api_key: str) -> bool:
        if not api_key:
            logger.warning("Attempted to update with empty API key")
            return False
        if not self.credentials.save(api_key):
            return False
        return self.initialize()

    def set_document_text(self, text: str | None) -> bool:
        """Load document text into the query slot. Returns whether it is non-empty."""
        self.document_text = text
        logger.debug("Document text set (%d chars)", len(text or ""))
        return bool(text)

    def query(self, question: str, prior_turns: list[Message] | None = None) -> str:
        """Answer ``question`` about the document currently in the slot."""
        return self.answer(self.document_text, question, prior_turns or [])

    def answer(
        self,
        document_text: str | None,
        question: str,
        prior_turns: list[Message],
    ) -> str:
        if not self.initialized and not self.initialize():
            return MISSING_KEY_ANSWER

        if not document_text:
            logger.warning("No PDF content loaded")
            return MISSING_CONTENT_ANSWER

        prompt = build_prompt(document_text, question, prior_turns)
        logger.debug(
            "Querying %s (prompt %d chars, %d prior turns)",
            self.model, len(prompt), len(prior_turns),
        )

        try:
            response = self._client.models.generate_content(
                model=self.model,
                contents=[Content(role="user", parts=[Part(text=prompt)])],
            )
            text = (response.text or "").strip()
        except Exception as exc:
            logger.error("Gemini request failed", exc_info=True)
            if _is_key_error(exc):
                return INVALID_KEY_ANSWER
            return GENERIC_FAILURE_ANSWER

        if not text:
            logger.warning("Gemini returned an empty response")
            return GENERIC_FAILURE_ANSWER
        return text
