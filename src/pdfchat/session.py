"""Session state: the open PDF, its active conversation, and the chat flow."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager

from .gemini import GeminiClient
from .index import find_conversations_for_pdf, most_recent, sort_by_recency
from .models import Conversation, Message, new_message_id, utc_now_iso
from .storage import ConversationStore

logger = logging.getLogger(__name__)


class RequestGuard:
    """Single slot: at most one AI request in flight per session."""

    def __init__(self):
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def hold(self):
        """Yield True if the slot was taken, False if a request is already running."""
        acquired = self._lock.acquire(blocking=False)
        try:
            yield acquired
        finally:
            if acquired:
                self._lock.release()


class Session:
    """Owns everything the chat surface shows.

    The active conversation, when set, belongs to the loaded PDF's file name.
    ``clear_pdf`` is the one exception: it keeps the conversation so the same
    PDF can be resumed later.
    """

    def __init__(self, store: ConversationStore, ai: GeminiClient):
        self.store = store
        self.ai = ai
        self.pdf_uri: str | None = None
        self.file_name: str = ""
        self.pdf_content: str | None = None
        self.current_conversation: Conversation | None = None
        self.conversations: list[Conversation] = []
        self.guard = RequestGuard()
        self.load_conversations()

    def load_conversations(self) -> list[Conversation]:
        self.conversations = self.store.list_all()
        return self.conversations

    def find_conversations_for_pdf(self, pdf_identity: str | None) -> list[Conversation]:
        return find_conversations_for_pdf(self.conversations, pdf_identity)

    def current_pdf_conversations(self) -> list[Conversation]:
        return sort_by_recency(self.find_conversations_for_pdf(self.file_name))

    def load_pdf(self, uri: str, file_name: str, content: str | None):
        self.pdf_uri = uri
        self.file_name = file_name
        self.pdf_content = content
        self.ai.set_document_text(content)

        if not content:
            current = self.current_conversation
            if current is not None and current.file_name != file_name:
                self.current_conversation = None
            return

        existing = self.find_conversations_for_pdf(file_name)
        if existing:
            self.current_conversation = most_recent(existing)
            logger.info(
                "Resuming conversation %s for %s", self.current_conversation.id, file_name
            )
        else:
            self._start_conversation()

    def clear_pdf(self):
        self.pdf_uri = None
        self.file_name = ""
        self.pdf_content = None
        self.ai.set_document_text(None)

    def start_new_conversation(self) -> Conversation | None:
        if not self.file_name:
            logger.warning("Cannot start a conversation without a loaded PDF")
            return None
        return self._start_conversation()

    def select_conversation(self, conversation_id: str) -> Conversation | None:
        for conv in self.find_conversations_for_pdf(self.file_name):
            if conv.id == conversation_id:
                self.current_conversation = conv
                return conv
        logger.warning(
            "Conversation %s does not belong to %r", conversation_id, self.file_name
        )
        return None

    def delete_conversation(self, conversation_id: str) -> bool:
        deleted = self.store.delete(conversation_id)
        self.load_conversations()

        current = self.current_conversation
        if current is not None and current.id == conversation_id:
            remaining = self.find_conversations_for_pdf(current.file_name)
            self.current_conversation = most_recent(remaining)
        return deleted

    def update_current_conversation(self, messages: list[Message]):
        if self.current_conversation is None:
            return
        updated = self.current_conversation.model_copy(
            update={"messages": list(messages), "last_updated": utc_now_iso()}
        )
        self.store.save(updated)
        self.current_conversation = updated
        self.load_conversations()

    def ask(self, question: str) -> Message | None:
        """Send ``question`` and record the answer.

        Returns the assistant message, or None when nothing was asked: blank
        question, no active conversation, a request already in flight, or the
        conversation changed while the answer was pending.
        """
        question = question.strip()
        if not question:
            return None

        with self.guard.hold() as acquired:
            if not acquired:
                logger.warning("A request is already in flight; ignoring %r", question)
                return None
            if self.current_conversation is None:
                logger.warning("No active conversation")
                return None

            conversation_id = self.current_conversation.id
            prior = list(self.current_conversation.messages)
            user_message = Message(id=new_message_id(prior), text=question, is_user=True)
            self.update_current_conversation(prior + [user_message])

            answer = self.ai.query(question, prior)

            current = self.current_conversation
            if current is None or current.id != conversation_id:
                logger.info("Discarding answer for inactive conversation %s", conversation_id)
                return None

            reply = Message(id=new_message_id(current.messages), text=answer, is_user=False)
            self.update_current_conversation(current.messages + [reply])
            return reply

    def _start_conversation(self) -> Conversation:
        conv = self.store.create_new(self.file_name, self.pdf_uri)
        self.store.save(conv)
        self.current_conversation = conv
        self.load_conversations()
        logger.info("Started conversation %s for %s", conv.id, self.file_name)
        return conv
