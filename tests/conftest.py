"""Shared fixtures and fakes."""

import sqlite3
from types import SimpleNamespace

import pytest
from pypdf import PdfWriter

from pdfchat.credentials import CredentialStore
from pdfchat.gemini import GeminiClient
from pdfchat.kvstore import KeyValueStore
from pdfchat.models import Conversation, Message
from pdfchat.session import Session
from pdfchat.storage import ConversationStore


class BrokenKeyValueStore(KeyValueStore):
    """Every read and write fails like a broken database."""

    def get(self, key):
        raise sqlite3.OperationalError("disk I/O error")

    def set(self, key, value):
        raise sqlite3.OperationalError("disk I/O error")

    def remove(self, key):
        raise sqlite3.OperationalError("disk I/O error")


class FakeModels:
    def __init__(self, reply="An answer.", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def generate_content(self, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents})
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.reply)


class FakeAI:
    """Stands in for GeminiClient inside Session tests."""

    def __init__(self, reply="An answer.", on_query=None):
        self.reply = reply
        self.on_query = on_query
        self.document_text = None
        self.queries = []

    def set_document_text(self, text):
        self.document_text = text
        return bool(text)

    def query(self, question, prior_turns=None):
        self.queries.append((question, list(prior_turns or [])))
        if self.on_query is not None:
            self.on_query()
        return self.reply


def make_conversation(conv_id, file_name="doc.pdf", last_updated="2024-01-01T00:00:00.000Z"):
    return Conversation(
        id=conv_id,
        pdf_uri=f"file:///tmp/{file_name}",
        file_name=file_name,
        title=f"{file_name} - {conv_id}",
        messages=[Message(id="1", text="hello", is_user=False)],
        created_at=last_updated,
        last_updated=last_updated,
    )


@pytest.fixture
def kv(tmp_path):
    store = KeyValueStore(tmp_path / "store.db")
    yield store
    store.close()


@pytest.fixture
def broken_kv(tmp_path):
    store = BrokenKeyValueStore(tmp_path / "broken.db")
    yield store
    store.close()


@pytest.fixture
def store(kv):
    return ConversationStore(kv)


@pytest.fixture
def credentials(kv):
    return CredentialStore(kv)


@pytest.fixture
def fake_models():
    return FakeModels()


@pytest.fixture
def gemini(credentials, fake_models):
    return GeminiClient(
        credentials,
        model="test-model",
        client_factory=lambda api_key: SimpleNamespace(api_key=api_key, models=fake_models),
    )


@pytest.fixture
def fake_ai():
    return FakeAI()


@pytest.fixture
def session(store, fake_ai):
    return Session(store, fake_ai)


@pytest.fixture
def blank_pdf(tmp_path):
    writer = PdfWriter()
    writer.add_blank_page(width=200, height=200)
    writer.add_blank_page(width=200, height=200)
    path = tmp_path / "doc.pdf"
    with path.open("wb") as f:
        writer.write(f)
    return path
