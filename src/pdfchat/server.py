"""FastMCP server exposing the PDF chat session as tools."""

from __future__ import annotations

import logging
import sys

from mcp.server.fastmcp import FastMCP

from .config import STORE_PATH
from .credentials import CredentialStore
from .document import DocumentError, open_document
from .gemini import GeminiClient
from .kvstore import KeyValueStore
from .models import Conversation
from .session import Session
from .storage import ConversationStore

# Logging goes to stderr; stdout is the MCP JSON-RPC transport
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)

mcp = FastMCP(
    "pdfchat",
    instructions=(
        "Chat with Gemini about a local PDF. "
        "Use open_pdf to load a document and resume its latest conversation. "
        "Use ask to ask a question about the open document. "
        "Use list_conversations, new_conversation, select_conversation and "
        "delete_conversation to manage the document's chat history."
    ),
)

# One session for the lifetime of the server process
_session: Session | None = None


def _get_session() -> Session:
    global _session
    if _session is None:
        kv = KeyValueStore(STORE_PATH)
        _session = Session(ConversationStore(kv), GeminiClient(CredentialStore(kv)))
    return _session


def _format_conversation(conv: Conversation, active: bool) -> str:
    marker = " (active)" if active else ""
    return (
        f"- **{conv.title}**{marker}\n"
        f"  ID: `{conv.id}` | {len(conv.messages)} msgs | Updated: {conv.last_updated}"
    )


def _check_pdf_open(session: Session) -> str | None:
    if not session.file_name:
        return "No PDF is open. Use open_pdf(path) first."
    return None


@mcp.tool()
def open_pdf(path: str) -> str:
    """Open a PDF, extract its text and resume (or start) its conversation.

    Args:
        path: Path to a PDF file on this machine
    """
    session = _get_session()
    try:
        uri, name, text = open_document(path)
    except DocumentError as exc:
        return f"Could not open PDF: {exc}"

    session.load_conversations()
    session.load_pdf(uri, name, text)
    conv = session.current_conversation
    if not session.pdf_content or conv is None:
        return f"Opened {name}, but no text could be extracted from it."

    return (
        f"Opened **{name}** ({len(text):,} chars of text).\n"
        f"Active conversation: {conv.title} (`{conv.id}`), {len(conv.messages)} messages."
    )


@mcp.tool()
def ask(question: str) -> str:
    """Ask Gemini a question about the open PDF, continuing the active conversation.

    Args:
        question: The question to ask
    """
    session = _get_session()
    err = _check_pdf_open(session)
    if err:
        return err

    reply = session.ask(question)
    if reply is None:
        if session.guard.busy:
            return "A question is already being answered. Please wait."
        return "Nothing was asked (empty question or no active conversation)."
    return reply.text


@mcp.tool()
def list_conversations() -> str:
    """List the conversations of the open PDF, most recently updated first."""
    session = _get_session()
    err = _check_pdf_open(session)
    if err:
        return err

    session.load_conversations()
    conversations = session.current_pdf_conversations()
    if not conversations:
        return f"No conversations for {session.file_name}."

    current = session.current_conversation
    lines = [f"Conversations for {session.file_name}:\n"]
    for conv in conversations:
        lines.append(_format_conversation(conv, current is not None and conv.id == current.id))
    return "\n".join(lines)


@mcp.tool()
def get_conversation(conversation_id: str) -> str:
    """Show a stored conversation transcript.

    Args:
        conversation_id: The conversation ID (from list_conversations)
    """
    conv = _get_session().store.get_by_id(conversation_id)
    if conv is None:
        return f"Conversation not found: {conversation_id}"

    lines = [f"# {conv.title}", f"PDF: {conv.file_name}", "", "---", ""]
    for msg in conv.messages:
        lines.append(f"**{'User' if msg.is_user else 'Sparkle AI'}**:")
        lines.append(msg.text)
        lines.append("")
    return "\n".join(lines)


@mcp.tool()
def new_conversation() -> str:
    """Start a fresh conversation for the open PDF and make it active."""
    session = _get_session()
    err = _check_pdf_open(session)
    if err:
        return err

    conv = session.start_new_conversation()
    return f"Started {conv.title} (`{conv.id}`)."


@mcp.tool()
def select_conversation(conversation_id: str) -> str:
    """Make another conversation of the open PDF the active one.

    Args:
        conversation_id: The conversation ID (from list_conversations)
    """
    session = _get_session()
    err = _check_pdf_open(session)
    if err:
        return err

    conv = session.select_conversation(conversation_id)
    if conv is None:
        return f"No conversation `{conversation_id}` for {session.file_name}."
    return f"Active conversation: {conv.title} (`{conv.id}`)."


@mcp.tool()
def delete_conversation(conversation_id: str) -> str:
    """Delete a conversation. The PDF stays open.

    Args:
        conversation_id: The conversation ID (from list_conversations)
    """
    session = _get_session()
    if not session.delete_conversation(conversation_id):
        return "Could not delete the conversation (storage error)."

    current = session.current_conversation
    if current is None:
        return "Deleted. No conversation is active for this PDF."
    return f"Deleted. Active conversation: {current.title} (`{current.id}`)."
