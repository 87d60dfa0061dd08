"""CLI interface for pdfchat."""

from __future__ import annotations

import logging
import shutil
import sys

import click

from . import __version__, config
from .credentials import CredentialStore, mask_key
from .document import DocumentError, open_document
from .gemini import GeminiClient
from .index import sort_by_recency
from .kvstore import KeyValueStore
from .models import Conversation
from .session import Session
from .storage import ConversationStore

CHAT_COMMANDS = "/new starts a new conversation, /list shows this PDF's conversations, /quit exits."


def _open_kv() -> KeyValueStore:
    return KeyValueStore(config.STORE_PATH)


def _open_session(kv: KeyValueStore) -> Session:
    return Session(ConversationStore(kv), GeminiClient(CredentialStore(kv)))


def _echo_message(text: str, is_user: bool):
    label = click.style("You" if is_user else "Sparkle AI", bold=True, fg=None if is_user else "cyan")
    click.echo(f"{label}: {text}")
    click.echo()


def _echo_conversation_line(conv: Conversation, active: bool = False):
    marker = click.style(" *", fg="green") if active else ""
    click.echo(f"  {conv.id}  {conv.title}  ({len(conv.messages)} msgs){marker}")


@click.group()
@click.version_option(version=__version__, prog_name="pdfchat")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr")
def cli(verbose: bool):
    """pdfchat — Chat with Gemini about your PDFs.

    Open a PDF, ask questions about it, and pick up the conversation
    where you left off the next time you open the same file.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


@cli.command()
@click.argument("pdf_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--new", "start_new", is_flag=True, help="Start a new conversation instead of resuming")
def chat(pdf_path: str, start_new: bool):
    """Open a PDF and chat about it.

    Example:
        pdfchat chat ~/Documents/paper.pdf
    """
    try:
        uri, name, text = open_document(pdf_path)
    except DocumentError as exc:
        raise click.ClickException(str(exc))

    kv = _open_kv()
    session = _open_session(kv)
    session.load_pdf(uri, name, text)

    if session.current_conversation is None:
        kv.close()
        raise click.ClickException(f"No text could be extracted from {name}.")
    if start_new:
        session.start_new_conversation()

    conv = session.current_conversation
    click.echo(click.style(conv.title, bold=True))
    click.echo(CHAT_COMMANDS)
    click.echo()
    for msg in conv.messages:
        _echo_message(msg.text, msg.is_user)

    try:
        while True:
            question = click.prompt("You", default="", show_default=False, prompt_suffix="> ")
            command = question.strip()
            if command == "/quit":
                break
            if command == "/new":
                conv = session.start_new_conversation()
                click.echo(f"Started {conv.title}")
                click.echo()
                continue
            if command == "/list":
                for other in session.current_pdf_conversations():
                    _echo_conversation_line(other, other.id == session.current_conversation.id)
                click.echo()
                continue

            reply = session.ask(question)
            if reply is not None:
                _echo_message(reply.text, False)
    except click.Abort:
        click.echo()
    finally:
        kv.close()


@cli.command()
@click.option("--pdf", "file_name", help="Only show conversations for this PDF file name")
def conversations(file_name: str | None):
    """List saved conversations, grouped by PDF."""
    kv = _open_kv()
    session = _open_session(kv)
    kv.close()

    names = [file_name] if file_name else sorted({c.file_name for c in session.conversations})
    if not names or not any(session.find_conversations_for_pdf(n) for n in names):
        click.echo("No conversations found.")
        return

    for name in names:
        found = sort_by_recency(session.find_conversations_for_pdf(name))
        if not found:
            continue
        click.echo(click.style(name, bold=True))
        for conv in found:
            _echo_conversation_line(conv)
        click.echo()


@cli.command()
@click.argument("conversation_id")
def show(conversation_id: str):
    """Print a conversation transcript."""
    kv = _open_kv()
    conv = ConversationStore(kv).get_by_id(conversation_id)
    kv.close()
    if conv is None:
        raise click.ClickException(f"Conversation not found: {conversation_id}")

    click.echo(click.style(conv.title, bold=True))
    click.echo(f"PDF: {conv.file_name}  Created: {conv.created_at}  Updated: {conv.last_updated}")
    click.echo()
    for msg in conv.messages:
        _echo_message(msg.text, msg.is_user)


@cli.command()
@click.argument("conversation_id")
@click.confirmation_option(prompt="Delete this conversation?")
def delete(conversation_id: str):
    """Delete a saved conversation."""
    kv = _open_kv()
    store = ConversationStore(kv)
    if store.get_by_id(conversation_id) is None:
        kv.close()
        raise click.ClickException(f"Conversation not found: {conversation_id}")
    deleted = store.delete(conversation_id)
    kv.close()
    if not deleted:
        raise click.ClickException("Failed to delete the conversation.")
    click.echo(f"Deleted {conversation_id}")


@cli.group()
def key():
    """Manage the Gemini API key."""
    pass


@key.command("set")
@click.option("--api-key", prompt="Gemini API key", hide_input=True, help="The key to store")
def key_set(api_key: str):
    """Store a Gemini API key.

    Get one at https://aistudio.google.com/apikey
    """
    api_key = api_key.strip()
    if not api_key:
        raise click.ClickException("Please enter a valid API key")

    kv = _open_kv()
    ok = GeminiClient(CredentialStore(kv)).update_api_key(api_key)
    kv.close()
    if not ok:
        raise click.ClickException("Invalid API key. Please check and try again.")
    click.echo(click.style("API key saved successfully", fg="green"))


@key.command("remove")
@click.confirmation_option(prompt="Remove the stored API key?")
def key_remove():
    """Remove the stored Gemini API key."""
    kv = _open_kv()
    ok = CredentialStore(kv).remove()
    kv.close()
    if not ok:
        raise click.ClickException("Failed to remove API key")
    click.echo("API key removed successfully")


@key.command("status")
def key_status():
    """Show whether an API key is stored."""
    kv = _open_kv()
    api_key = CredentialStore(kv).get()
    kv.close()
    if api_key:
        click.echo(f"API key set: {mask_key(api_key)}")
    else:
        click.echo("No API key set. Run: pdfchat key set")


@cli.command()
def serve():
    """Start the MCP server (stdio transport)."""
    from .server import mcp

    mcp.run(transport="stdio")


@cli.command()
@click.confirmation_option(prompt="This will delete all conversations and the API key. Are you sure?")
def reset():
    """Delete all stored data and start fresh."""
    if config.DATA_DIR.exists():
        shutil.rmtree(config.DATA_DIR)
        click.echo(f"Deleted {config.DATA_DIR}")
    else:
        click.echo("No data to delete.")
