"""Central configuration for paths and constants."""

import os
from pathlib import Path

# Data directory, overridable with the PDFCHAT_DATA_DIR env var
DATA_DIR = Path(os.environ.get("PDFCHAT_DATA_DIR", str(Path.home() / ".pdfchat")))

# Key-value store file
STORE_PATH = DATA_DIR / "store.db"

# Storage keys
API_KEY_STORAGE_KEY = "gemini_api_key"
CONVERSATIONS_STORAGE_KEY = "pdf_chat_conversations"

# Gemini
GEMINI_MODEL = os.environ.get("PDFCHAT_GEMINI_MODEL", "gemini-2.0-flash")

# First message of every new conversation
SEED_MESSAGE = "Hello, I'm Sparkle AI. Ask me questions about the PDF content."

# Prefix written before each page of extracted text
PAGE_MARKER = "[Page {number}]"

# Answers shown in the transcript when a query cannot be made
MISSING_KEY_ANSWER = (
    "Please set your Gemini API key (pdfchat key set) before using the chat feature."
)
MISSING_CONTENT_ANSWER = "No PDF content loaded. Please open a PDF first."
INVALID_KEY_ANSWER = (
    "Invalid API key. Please check your Gemini API key (pdfchat key set)."
)
GENERIC_FAILURE_ANSWER = (
    "Sorry, I encountered an error processing your request. Please try again."
)
