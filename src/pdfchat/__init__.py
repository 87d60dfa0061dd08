"""pdfchat — Chat with Gemini about your PDFs."""

__version__ = "0.1.0"
