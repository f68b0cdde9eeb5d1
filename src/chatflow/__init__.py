"""Ingest shared ChatGPT conversations and split them into categorised flows."""

__version__ = "0.1.0"
