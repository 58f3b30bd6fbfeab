"""Retrieval, embedding, storage and ingestion for the chat server."""
