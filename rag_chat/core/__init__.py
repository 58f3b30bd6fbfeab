"""Shared building blocks for rag-chat."""
