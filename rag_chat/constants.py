"""Default configuration settings for the rag-chat package."""

from __future__ import annotations

# --- Chat Model Configuration ---
DEFAULT_OLLAMA_MODEL = "qwen3:8b"
DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"
DEFAULT_DEEPSEEK_MODEL = "deepseek-chat"
DEFAULT_DEEPSEEK_BASE_URL = "https://api.deepseek.com"
DEFAULT_TEMPERATURE = 0.7

DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant."
DEFAULT_SYSTEM_PROMPT_PATH = "static/SYSTEM_PROMPT.md"

# --- Embedding Configuration ---
DEFAULT_EMBEDDING_TYPE = "ollama"
DEFAULT_OLLAMA_EMBEDDING_MODEL = "nomic-embed-text"
DEFAULT_OPENAI_EMBEDDING_MODEL = "text-embedding-3-small"

# --- Vector Store Configuration ---
DEFAULT_CHROMA_HOST = "localhost"
DEFAULT_CHROMA_PORT = 8000
DEFAULT_COLLECTION_NAME = "rag-documents"
DEFAULT_TOP_K = 4

# --- Ingestion ---
DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200
INGEST_CHUNK_SIZE = 500
INGEST_CHUNK_OVERLAP = 100
DEFAULT_DOCUMENTS_PATH = "static/documents/index.json"

# --- Server ---
DEFAULT_SERVER_HOST = "0.0.0.0"  # noqa: S104
DEFAULT_SERVER_PORT = 3000

# --- Tools ---
TOOL_TIMEZONE = "Asia/Shanghai"
WEATHER_API_URL = "https://uapis.cn/api/v1/misc/weather"
