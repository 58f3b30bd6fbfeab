"""Pydantic models for service configuration and config file loading."""

from __future__ import annotations

import logging
import os
import re
import tomllib
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from rich.console import Console

from rag_chat import constants

console = Console()
LOGGER = logging.getLogger(__name__)

EmbeddingType = Literal["openai", "ollama"]

# --- Config File Loading ---

CONFIG_PATH = Path.home() / ".config" / "rag-chat" / "config.toml"
CONFIG_PATH_2 = Path("rag-chat-config.toml")


def _replace_dashed_keys(cfg: dict[str, Any]) -> dict[str, Any]:
    """Replace dashed keys with underscores in the config options."""
    return {k.replace("-", "_"): v for k, v in cfg.items()}


def load_config(config_path_str: str | None = None) -> dict[str, Any]:
    """Load the TOML configuration file and process it for nested structures."""
    if config_path_str:
        config_path = Path(config_path_str)
    elif CONFIG_PATH.exists():
        config_path = CONFIG_PATH
    elif CONFIG_PATH_2.exists():
        config_path = CONFIG_PATH_2
    else:
        return {}

    if config_path.exists():
        try:
            with config_path.open("rb") as f:
                cfg = tomllib.load(f)
                return {k: _replace_dashed_keys(v) for k, v in cfg.items()}
        except tomllib.TOMLDecodeError as e:
            console.print(
                f"[bold red]Error parsing config file {config_path}: {e}[/bold red]",
            )
            return {}

    # Report error only if an explicit path was given
    if config_path_str:
        console.print(
            f"[bold red]Config file not found at {config_path_str}[/bold red]",
        )
    return {}


# --- Environment Helpers ---


def _env_str(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    return value if value else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        msg = f"Environment variable {name} must be an integer, got {value!r}"
        raise ValueError(msg) from None


def _env_bool(name: str, *, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() not in {"0", "false", "no", "off"}


# --- System Prompt ---

_MARKDOWN_HEADER = re.compile(r"^#+\s+.*$", re.MULTILINE)


def load_system_prompt(path: Path | str | None = None) -> str:
    """Load the system prompt from a markdown file.

    Header lines are dropped and only the body text is kept. Falls back to
    ``DEFAULT_SYSTEM_PROMPT`` when the file cannot be read.
    """
    prompt_path = Path(
        path
        or _env_str("SYSTEM_PROMPT_PATH", constants.DEFAULT_SYSTEM_PROMPT_PATH)
        or constants.DEFAULT_SYSTEM_PROMPT_PATH,
    )
    try:
        text = prompt_path.read_text(encoding="utf-8")
    except OSError:
        LOGGER.warning("Failed to load %s, using default prompt", prompt_path)
        return constants.DEFAULT_SYSTEM_PROMPT
    return _MARKDOWN_HEADER.sub("", text).strip()


# --- Pydantic Models for Configuration ---


class ChatModelConfig(BaseModel):
    """Configuration for an OpenAI-compatible chat backend."""

    provider: Literal["ollama", "deepseek"] = "ollama"
    model: str
    base_url: str
    api_key: str | None = None
    temperature: float = constants.DEFAULT_TEMPERATURE

    @classmethod
    def ollama_from_env(cls) -> ChatModelConfig:
        """Build the local Ollama configuration from the environment."""
        return cls(
            provider="ollama",
            model=_env_str("OLLAMA_MODEL", constants.DEFAULT_OLLAMA_MODEL),  # type: ignore[arg-type]
            base_url=_env_str("OLLAMA_BASE_URL", constants.DEFAULT_OLLAMA_BASE_URL),  # type: ignore[arg-type]
        )

    @classmethod
    def deepseek_from_env(cls) -> ChatModelConfig:
        """Build the DeepSeek configuration from the environment.

        Raises:
            ValueError: If ``DEEP_SEEK_API_KEY`` is not set.

        """
        api_key = _env_str("DEEP_SEEK_API_KEY")
        if not api_key:
            msg = "DEEP_SEEK_API_KEY is not set"
            raise ValueError(msg)
        return cls(
            provider="deepseek",
            model=_env_str("DEEPSEEK_MODEL", constants.DEFAULT_DEEPSEEK_MODEL),  # type: ignore[arg-type]
            base_url=constants.DEFAULT_DEEPSEEK_BASE_URL,
            api_key=api_key,
        )


class RetrievalChainOptions(BaseModel):
    """Where and how to run a similarity search."""

    model_config = ConfigDict(validate_default=True)

    collection_name: str = Field(
        default_factory=lambda: _env_str("CHROMA_COLLECTION", constants.DEFAULT_COLLECTION_NAME),
    )
    embedding_type: EmbeddingType = Field(
        default_factory=lambda: _env_str("EMBEDDING_TYPE", constants.DEFAULT_EMBEDDING_TYPE),
    )
    k: int = Field(default_factory=lambda: _env_int("RAG_K", constants.DEFAULT_TOP_K), gt=0)
    chroma_host: str = Field(
        default_factory=lambda: _env_str("CHROMA_HOST", constants.DEFAULT_CHROMA_HOST),
    )
    chroma_port: int = Field(
        default_factory=lambda: _env_int("CHROMA_PORT", constants.DEFAULT_CHROMA_PORT),
    )
    embedding_model: str | None = Field(default_factory=lambda: _env_str("EMBEDDING_MODEL"))
    embedding_api_key: str | None = None
    embedding_base_url: str | None = None

    @field_validator("embedding_type", mode="before")
    @classmethod
    def _lowercase_embedding_type(cls, v: str) -> str:
        return v.lower() if isinstance(v, str) else v

    def store_options(self) -> StoreOptions:
        """Connection and embedding settings for the vector store adapter."""
        return StoreOptions(
            host=self.chroma_host,
            port=self.chroma_port,
            api_key=self.embedding_api_key,
            model=self.embedding_model,
            base_url=self.embedding_base_url,
        )


class RAGOptions(RetrievalChainOptions):
    """Retrieval options plus the toggles that decide when retrieval runs."""

    enable_rag: bool = Field(default_factory=lambda: _env_bool("RAG_ENABLED", default=True))
    rag_threshold: int = Field(default_factory=lambda: _env_int("RAG_THRESHOLD", 0), ge=0)


class StoreOptions(BaseModel):
    """Vector store location and embedding provider credentials."""

    host: str | None = None
    port: int | None = None
    api_key: str | None = None
    model: str | None = None
    base_url: str | None = None

    def resolved_host(self) -> str:
        """Host with environment fallback."""
        return self.host or _env_str("CHROMA_HOST", constants.DEFAULT_CHROMA_HOST)  # type: ignore[return-value]

    def resolved_port(self) -> int:
        """Port with environment fallback."""
        return self.port or _env_int("CHROMA_PORT", constants.DEFAULT_CHROMA_PORT)


class Settings(BaseModel):
    """Everything the HTTP app needs, resolved once at startup."""

    chat: ChatModelConfig = Field(default_factory=ChatModelConfig.ollama_from_env)
    rag: RAGOptions = Field(default_factory=RAGOptions)
    system_prompt: str = constants.DEFAULT_SYSTEM_PROMPT

    @classmethod
    def from_env(cls, system_prompt_path: Path | str | None = None) -> Settings:
        """Resolve settings from the environment and the system prompt file."""
        return cls(system_prompt=load_system_prompt(system_prompt_path))
