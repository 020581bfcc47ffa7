"""Application settings loaded from environment variables via pydantic-settings.

Settings are read from two sources, in priority order:

  1. **Environment variables** -- e.g. ``OPENAI_API_KEY=sk-abc123``
  2. **.env file** -- key=value lines in the project root ``.env`` file

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY`` (pydantic-settings
uppercases and matches).  Defaults apply when neither source sets a value.

An empty string means "not configured": provider selection in
``coursekb.main`` skips providers whose credentials or endpoints are empty,
and the API answers 503 for operations that need them.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """coursekb application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Embedding provider ===
    # "openai" (OpenAI or any OpenAI-compatible API) or "nomic" (local Ollama).
    embedding_provider: str = "openai"
    openai_api_key: str = ""
    openai_base_url: str = ""  # Custom base URL for OpenAI-compatible APIs
    openai_embedding_model: str = "text-embedding-ada-002"
    ollama_base_url: str = "http://localhost:11434"

    # === Vector store (ChromaDB) ===
    # When chromadb_host is set the service talks to a remote Chroma server;
    # otherwise an embedded persistent client writes to chromadb_persist_dir.
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_host: str = ""
    chromadb_port: int = 8000
    chromadb_collection: str = "course_content"

    # === External call hardening ===
    embedding_timeout_s: float = 30.0
    store_timeout_s: float = 30.0
    max_retries: int = 2
    retry_backoff_s: float = 0.5

    # === Search defaults (overridable per request) ===
    search_default_top_k: int = 10
    search_default_threshold: float = 0.7

    # === App Config ===
    cors_allowed_origins: list[str] = ["*"]
    app_host: str = "0.0.0.0"
    app_port: int = 3000
    app_env: str = "development"
    log_level: str = "INFO"

    def is_embedding_configured(self) -> bool:
        """Return ``True`` if the selected embedding provider has what it needs to start."""
        if self.embedding_provider == "openai":
            return bool(self.openai_api_key)
        if self.embedding_provider == "nomic":
            return bool(self.ollama_base_url)
        return False
