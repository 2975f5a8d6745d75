"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# This class uses pydantic-settings to read configuration from TWO sources
# (in priority order):
#
#   1. **Environment variables**: e.g., OPENAI_API_KEY=sk-abc123
#   2. **.env file**: key=value lines in the project root .env file
#
# Field name `openai_api_key` maps to env var `OPENAI_API_KEY`.
#
# A Settings instance is built once by the composition root (main.py or
# the CLI) and handed to every provider constructor.  Nothing in the
# package reads the environment on its own.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """rightsdesk application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Embedding Providers ===
    # Empty string = "not configured" → provider selection skips it.
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible APIs (TogetherAI, Azure proxies, ...)
    openai_embedding_model: str = "text-embedding-3-small"
    ollama_base_url: str = "http://localhost:11434"
    nomic_embedding_model: str = "nomic-embed-text"
    # "auto" tries OpenAI first, then Nomic/Ollama.
    embedding_provider: str = "auto"
    embedding_timeout_seconds: float = 30.0
    embedding_concurrency: int = 4

    # === Document Store ===
    corpus_db_path: str = "data/corpus.db"
    pending_document_ttl_minutes: int = 30
    default_jurisdiction: str = "IN"

    # === URL ingestion ===
    fetch_timeout_seconds: float = 15.0

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def get_available_embedding_providers(self) -> list[str]:
        """Return embedding provider names in the order they will be tried."""
        if self.embedding_provider in ("openai", "nomic"):
            return [self.embedding_provider]
        providers: list[str] = []
        if self.openai_api_key:
            providers.append("openai")
        if self.ollama_base_url:
            providers.append("nomic")
        return providers
