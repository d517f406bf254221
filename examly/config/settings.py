"""Application settings loaded from environment variables via pydantic-settings.

Values come from (highest priority first) environment variables, then the
project-root ``.env`` file, then the defaults below.  The field name maps
to the upper-cased env var: ``gemini_api_key`` <- ``GEMINI_API_KEY``.

An empty API key means "not configured".  ``main._build_llm_provider``
walks the providers in priority order and skips the empty ones, so the
presence of credentials is decided once at startup.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

# Gemini exposes an OpenAI-compatible chat completions endpoint.
GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


class Settings(BaseSettings):
    """Examly application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === LLM Providers ===
    openai_api_key: str = ""
    openai_base_url: str = ""  # Custom base URL for OpenAI-compatible APIs
    openai_text_model: str = ""
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    ollama_base_url: str = ""  # e.g. http://localhost:11434; empty disables Ollama
    ollama_model: str = "llama3.1"
    # Whole-document synthesis prompts are large, so the per-call budget is
    # far above what a chat completion normally needs.
    llm_timeout_seconds: float = 120.0
    llm_max_tokens: int = 8192

    # === Video search ===
    youtube_api_key: str = ""

    # === Storage ===
    database_path: str = "data/examly.db"
    blob_root: str = "data/blobs"
    blob_signing_secret: str = "examly-dev-secret"
    public_base_url: str = "http://localhost:8000"
    signed_url_ttl_seconds: int = 3600

    # === Ingestion ===
    ingestion_timeout_seconds: float = 300.0
    max_parallel_chapters: int = 8
    max_upload_files: int = 10
    max_upload_bytes: int = 50 * 1024 * 1024

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def get_available_llm_providers(self) -> list[str]:
        """Return LLM provider names in selection priority order."""
        providers: list[str] = []
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.gemini_api_key:
            providers.append("gemini")
        if self.openai_api_key:
            providers.append("openai")
        if self.ollama_base_url:
            providers.append("ollama")
        return providers
