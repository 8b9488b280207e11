from functools import lru_cache
from typing import List, Optional

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Pydantic v2 config; settings are immutable once loaded
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Application
    app_name: str = "Planeaciones IA"
    app_version: str = "1.0.0"
    environment: str = "development"  # development, production

    # Server
    host: str = "0.0.0.0"
    port: int = 3000

    # CORS
    # Comma-separated list, only enforced in production
    allowed_origins: str = ""
    pages_origin_pattern: str = r"^https://[a-z0-9-]+\.github\.io$"

    # Supabase (record store + identity provider)
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None  # anon key, RLS applies per user token
    plans_table: str = "planeaciones"
    metrics_table: str = "ia_metricas"

    # LLM Configuration
    llm_provider: str = "openai"  # openai, google
    llm_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.7
    max_tokens: int = 1200
    prompt_version: str = "v3"

    # API Keys
    openai_api_key: Optional[str] = None
    google_api_key: Optional[str] = None

    # Logging
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: str = "/tmp/planeaciones.log"  # Vercel uses /tmp for writable files

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def origin_list(self) -> List[str]:
        return [o.strip().rstrip("/") for o in self.allowed_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process."""
    return Settings()
