"""
LegianOS Goal Service - Configuration
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ==========================================
    # CORE
    # ==========================================
    env: str = "dev"  # dev | prod
    db_url: str = "sqlite+aiosqlite:///./legianos.db"
    cors_origins: list[str] = ["http://localhost:3000"]
    log_level: str = "INFO"
    product_name: str = "legianos"  # prefix for export filenames

    # ==========================================
    # LANGUAGE MODEL
    # ==========================================
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.7

    # ==========================================
    # SUPABASE (Conversation memory)
    # ==========================================
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    supabase_service_key: Optional[str] = None  # Backend operations

    # ==========================================
    # GOAL WORKFLOW
    # ==========================================
    default_export_format: str = "markdown"
    auto_generate: bool = True
    history_limit: int = 20  # prior messages fed to extraction


settings = Settings()
