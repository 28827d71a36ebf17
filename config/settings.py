"""Application settings using Pydantic."""
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite:///hire_mzansi.db",
        description="SQLAlchemy database URL",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_file: Optional[str] = Field(
        default="logs/matching.log",
        description="Rotating log file path (empty to disable)",
    )

    # AI providers (xAI first, OpenAI second)
    ai_enabled: bool = Field(
        default=True,
        description="Try AI-assisted analysis before the deterministic scorer",
    )
    xai_api_key: Optional[str] = Field(default=None, description="xAI API key")
    xai_base_url: str = Field(default="https://api.x.ai/v1")
    xai_model: str = Field(default="grok-2-1212")
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    openai_base_url: str = Field(default="https://api.openai.com/v1")
    openai_model: str = Field(default="gpt-4o")
    ai_timeout_seconds: float = Field(
        default=20.0,
        description="Timeout for a single AI provider call (seconds)",
    )
    ai_extract_profiles: bool = Field(
        default=False,
        description="Ask the AI provider for CV skills, B-BBEE status and NQF level before each batch run",
    )

    # Matching thresholds
    min_match_score: int = Field(
        default=70,
        description="Minimum overall score for a pair to be persisted as a match",
    )
    min_ats_score: int = Field(
        default=75,
        description="Minimum CV ATS score for the batch matching pool",
    )
    ranking_min_ats_score: int = Field(
        default=60,
        description="Minimum CV ATS score for on-demand candidate ranking",
    )
    ranking_default_limit: int = Field(default=20)
    batch_weight_scheme: str = Field(default="premium")
    ranking_weight_scheme: str = Field(default="basic")

    # Payments
    contact_unlock_price: float = Field(
        default=99.00,
        description="Contact unlock price in ZAR",
    )

    # Slack
    slack_webhook_url: Optional[str] = Field(
        default=None,
        description="Slack webhook URL for match notifications",
    )
    notification_min_score: int = Field(default=70)

    # Scheduler interval
    matching_interval_minutes: int = Field(
        default=360,
        description="How often to run the batch matching engine (minutes)",
    )

    # Paths
    config_dir: Path = Field(
        default=Path(__file__).parent,
        description="Configuration directory",
    )
    vocabulary_file: Optional[Path] = Field(
        default=None,
        description="Override path to the matching vocabulary YAML",
    )

    @property
    def vocabulary_path(self) -> Path:
        """Path to the matching vocabulary file."""
        return self.vocabulary_file or self.config_dir / "matching.yaml"

    @property
    def project_root(self) -> Path:
        """Project root directory."""
        return self.config_dir.parent

    @property
    def ai_configured(self) -> bool:
        """True when AI analysis is enabled and at least one key is set."""
        return self.ai_enabled and bool(self.xai_api_key or self.openai_api_key)


# Global settings instance
settings = Settings()
