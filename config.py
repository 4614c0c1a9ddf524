"""Configuration settings for the ops analytics engines."""

# Load .env into os.environ so feed URLs can be set per deployment
from dotenv import load_dotenv
load_dotenv()

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Global settings for ops analytics.

    Settings can be overridden via environment variables with OPS_ANALYTICS_ prefix.
    Example: OPS_ANALYTICS_HOURLY_RATE=40
    """

    # Feeds
    feed_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL serving the exported JSON snapshots",
    )
    estimate_history_path: str = Field(
        default="/hub/estimate-history.json",
        description="Path of the estimate history document",
    )
    projects_path: str = Field(
        default="/hub/projects.json",
        description="Path of the project budget snapshot",
    )
    http_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for a single feed fetch",
    )
    estimates_poll_interval_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Seconds between estimate history polls",
    )
    projects_poll_interval_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Seconds between budget snapshot polls",
    )

    # Estimate accuracy
    over_threshold: float = Field(
        default=1.1,
        description="Average ratio above which an agent tends to run over",
    )
    under_threshold: float = Field(
        default=0.9,
        description="Average ratio below which an agent tends to run under",
    )
    sample_score_cap: float = Field(
        default=0.9,
        ge=0.0,
        le=1.0,
        description="Ceiling on the sample-size part of confidence",
    )
    sample_score_scale: float = Field(
        default=4.0,
        gt=0,
        description="Sample count at which the sample score reaches 0.5",
    )
    variance_penalty_cap: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Maximum share of confidence variance can remove",
    )
    min_history: int = Field(
        default=2,
        ge=1,
        description="Completed tasks needed before predictions use history",
    )
    fallback_confidence: int = Field(
        default=35,
        ge=0,
        le=100,
        description="Confidence reported when history is insufficient",
    )

    # Budget alerts
    warn_threshold: float = Field(default=0.5, description="Spend ratio for the warn tier")
    alert_threshold: float = Field(default=0.75, description="Spend ratio for the alert tier")
    critical_threshold: float = Field(default=0.9, description="Spend ratio for the critical tier")
    hourly_rate: float = Field(
        default=25.0,
        ge=0,
        description="Rate used to synthesize a chapter limit from estimated hours",
    )
    fallback_limit_multiplier: float = Field(
        default=1.5,
        gt=0,
        description="Chapter limit as a multiple of cost when no hours are estimated",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Root log level for the CLI")

    model_config = {
        "env_prefix": "OPS_ANALYTICS_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def feed_url(self, path: str) -> str:
        """Join the feed base URL with a document path."""
        return f"{self.feed_base_url.rstrip('/')}/{path.lstrip('/')}"


# Create singleton instance
settings = Settings()
