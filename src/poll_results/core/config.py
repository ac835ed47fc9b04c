"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from poll_results.lib.breakdown.buckets import Dimension


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Backend
    supabase_url: str = Field(
        description="Base URL of the hosted backend (e.g. https://xyz.supabase.co)",
    )
    supabase_anon_key: str = Field(
        min_length=1,
        description="Public API key sent in the apikey header",
    )
    supabase_access_token: str | None = Field(
        default=None,
        description="Bearer credential for the signed-in user (falls back to the anon key)",
    )

    @field_validator("supabase_url")
    @classmethod
    def validate_supabase_url(cls, v: str) -> str:
        if not v.startswith(("https://", "http://")):
            msg = "supabase_url must be an http(s) URL"
            raise ValueError(msg)
        return v.rstrip("/")

    http_timeout: float = Field(
        default=30.0,
        description="HTTP request timeout in seconds",
        gt=0,
    )

    # Results aggregation
    vote_fetch_limit: int = Field(
        default=10000,
        description="Maximum vote rows fetched per poll",
        gt=0,
    )
    profile_batch_size: int = Field(
        default=200,
        description="Voter ids per profile lookup request",
        gt=0,
    )
    profile_batch_concurrency: int = Field(
        default=4,
        description="Maximum profile lookup requests in flight at once",
        gt=0,
    )
    profile_select: str = Field(
        default="user_id,gender,age_group,region,age,prefecture_code",
        description="Column list requested from the profiles table",
    )
    server_breakdown_dimensions: str = Field(
        default="gender,age_group,region",
        description="Comma-separated dimensions with a server-side breakdown RPC",
    )

    @property
    def server_breakdown_dimension_list(self) -> list[Dimension]:
        """Parse server breakdown dimensions into Dimension members.

        Raises:
            ValueError: If a name is not a known dimension.
        """
        if not self.server_breakdown_dimensions.strip():
            return []
        return [
            Dimension.parse(d.strip())
            for d in self.server_breakdown_dimensions.split(",")
            if d.strip()
        ]

    # Reports
    report_function: str = Field(
        default="submit-report",
        description="Name of the edge function that accepts abuse reports",
    )
    report_token: str | None = Field(
        default=None,
        description="Shared secret sent as X-Report-Token to the report function",
    )

    # Identity
    poll_user_id: str | None = Field(
        default=None,
        description="Stable user identifier used for votes, likes and reports",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )
    log_json: bool = Field(
        default=False,
        description="Write stderr logs as JSON lines",
    )


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()  # type: ignore[call-arg]
