"""
RiskCover Configuration.

Pydantic Settings v2 — loads from .env, environment variables.
"""

from typing import List, Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ── Application ──────────────────────────────────────────────────────
    app_name: str = "RiskCover"
    app_version: str = "1.0.0"
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")

    # ── API ───────────────────────────────────────────────────────────────
    api_prefix: str = "/api/v1"
    allowed_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        alias="CORS_ORIGINS",
    )

    # ── Database ─────────────────────────────────────────────────────────
    database_url: str = Field(
        default="sqlite+aiosqlite:///./riskcover.db",
        alias="DATABASE_URL",
    )
    db_pool_size: int = Field(default=10, alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=20, alias="DB_MAX_OVERFLOW")
    db_pool_recycle: int = Field(default=3600, alias="DB_POOL_RECYCLE")

    # ── Risk Engine ────────────────────────────────────────────────────────
    # Composite weights, in percent. Must sum to 100.
    risk_weight_code: int = Field(default=30, ge=0, le=100, alias="RISK_WEIGHT_CODE")
    risk_weight_economic: int = Field(default=40, ge=0, le=100, alias="RISK_WEIGHT_ECONOMIC")
    risk_weight_operational: int = Field(default=30, ge=0, le=100, alias="RISK_WEIGHT_OPERATIONAL")
    default_risk_score: int = Field(
        default=50, ge=0, le=100, alias="DEFAULT_RISK_SCORE",
        description="Score assigned to a protocol at registration, before any assessment",
    )

    # ── Policies ───────────────────────────────────────────────────────────
    premium_enforcement: Literal["minimum", "exact"] = Field(
        default="minimum", alias="PREMIUM_ENFORCEMENT",
        description="minimum: premium >= quote; exact: premium == quote",
    )

    # ── Field limits ───────────────────────────────────────────────────────
    max_protocol_name_length: int = Field(default=32, alias="MAX_PROTOCOL_NAME_LENGTH")
    max_claim_text_length: int = Field(default=96, alias="MAX_CLAIM_TEXT_LENGTH")
    max_alert_details_length: int = Field(default=256, alias="MAX_ALERT_DETAILS_LENGTH")

    # ── Operational ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: Literal["json", "console"] = Field(default="console", alias="LOG_FORMAT")

    @model_validator(mode="after")
    def _weights_sum_to_100(self) -> "Settings":
        total = self.risk_weight_code + self.risk_weight_economic + self.risk_weight_operational
        if total != 100:
            raise ValueError(f"risk weights must sum to 100, got {total}")
        return self

    @property
    def risk_weights(self) -> tuple[int, int, int]:
        """(code, economic, operational) composite weights."""
        return (
            self.risk_weight_code,
            self.risk_weight_economic,
            self.risk_weight_operational,
        )

    @property
    def async_database_url(self) -> str:
        """Ensure the database URL uses an async driver."""
        url = self.database_url
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        if url.startswith("sqlite://"):
            url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return url


settings = Settings()
