"""Runtime configuration read from environment variables."""

from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


ENV_PREFIX = "LEDGERFLOW_"


class MatchingPolicy(BaseSettings):
    """Tolerances used to grade a bank row against an open item.

    Institutions clear at different speeds, so these are policy values and
    not constants. ``tight_window_days`` bounds High matches,
    ``date_window_days`` bounds Medium matches and ``search_window_days``
    bounds how far away a Low candidate may be.
    """

    model_config = SettingsConfigDict(
        env_prefix=f"{ENV_PREFIX}MATCH_",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    amount_tolerance: Decimal = Field(default=Decimal("0.50"), ge=0)
    tight_window_days: int = Field(default=1, ge=0)
    date_window_days: int = Field(default=5, ge=0)
    search_window_days: int = Field(default=30, ge=0)

    @model_validator(mode="after")
    def windows_nest(self) -> "MatchingPolicy":
        if not self.tight_window_days <= self.date_window_days <= self.search_window_days:
            raise ValueError("Matching windows must satisfy tight <= date window <= search window")
        return self


class Settings(BaseSettings):
    """Engine settings.

    Every field reads ``LEDGERFLOW_<FIELD>`` except the API key, which uses
    the standard ``ANTHROPIC_API_KEY`` variable. Matching tolerances come
    from ``LEDGERFLOW_MATCH_*``.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    db_path: Optional[str] = None
    matching: MatchingPolicy = Field(default_factory=MatchingPolicy)
    worker_count: int = Field(default=4, ge=1, validation_alias="LEDGERFLOW_WORKERS")
    ai_workers: int = Field(default=4, ge=1)
    ai_timeout: float = Field(default=10.0, gt=0)
    ai_model: str = "claude-3-5-haiku-latest"
    anthropic_api_key: Optional[str] = Field(default=None, validation_alias="ANTHROPIC_API_KEY")
    owner_draw_code: str = "3900"
    owner_contribution_code: str = "3800"
    auto_create_ledger_accounts: bool = True
    log_level: str = "INFO"
    log_json: bool = False

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, value: str) -> str:
        return value.strip().upper()


def load_settings() -> Settings:
    """Build settings from the process environment.

    Raises:
        pydantic.ValidationError: If a variable holds a value of the wrong
            type. It subclasses ``ValueError``.
    """
    return Settings()
