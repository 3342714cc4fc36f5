"""Runtime configuration.

Settings are read once (environment variables prefixed ``LEDGER_`` or a
``.env`` file) and then passed explicitly into the engine. The fee and
withdrawal calculators never read settings themselves: they receive a
versioned FeeSchedule / WithdrawalPolicy snapshot.
"""

from decimal import Decimal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .schemas import FeeSchedule, FeeTierRule, GLOBAL_REGION


class LedgerSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Funding stats
    progress_ceiling: Decimal = Field(default=Decimal("100"), gt=0)

    # Currency
    currency_minor_unit: int = Field(default=2, ge=0)

    # Fees
    fee_free_threshold: Decimal = Field(default=Decimal("1000"), ge=0)
    standard_fee_percentage: Decimal = Field(default=Decimal("5"), ge=0, le=100)

    # Withdrawals
    min_campaign_goal_percentage: Decimal = Field(default=Decimal("20"), ge=0, le=100)
    min_withdrawal_amount: Decimal = Field(default=Decimal("25"), ge=0)

    # Optimistic concurrency
    max_commit_attempts: int = Field(default=5, ge=1)
    retry_wait_min: float = Field(default=0.01, ge=0)  # seconds
    retry_wait_max: float = Field(default=0.5, ge=0)

    # Payment gateway delivery ids remembered for de-duplication
    gateway_event_retention: int = Field(default=100_000, ge=1)

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    @model_validator(mode="after")
    def _validate_retry_window(self) -> "LedgerSettings":
        if self.retry_wait_max < self.retry_wait_min:
            raise ValueError("retry_wait_max must be >= retry_wait_min")
        return self


def default_fee_schedule(settings: LedgerSettings, version: str = "default") -> FeeSchedule:
    """Single open-ended global tier above the free threshold.

    Campaign amounts under the threshold are free; everything else pays the
    standard rate.
    """
    return FeeSchedule(
        version=version,
        tiers=[
            FeeTierRule(
                name="standard",
                region=GLOBAL_REGION,
                min_amount=settings.fee_free_threshold,
                fee_percentage=settings.standard_fee_percentage,
            ),
        ],
        free_threshold=settings.fee_free_threshold,
        minor_unit=settings.currency_minor_unit,
    )
