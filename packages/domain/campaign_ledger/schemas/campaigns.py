"""Campaign models.

A Campaign is a founder's fundraising round. Its funding statistics are never
stored on the campaign itself: they are derived from the investment ledger
(see ``campaign_ledger.engine.aggregator``).
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import Field, model_validator

from .base import DomainModel, CampaignId, UserId, PositiveAmount, Percentage, MoneyAmount


class CampaignStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# =============================================================================
# Campaign
# =============================================================================

class Campaign(DomainModel):
    """A fundraising campaign issuing SAFEs to its investors.

    SAFE terms (discount rate, valuation cap) live on the campaign and are
    copied into each investment's SafeAgreementSnapshot when it is issued.

    Example:
        Campaign(
            id="cmp_acme_seed",
            founder_id="founder_alice",
            company_name="Acme Robotics Inc.",
            funding_goal=Decimal("100000"),
            minimum_investment=Decimal("25"),
            discount_rate=Decimal("20"),
            valuation_cap=Decimal("5000000"),
        )
    """

    id: CampaignId = Field(
        description="Unique campaign identifier"
    )

    founder_id: UserId = Field(
        description="Founder who owns the campaign and may draw down its funds"
    )

    company_name: str = Field(
        min_length=1,
        description="Legal name of the issuing company (printed on SAFE agreements)"
    )

    title: Optional[str] = Field(
        default=None,
        description="Display title of the campaign"
    )

    funding_goal: PositiveAmount = Field(
        description="Target amount to raise"
    )

    minimum_investment: PositiveAmount = Field(
        description="Smallest commitment accepted from an investor"
    )

    discount_rate: Optional[Percentage] = Field(
        default=None,
        description="SAFE discount on the next round price, 0-100 (20 = 20% discount)"
    )

    valuation_cap: Optional[PositiveAmount] = Field(
        default=None,
        description="SAFE valuation cap"
    )

    deadline: Optional[datetime] = Field(
        default=None,
        description="Time after which no new commitments are accepted"
    )

    status: CampaignStatus = Field(
        default=CampaignStatus.DRAFT,
        description="Lifecycle status; mutated only through campaign transitions"
    )

    created_at: Optional[datetime] = Field(
        default=None,
        description="Creation timestamp"
    )

    @model_validator(mode='after')
    def validate_discount_rate(self):
        """A 100% discount would make the conversion price zero."""
        if self.discount_rate is not None and self.discount_rate >= 100:
            raise ValueError("discount_rate must be below 100")
        return self

    @model_validator(mode='after')
    def validate_minimum_against_goal(self):
        if self.minimum_investment > self.funding_goal:
            raise ValueError("minimum_investment cannot exceed funding_goal")
        return self

    def accepts_investments(self, now: datetime) -> bool:
        """Only active campaigns before their deadline take new commitments."""
        if self.status != CampaignStatus.ACTIVE:
            return False
        return self.deadline is None or now <= self.deadline


# =============================================================================
# Campaign Stats
# =============================================================================

class CampaignStats(DomainModel):
    """Funding statistics derived from the completed investments of a campaign."""

    campaign_id: CampaignId
    total_raised: MoneyAmount = Field(
        description="Sum of amounts over completed investments"
    )
    investor_count: int = Field(
        ge=0,
        description="Distinct investors among completed investments"
    )
    progress_percent: Decimal = Field(
        ge=0,
        description="total_raised / funding_goal * 100, clamped to [0, ceiling]"
    )
    ledger_version: int = Field(
        default=0,
        description="Campaign ledger version the stats were derived from"
    )
