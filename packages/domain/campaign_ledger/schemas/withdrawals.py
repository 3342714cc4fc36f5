"""Founder withdrawal requests and the policy that gates them."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import Field

from .base import DomainModel, FrozenModel, CampaignId, UserId, PositiveAmount, Percentage, MoneyAmount


class WithdrawalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    COMPLETED = "completed"
    REJECTED = "rejected"


# Statuses whose amount is held against the campaign balance.
RESERVING_WITHDRAWAL_STATUSES = frozenset({
    WithdrawalStatus.PENDING,
    WithdrawalStatus.APPROVED,
    WithdrawalStatus.COMPLETED,
})


class KycStatus(str, Enum):
    """Founder verification state reported by the KYC collaborator."""

    VERIFIED = "verified"
    PENDING = "pending"
    REJECTED = "rejected"


class WithdrawalRequest(DomainModel):
    id: str
    founder_id: UserId
    campaign_id: CampaignId
    amount: PositiveAmount
    status: WithdrawalStatus = WithdrawalStatus.PENDING
    requested_at: datetime
    processed_at: Optional[datetime] = None
    admin_notes: Optional[str] = None
    policy_version: Optional[str] = Field(
        default=None,
        description="WithdrawalPolicy version the request was checked against"
    )


class WithdrawalPolicy(FrozenModel):
    """Versioned eligibility thresholds for founder withdrawals."""

    version: str = Field(min_length=1)

    min_campaign_goal_percentage: Percentage = Field(
        default=Decimal("20"),
        description="Campaign progress required before any withdrawal"
    )

    min_withdrawal_amount: MoneyAmount = Field(
        default=Decimal("25"),
        description="Smallest withdrawal accepted"
    )

    @classmethod
    def from_settings(cls, settings, version: str = "settings") -> "WithdrawalPolicy":
        return cls(
            version=version,
            min_campaign_goal_percentage=settings.min_campaign_goal_percentage,
            min_withdrawal_amount=settings.min_withdrawal_amount,
        )


class CampaignBalance(DomainModel):
    """Funds a founder may still draw from a campaign."""

    campaign_id: CampaignId
    total_raised: MoneyAmount
    total_fees: MoneyAmount
    total_withdrawn: MoneyAmount = Field(
        description="Sum of pending, approved and completed withdrawals"
    )
    available_balance: Decimal = Field(
        description="total_raised - total_fees - total_withdrawn"
    )
