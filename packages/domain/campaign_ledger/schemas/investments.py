"""Investment records.

An Investment is an investor's commitment into a campaign. Records are never
deleted: failed and cancelled commitments stay in the ledger for audit.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import Field

from .base import (
    DomainModel,
    CampaignId,
    InvestmentId,
    UserId,
    PositiveAmount,
    MoneyAmount,
    Percentage,
    RegionCode,
    GLOBAL_REGION,
)


class InvestmentStatus(str, Enum):
    COMMITTED = "committed"
    PAYMENT_PENDING = "payment_pending"
    PAYMENT_PROCESSING = "payment_processing"
    PAID = "paid"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_INVESTMENT_STATUSES


TERMINAL_INVESTMENT_STATUSES = frozenset({
    InvestmentStatus.COMPLETED,
    InvestmentStatus.FAILED,
    InvestmentStatus.CANCELLED,
})


class PaymentStatus(str, Enum):
    """Payment state as reported by the payment gateway collaborator."""

    NOT_STARTED = "not_started"
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Investment(DomainModel):
    """A single commitment of capital into a campaign.

    Lifecycle:
        committed -> payment_pending -> payment_processing -> paid -> completed

    Fee fields are empty until the platform settles the investment
    (paid -> completed), at which point the fee is resolved against the
    active fee schedule and its version is recorded for reproducibility.
    """

    id: InvestmentId
    campaign_id: CampaignId
    investor_id: UserId

    amount: PositiveAmount = Field(
        description="Committed amount (>= campaign minimum at creation)"
    )

    region: RegionCode = Field(
        default=GLOBAL_REGION,
        description="Investor region used for fee tier resolution"
    )

    status: InvestmentStatus = Field(
        default=InvestmentStatus.COMMITTED
    )

    payment_status: PaymentStatus = Field(
        default=PaymentStatus.NOT_STARTED,
        description="Mirror of the latest gateway payment state"
    )

    agreement_signed: bool = False
    signed_at: Optional[datetime] = None

    created_at: datetime
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Set at settlement
    fee_tier: Optional[str] = None
    fee_percentage: Optional[Percentage] = None
    fee_amount: Optional[MoneyAmount] = None
    net_amount: Optional[MoneyAmount] = None
    fee_schedule_version: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_INVESTMENT_STATUSES

    def settled_fee(self) -> Decimal:
        """Platform fee recorded at settlement (zero before settlement)."""
        return self.fee_amount if self.fee_amount is not None else Decimal("0")
