"""Events crossing the ledger boundary.

Inbound:
    PaymentGatewayEvent - payment state change delivered by the gateway webhook

Outbound (domain events handed to the notification collaborator):
    InvestmentCommitted, InvestmentStatusChanged, InvestmentCompleted,
    SafeAgreementIssued, WithdrawalRequested, WithdrawalApproved,
    WithdrawalRejected, WithdrawalCompleted

Domain events are immutable facts. The ledger emits them after the state
change they describe has been committed; it never formats or delivers
messages itself.
"""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union
from uuid import uuid4
from pydantic import Field

from .base import FrozenModel, CampaignId, InvestmentId, UserId, MoneyAmount
from .investments import InvestmentStatus, PaymentStatus


# =============================================================================
# Inbound
# =============================================================================

class PaymentGatewayEvent(FrozenModel):
    """Webhook payload from the payment gateway collaborator."""

    investment_id: InvestmentId
    payment_status: PaymentStatus
    gateway_event_id: Optional[str] = Field(
        default=None,
        description="Gateway delivery id; a redelivered id is ignored"
    )


# =============================================================================
# Outbound
# =============================================================================

class DomainEvent(FrozenModel):
    """Base class for events emitted to the notification collaborator."""

    event_id: str = Field(default_factory=lambda: uuid4().hex)
    occurred_at: datetime


class InvestmentCommitted(DomainEvent):
    event_type: Literal["investment_committed"] = "investment_committed"
    investment_id: InvestmentId
    campaign_id: CampaignId
    investor_id: UserId
    amount: MoneyAmount


class InvestmentStatusChanged(DomainEvent):
    event_type: Literal["investment_status_changed"] = "investment_status_changed"
    investment_id: InvestmentId
    campaign_id: CampaignId
    from_status: InvestmentStatus
    to_status: InvestmentStatus


class InvestmentCompleted(DomainEvent):
    event_type: Literal["investment_completed"] = "investment_completed"
    investment_id: InvestmentId
    campaign_id: CampaignId
    investor_id: UserId
    amount: MoneyAmount
    fee_amount: MoneyAmount
    net_amount: MoneyAmount


class SafeAgreementIssued(DomainEvent):
    event_type: Literal["safe_agreement_issued"] = "safe_agreement_issued"
    agreement_id: str
    investment_id: InvestmentId
    supersedes: Optional[str] = None


class WithdrawalRequested(DomainEvent):
    event_type: Literal["withdrawal_requested"] = "withdrawal_requested"
    withdrawal_id: str
    founder_id: UserId
    campaign_id: CampaignId
    amount: MoneyAmount


class WithdrawalApproved(DomainEvent):
    event_type: Literal["withdrawal_approved"] = "withdrawal_approved"
    withdrawal_id: str
    founder_id: UserId
    campaign_id: CampaignId
    amount: MoneyAmount


class WithdrawalRejected(DomainEvent):
    event_type: Literal["withdrawal_rejected"] = "withdrawal_rejected"
    withdrawal_id: str
    founder_id: UserId
    campaign_id: CampaignId
    amount: MoneyAmount
    reason: Optional[str] = None


class WithdrawalCompleted(DomainEvent):
    event_type: Literal["withdrawal_completed"] = "withdrawal_completed"
    withdrawal_id: str
    founder_id: UserId
    campaign_id: CampaignId
    amount: MoneyAmount


LedgerEvent = Annotated[
    Union[
        InvestmentCommitted,
        InvestmentStatusChanged,
        InvestmentCompleted,
        SafeAgreementIssued,
        WithdrawalRequested,
        WithdrawalApproved,
        WithdrawalRejected,
        WithdrawalCompleted,
    ],
    Field(discriminator='event_type')
]
"""Discriminated union of all outbound domain events.

The 'event_type' field lets a notification collaborator deserialize a stored
event back into the right class.
"""
