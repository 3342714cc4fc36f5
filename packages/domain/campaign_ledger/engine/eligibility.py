"""Withdrawal eligibility gate.

The checks here are pure. Atomicity with the balance reservation is the
caller's job: the ledger service runs ``check_withdrawal`` and inserts the
pending request under the same per-founder lock.
"""

from decimal import Decimal
from typing import Iterable, Optional

from ..errors import (
    BelowMinimumWithdrawal,
    GoalNotReached,
    InsufficientBalance,
    KycNotVerified,
    ValidationError,
)
from ..schemas import (
    CampaignBalance,
    CampaignStats,
    Investment,
    InvestmentStatus,
    KycStatus,
    RESERVING_WITHDRAWAL_STATUSES,
    WithdrawalPolicy,
    WithdrawalRequest,
)


def compute_balance(
    stats: CampaignStats,
    investments: Iterable[Investment],
    withdrawals: Iterable[WithdrawalRequest],
) -> CampaignBalance:
    """available = total_raised - fees on completed investments - reserved withdrawals.

    Pending withdrawals are held against the balance along with approved and
    completed ones, so two requests can never both draw the same funds.
    """
    total_fees = sum(
        (i.settled_fee() for i in investments
         if i.campaign_id == stats.campaign_id and i.status == InvestmentStatus.COMPLETED),
        Decimal("0"),
    )
    total_withdrawn = sum(
        (w.amount for w in withdrawals
         if w.campaign_id == stats.campaign_id and w.status in RESERVING_WITHDRAWAL_STATUSES),
        Decimal("0"),
    )
    return CampaignBalance(
        campaign_id=stats.campaign_id,
        total_raised=stats.total_raised,
        total_fees=total_fees,
        total_withdrawn=total_withdrawn,
        available_balance=stats.total_raised - total_fees - total_withdrawn,
    )


def check_withdrawal(
    founder_id: str,
    amount: Decimal,
    kyc_status: Optional[KycStatus],
    stats: CampaignStats,
    balance: CampaignBalance,
    policy: WithdrawalPolicy,
) -> None:
    """Raise the specific EligibilityError for the first failed precondition.

    Order: KYC, campaign goal, minimum amount, available balance. KYC is
    checked first so an unverified founder is refused regardless of balance.
    """
    if amount <= 0:
        raise ValidationError(f"Withdrawal amount must be positive, got {amount}")

    if kyc_status != KycStatus.VERIFIED:
        raise KycNotVerified(founder_id, kyc_status.value if kyc_status is not None else None)

    if stats.progress_percent < policy.min_campaign_goal_percentage:
        raise GoalNotReached(stats.progress_percent, policy.min_campaign_goal_percentage)

    if amount < policy.min_withdrawal_amount:
        raise BelowMinimumWithdrawal(amount, policy.min_withdrawal_amount)

    if amount > balance.available_balance:
        raise InsufficientBalance(amount, balance.available_balance)
