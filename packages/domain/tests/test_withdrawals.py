"""Tests for founder withdrawals through LedgerService."""

import pytest
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from campaign_ledger.errors import (
    BelowMinimumWithdrawal,
    GoalNotReached,
    InsufficientBalance,
    InvalidStateTransition,
    KycNotVerified,
    NotFoundError,
    ValidationError,
)
from campaign_ledger.schemas import (
    KycStatus,
    WithdrawalApproved,
    WithdrawalCompleted,
    WithdrawalPolicy,
    WithdrawalRejected,
    WithdrawalRequested,
    WithdrawalStatus,
)


@pytest.fixture
def funded(service, campaign, invest):
    """$50,000 raised ($30k + $20k at 5%): $47,500 available."""
    invest(campaign.id, "investor_alice", "30000")
    invest(campaign.id, "investor_bob", "20000")
    return campaign


def test_available_balance(service, funded):
    balance = service.available_balance(funded.id)
    assert balance.total_raised == Decimal("50000")
    assert balance.total_fees == Decimal("2500.00")
    assert balance.available_balance == Decimal("47500.00")


def test_request_reserves_balance(service, funded, sink):
    withdrawal_id = service.request_withdrawal("founder_alice", funded.id, Decimal("10000"))

    withdrawal = service.get_withdrawal(withdrawal_id)
    assert withdrawal.status == WithdrawalStatus.PENDING
    assert withdrawal.policy_version == "settings"
    assert service.available_balance(funded.id).available_balance == Decimal("37500.00")
    assert [e.withdrawal_id for e in sink.of_type(WithdrawalRequested)] == [withdrawal_id]


def test_kyc_refused_regardless_of_balance(service, funded, kyc):
    kyc.set_status("founder_alice", KycStatus.PENDING)
    with pytest.raises(KycNotVerified):
        service.request_withdrawal("founder_alice", funded.id, Decimal("100"))
    assert service.list_withdrawals(funded.id) == []


def test_unknown_founder_kyc_is_not_verified(service):
    created = service.create_campaign(
        founder_id="founder_dave",
        company_name="Dave Co",
        funding_goal=Decimal("1000"),
        minimum_investment=Decimal("10"),
    )
    with pytest.raises(KycNotVerified):
        service.request_withdrawal("founder_dave", created.id, Decimal("100"))


def test_goal_not_reached(service, campaign, invest):
    invest(campaign.id, "investor_alice", "10000")
    with pytest.raises(GoalNotReached):
        service.request_withdrawal("founder_alice", campaign.id, Decimal("100"))


def test_below_minimum(service, funded):
    with pytest.raises(BelowMinimumWithdrawal):
        service.request_withdrawal("founder_alice", funded.id, Decimal("10"))


def test_insufficient_balance(service, funded):
    with pytest.raises(InsufficientBalance):
        service.request_withdrawal("founder_alice", funded.id, Decimal("47500.01"))
    service.request_withdrawal("founder_alice", funded.id, Decimal("47500"))


def test_founder_must_own_campaign(service, funded, kyc):
    kyc.set_status("founder_mallory", KycStatus.VERIFIED)
    with pytest.raises(ValidationError, match="not owned by founder"):
        service.request_withdrawal("founder_mallory", funded.id, Decimal("100"))


def test_policy_snapshot_is_recorded(service, funded):
    service.set_withdrawal_policy(WithdrawalPolicy(version="2026-04", min_withdrawal_amount=Decimal("1000")))

    with pytest.raises(BelowMinimumWithdrawal):
        service.request_withdrawal("founder_alice", funded.id, Decimal("500"))
    withdrawal_id = service.request_withdrawal("founder_alice", funded.id, Decimal("1000"))
    assert service.get_withdrawal(withdrawal_id).policy_version == "2026-04"


# =============================================================================
# Lifecycle
# =============================================================================

class TestWithdrawalLifecycle:
    """pending -> approved -> completed, or pending -> rejected."""

    def test_approve_then_complete(self, service, funded, sink):
        withdrawal_id = service.request_withdrawal("founder_alice", funded.id, Decimal("5000"))

        approved = service.approve_withdrawal(withdrawal_id, admin_notes="looks fine")
        assert approved.status == WithdrawalStatus.APPROVED
        assert approved.admin_notes == "looks fine"
        assert approved.processed_at is not None

        completed = service.complete_withdrawal(withdrawal_id)
        assert completed.status == WithdrawalStatus.COMPLETED
        assert service.available_balance(funded.id).total_withdrawn == Decimal("5000")
        assert len(sink.of_type(WithdrawalApproved)) == 1
        assert len(sink.of_type(WithdrawalCompleted)) == 1

    def test_reject_releases_reservation(self, service, funded, sink):
        withdrawal_id = service.request_withdrawal("founder_alice", funded.id, Decimal("47500"))
        with pytest.raises(InsufficientBalance):
            service.request_withdrawal("founder_alice", funded.id, Decimal("100"))

        service.reject_withdrawal(withdrawal_id, reason="bank details mismatch")

        assert service.available_balance(funded.id).available_balance == Decimal("47500.00")
        assert sink.of_type(WithdrawalRejected)[0].reason == "bank details mismatch"
        service.request_withdrawal("founder_alice", funded.id, Decimal("100"))

    def test_complete_requires_approval(self, service, funded):
        withdrawal_id = service.request_withdrawal("founder_alice", funded.id, Decimal("5000"))
        with pytest.raises(InvalidStateTransition):
            service.complete_withdrawal(withdrawal_id)

    def test_rejected_is_final(self, service, funded):
        withdrawal_id = service.request_withdrawal("founder_alice", funded.id, Decimal("5000"))
        service.reject_withdrawal(withdrawal_id)
        with pytest.raises(InvalidStateTransition):
            service.approve_withdrawal(withdrawal_id)

    def test_unknown_withdrawal(self, service):
        with pytest.raises(NotFoundError):
            service.approve_withdrawal("wd_missing")


# =============================================================================
# Concurrency
# =============================================================================

def test_concurrent_requests_cannot_overdraw(service, funded):
    """Eight $10,000 requests against $47,500: exactly four succeed."""

    def attempt(_):
        try:
            return service.request_withdrawal("founder_alice", funded.id, Decimal("10000"))
        except InsufficientBalance:
            return None

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(attempt, range(8)))

    granted = [r for r in results if r is not None]
    assert len(granted) == 4
    balance = service.available_balance(funded.id)
    assert balance.total_withdrawn == Decimal("40000")
    assert balance.available_balance == Decimal("7500.00")
    assert balance.available_balance >= 0
