"""Smoke tests for schema validation.

These tests verify that:
1. All schemas can be imported
2. Basic instantiation works
3. Field validation catches obvious errors
4. Discriminated unions work correctly
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from pydantic import TypeAdapter, ValidationError

from campaign_ledger import __version__
from campaign_ledger.config import LedgerSettings, default_fee_schedule
from campaign_ledger.schemas import (
    Campaign,
    CampaignStatus,
    FeeSchedule,
    FeeTierRule,
    Investment,
    InvestmentCompleted,
    LedgerEvent,
    PaymentGatewayEvent,
    PaymentStatus,
    SafeAgreementSnapshot,
    StatementWorkbookCFG,
    WithdrawalPolicy,
    WithdrawalRejected,
)

NOW = datetime(2026, 3, 2, tzinfo=timezone.utc)


class TestBasicInstantiation:
    """Test that basic schema instantiation works."""

    def test_campaign_defaults(self):
        campaign = Campaign(
            id="cmp_1",
            founder_id="founder_alice",
            company_name="Acme",
            funding_goal=Decimal("100000"),
            minimum_investment=Decimal("25"),
        )
        assert campaign.status == CampaignStatus.DRAFT
        assert campaign.valuation_cap is None
        assert campaign.accepts_investments(NOW) is False

    def test_investment_defaults(self):
        investment = Investment(
            id="inv_1",
            campaign_id="cmp_1",
            investor_id="alice",
            amount=Decimal("500"),
            created_at=NOW,
        )
        assert investment.region == "global"
        assert investment.payment_status == PaymentStatus.NOT_STARTED
        assert investment.settled_fee() == Decimal("0")

    def test_gateway_event_parses_strings(self):
        event = PaymentGatewayEvent(investment_id="inv_1", payment_status="succeeded")
        assert event.payment_status == PaymentStatus.SUCCEEDED

    def test_workbook_defaults(self):
        cfg = StatementWorkbookCFG()
        assert cfg.campaign_ids is None
        assert cfg.include_investments and cfg.include_withdrawals
        assert not cfg.include_inactive_investments

    def test_version(self):
        assert __version__


class TestValidation:
    """Field validation catches obvious errors."""

    def test_non_positive_goal(self):
        with pytest.raises(ValidationError):
            Campaign(
                id="cmp_1",
                founder_id="founder_alice",
                company_name="Acme",
                funding_goal=Decimal("0"),
                minimum_investment=Decimal("25"),
            )

    def test_minimum_above_goal(self):
        with pytest.raises(ValidationError, match="cannot exceed funding_goal"):
            Campaign(
                id="cmp_1",
                founder_id="founder_alice",
                company_name="Acme",
                funding_goal=Decimal("100"),
                minimum_investment=Decimal("500"),
            )

    def test_full_discount_rejected_on_campaign(self):
        with pytest.raises(ValidationError, match="discount_rate must be below 100"):
            Campaign(
                id="cmp_1",
                founder_id="founder_alice",
                company_name="Acme",
                funding_goal=Decimal("100000"),
                minimum_investment=Decimal("25"),
                discount_rate=Decimal("100"),
            )

    def test_discount_out_of_range(self):
        with pytest.raises(ValidationError):
            Campaign(
                id="cmp_1",
                founder_id="founder_alice",
                company_name="Acme",
                funding_goal=Decimal("100000"),
                minimum_investment=Decimal("25"),
                discount_rate=Decimal("120"),
            )

    def test_region_pattern(self):
        with pytest.raises(ValidationError):
            FeeTierRule(name="bad", region="Asia Pacific", fee_percentage=Decimal("5"))

    def test_adjustment_cannot_make_fee_negative(self):
        with pytest.raises(ValidationError, match="would make the fee negative"):
            FeeSchedule(
                version="v1",
                tiers=[FeeTierRule(name="standard", fee_percentage=Decimal("5"))],
                regional_adjustments={"eu": Decimal("-100")},
            )

    def test_assignment_is_validated(self):
        investment = Investment(
            id="inv_1", campaign_id="cmp_1", investor_id="alice", amount=Decimal("500"), created_at=NOW,
        )
        with pytest.raises(ValidationError):
            investment.amount = Decimal("-5")

    def test_agreement_is_frozen(self):
        agreement = SafeAgreementSnapshot(
            agreement_id="safe_1",
            investment_id="inv_1",
            investment_amount=Decimal("50000"),
            valuation_cap=Decimal("5000000"),
            company_name="Acme",
            investor_name="Alice",
            agreement_date=NOW,
        )
        with pytest.raises(ValidationError):
            agreement.investor_name = "Mallory"


class TestDiscriminatedUnions:
    """Domain events round-trip through the LedgerEvent union."""

    def test_event_type_selects_class(self):
        adapter = TypeAdapter(LedgerEvent)
        completed = InvestmentCompleted(
            occurred_at=NOW,
            investment_id="inv_1",
            campaign_id="cmp_1",
            investor_id="alice",
            amount=Decimal("5000"),
            fee_amount=Decimal("225.00"),
            net_amount=Decimal("4775.00"),
        )
        rejected = WithdrawalRejected(
            occurred_at=NOW,
            withdrawal_id="wd_1",
            founder_id="founder_alice",
            campaign_id="cmp_1",
            amount=Decimal("100"),
            reason="kyc expired",
        )

        assert isinstance(adapter.validate_python(completed.model_dump()), InvestmentCompleted)
        assert isinstance(adapter.validate_python(rejected.model_dump()), WithdrawalRejected)


class TestSettings:
    """Settings build the initial configuration snapshots."""

    def test_defaults(self):
        settings = LedgerSettings(_env_file=None)
        schedule = default_fee_schedule(settings)
        policy = WithdrawalPolicy.from_settings(settings)

        assert schedule.free_threshold == Decimal("1000")
        assert schedule.tiers[0].fee_percentage == Decimal("5")
        assert policy.min_campaign_goal_percentage == Decimal("20")
        assert policy.min_withdrawal_amount == Decimal("25")

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("LEDGER_MIN_WITHDRAWAL_AMOUNT", "50")
        monkeypatch.setenv("LEDGER_PROGRESS_CEILING", "150")
        settings = LedgerSettings(_env_file=None)

        assert settings.min_withdrawal_amount == Decimal("50")
        assert settings.progress_ceiling == Decimal("150")

    def test_retry_window_validated(self):
        with pytest.raises(ValidationError, match="retry_wait_max"):
            LedgerSettings(_env_file=None, retry_wait_min=1, retry_wait_max=0.5)
