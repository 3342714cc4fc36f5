"""Shared fixtures for the ledger tests."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from campaign_ledger.config import LedgerSettings
from campaign_ledger.engine import LedgerService, RecordingNotificationSink, StaticKycDirectory
from campaign_ledger.schemas import (
    CampaignStatus,
    FeeSchedule,
    FeeTierRule,
    KycStatus,
    PaymentStatus,
)

START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class SteppingClock:
    """Deterministic clock: every reading is one second after the previous one."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def settings():
    # No backoff sleeps in tests
    return LedgerSettings(_env_file=None, retry_wait_min=0, retry_wait_max=0)


@pytest.fixture
def clock():
    return SteppingClock()


@pytest.fixture
def kyc():
    return StaticKycDirectory({"founder_alice": KycStatus.VERIFIED})


@pytest.fixture
def sink():
    return RecordingNotificationSink()


@pytest.fixture
def regional_schedule():
    """Global 5% above $1,000, -10% adjustment for asia-pacific, EU large-ticket band."""
    return FeeSchedule(
        version="2026-q1",
        tiers=[
            FeeTierRule(name="standard", region="global", min_amount=Decimal("1000"), fee_percentage=Decimal("5")),
            FeeTierRule(
                name="eu_large",
                region="eu",
                min_amount=Decimal("50000"),
                max_amount=Decimal("250000"),
                fee_percentage=Decimal("3.5"),
            ),
        ],
        regional_adjustments={"asia-pacific": Decimal("-10")},
    )


@pytest.fixture
def service(settings, clock, kyc, sink, regional_schedule):
    return LedgerService(
        settings=settings,
        kyc=kyc,
        notifications=sink,
        fee_schedule=regional_schedule,
        clock=clock,
    )


@pytest.fixture
def campaign(service):
    """Active $100,000 campaign owned by founder_alice: $5M cap, 20% discount."""
    created = service.create_campaign(
        founder_id="founder_alice",
        company_name="Acme Robotics Inc.",
        title="Acme seed",
        funding_goal=Decimal("100000"),
        minimum_investment=Decimal("100"),
        valuation_cap=Decimal("5000000"),
        discount_rate=Decimal("20"),
        campaign_id="cmp_acme",
    )
    return service.transition_campaign(created.id, CampaignStatus.ACTIVE)


@pytest.fixture
def settle(service):
    """Drive an investment through payment to completion."""

    def _settle(investment_id: str):
        for status in (PaymentStatus.PENDING, PaymentStatus.PROCESSING, PaymentStatus.SUCCEEDED):
            service.apply_payment_event(investment_id, status)
        return service.complete_investment(investment_id)

    return _settle


@pytest.fixture
def invest(service, settle):
    """Create and settle an investment; returns the completed record."""

    def _invest(campaign_id: str, investor_id: str, amount, region=None):
        investment_id = service.create_investment(campaign_id, investor_id, Decimal(str(amount)), region=region)
        return settle(investment_id)

    return _invest
