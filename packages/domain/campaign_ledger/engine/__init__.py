"""Ledger engine: calculators, state machine, storage and the service facade.

Architecture:
    Schemas (records) -> Engine (rules + storage) -> Blocks (report frames)

Pure calculators (safe to call from any thread):
- fees.resolve_fee: tier resolution and rounding
- conversion.convert_safe / liquidity_payout: SAFE conversion math
- aggregator.compute_campaign_stats: funding stats from the ledger
- eligibility.check_withdrawal: withdrawal gate

Stateful pieces:
- store.InMemoryLedgerStore: versioned campaign aggregates
- service.LedgerService: the operations callers use

Usage:
    from campaign_ledger.engine import LedgerService

    service = LedgerService()
    campaign = service.create_campaign(...)
"""

from .aggregator import StatsCache, clamp_progress, compute_campaign_stats, reconcile
from .collaborators import KycService, NotificationSink, RecordingNotificationSink, StaticKycDirectory
from .conversion import convert_safe, liquidity_payout, whole_shares
from .eligibility import check_withdrawal, compute_balance
from .fees import FREE_TIER_NAME, normalize_region, resolve_fee, select_tier
from .service import LedgerReport, LedgerService, to_decimal
from .state_machine import (
    CAMPAIGN_TRANSITIONS,
    INVESTMENT_TRANSITIONS,
    INVESTOR_CANCELLABLE,
    WITHDRAWAL_TRANSITIONS,
    can_transition,
    payment_target,
    validate_transition,
)
from .store import InMemoryLedgerStore, LedgerSnapshot

__all__ = [
    "LedgerService",
    "LedgerReport",
    "InMemoryLedgerStore",
    "LedgerSnapshot",
    "StatsCache",
    "KycService",
    "NotificationSink",
    "StaticKycDirectory",
    "RecordingNotificationSink",
    "resolve_fee",
    "select_tier",
    "normalize_region",
    "FREE_TIER_NAME",
    "convert_safe",
    "liquidity_payout",
    "whole_shares",
    "compute_campaign_stats",
    "clamp_progress",
    "reconcile",
    "compute_balance",
    "check_withdrawal",
    "can_transition",
    "validate_transition",
    "payment_target",
    "INVESTMENT_TRANSITIONS",
    "CAMPAIGN_TRANSITIONS",
    "WITHDRAWAL_TRANSITIONS",
    "INVESTOR_CANCELLABLE",
    "to_decimal",
]
