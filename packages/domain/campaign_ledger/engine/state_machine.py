"""Allowed-transition tables for money-bearing records.

Every status change in the ledger goes through ``validate_transition``; a
move that is not in the table raises InvalidStateTransition and nothing is
applied.

Investment lifecycle::

    committed -> payment_pending -> payment_processing -> paid -> completed
        |               |                  |
        +---------------+------------------+--> failed | cancelled

completed, failed and cancelled are terminal.
"""

from typing import Dict, FrozenSet, Optional

import structlog

from ..errors import InvalidStateTransition
from ..schemas import (
    CampaignStatus,
    InvestmentStatus,
    PaymentStatus,
    WithdrawalStatus,
)

logger = structlog.get_logger()

_IS = InvestmentStatus

INVESTMENT_TRANSITIONS: Dict[InvestmentStatus, FrozenSet[InvestmentStatus]] = {
    _IS.COMMITTED: frozenset({_IS.PAYMENT_PENDING, _IS.FAILED, _IS.CANCELLED}),
    _IS.PAYMENT_PENDING: frozenset({_IS.PAYMENT_PROCESSING, _IS.FAILED, _IS.CANCELLED}),
    _IS.PAYMENT_PROCESSING: frozenset({_IS.PAID, _IS.FAILED, _IS.CANCELLED}),
    _IS.PAID: frozenset({_IS.COMPLETED}),
    _IS.COMPLETED: frozenset(),
    _IS.FAILED: frozenset(),
    _IS.CANCELLED: frozenset(),
}

# Investors may only cancel before money moves
INVESTOR_CANCELLABLE: FrozenSet[InvestmentStatus] = frozenset({
    _IS.COMMITTED,
    _IS.PAYMENT_PENDING,
})

_CS = CampaignStatus

CAMPAIGN_TRANSITIONS: Dict[CampaignStatus, FrozenSet[CampaignStatus]] = {
    _CS.DRAFT: frozenset({_CS.ACTIVE, _CS.CANCELLED}),
    _CS.ACTIVE: frozenset({_CS.PAUSED, _CS.COMPLETED, _CS.CANCELLED}),
    _CS.PAUSED: frozenset({_CS.ACTIVE, _CS.COMPLETED, _CS.CANCELLED}),
    _CS.COMPLETED: frozenset(),
    _CS.CANCELLED: frozenset(),
}

_WS = WithdrawalStatus

WITHDRAWAL_TRANSITIONS: Dict[WithdrawalStatus, FrozenSet[WithdrawalStatus]] = {
    _WS.PENDING: frozenset({_WS.APPROVED, _WS.REJECTED}),
    _WS.APPROVED: frozenset({_WS.COMPLETED}),
    _WS.COMPLETED: frozenset(),
    _WS.REJECTED: frozenset(),
}

# Gateway payment state -> investment status it drives
PAYMENT_STATUS_TARGETS: Dict[PaymentStatus, Optional[InvestmentStatus]] = {
    PaymentStatus.NOT_STARTED: None,
    PaymentStatus.PENDING: _IS.PAYMENT_PENDING,
    PaymentStatus.PROCESSING: _IS.PAYMENT_PROCESSING,
    PaymentStatus.SUCCEEDED: _IS.PAID,
    PaymentStatus.FAILED: _IS.FAILED,
    PaymentStatus.CANCELLED: _IS.CANCELLED,
}

_TABLES = {
    "investment": INVESTMENT_TRANSITIONS,
    "campaign": CAMPAIGN_TRANSITIONS,
    "withdrawal": WITHDRAWAL_TRANSITIONS,
}


def can_transition(entity: str, from_status, to_status) -> bool:
    table = _TABLES[entity]
    return to_status in table[from_status]


def validate_transition(entity: str, entity_id: str, from_status, to_status) -> None:
    """Raise InvalidStateTransition unless the table allows the move.

    Args:
        entity: "investment", "campaign" or "withdrawal"
        entity_id: Id used in the error and log line
        from_status: Current status enum member
        to_status: Requested status enum member
    """
    if can_transition(entity, from_status, to_status):
        return

    logger.warning(
        "invalid_state_transition",
        entity=entity,
        entity_id=entity_id,
        from_status=from_status.value,
        to_status=to_status.value,
    )
    raise InvalidStateTransition(entity, entity_id, from_status.value, to_status.value)


def payment_target(payment_status: PaymentStatus) -> Optional[InvestmentStatus]:
    return PAYMENT_STATUS_TARGETS[payment_status]


def _check_tables_exhaustive() -> None:
    for enum_cls, table in (
        (InvestmentStatus, INVESTMENT_TRANSITIONS),
        (CampaignStatus, CAMPAIGN_TRANSITIONS),
        (WithdrawalStatus, WITHDRAWAL_TRANSITIONS),
    ):
        missing = set(enum_cls) - set(table)
        if missing:
            raise RuntimeError(f"Transition table for {enum_cls.__name__} misses {sorted(m.value for m in missing)}")
    missing_payment = set(PaymentStatus) - set(PAYMENT_STATUS_TARGETS)
    if missing_payment:
        raise RuntimeError(f"Payment mapping misses {sorted(m.value for m in missing_payment)}")


_check_tables_exhaustive()
