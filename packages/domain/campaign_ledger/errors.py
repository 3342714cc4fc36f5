"""Typed errors returned by the ledger engine.

Every refusal is surfaced as one of these exceptions; none are swallowed or
converted into a generic success. Only ``ConcurrencyConflict`` is retried by
the engine itself.
"""

from decimal import Decimal
from typing import Optional


class LedgerError(Exception):
    """Base class for all ledger errors."""

    code = "ledger_error"


class ValidationError(LedgerError):
    """Input rejected before any state change (amount below minimum, bad region, ...)."""

    code = "validation_error"


class NotFoundError(LedgerError):
    """Referenced campaign, investment, agreement or withdrawal does not exist."""

    code = "not_found"

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"Unknown {entity} '{entity_id}'")


class InvalidStateTransition(LedgerError):
    """Requested transition is not in the allowed-transition table."""

    code = "invalid_state_transition"

    def __init__(self, entity: str, entity_id: str, from_status: str, to_status: str):
        self.entity = entity
        self.entity_id = entity_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"{entity} '{entity_id}' cannot move from '{from_status}' to '{to_status}'"
        )


class ConfigurationError(LedgerError):
    """Terms or reference data make the computation undefined."""

    code = "configuration_error"


class ConcurrencyConflict(LedgerError):
    """Optimistic version check failed for a campaign aggregate."""

    code = "concurrency_conflict"

    def __init__(self, campaign_id: str, expected_version: int, actual_version: int):
        self.campaign_id = campaign_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Campaign '{campaign_id}' changed concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )


# =============================================================================
# Withdrawal eligibility
# =============================================================================

class EligibilityError(LedgerError):
    """Withdrawal refused. Subclasses name the failed precondition."""

    code = "eligibility_error"


class KycNotVerified(EligibilityError):
    code = "kyc_not_verified"

    def __init__(self, founder_id: str, kyc_status: Optional[str]):
        self.founder_id = founder_id
        self.kyc_status = kyc_status
        super().__init__(f"KYC for founder '{founder_id}' is '{kyc_status}', not 'verified'")


class GoalNotReached(EligibilityError):
    code = "goal_not_reached"

    def __init__(self, progress_percent: Decimal, required_percent: Decimal):
        self.progress_percent = progress_percent
        self.required_percent = required_percent
        super().__init__(
            f"Campaign progress {progress_percent}% is below the required {required_percent}%"
        )


class BelowMinimumWithdrawal(EligibilityError):
    code = "below_minimum_withdrawal"

    def __init__(self, amount: Decimal, minimum: Decimal):
        self.amount = amount
        self.minimum = minimum
        super().__init__(f"Withdrawal {amount} is below the minimum of {minimum}")


class InsufficientBalance(EligibilityError):
    code = "insufficient_balance"

    def __init__(self, amount: Decimal, available: Decimal):
        self.amount = amount
        self.available = available
        super().__init__(f"Withdrawal {amount} exceeds available balance {available}")
