"""Base classes and type system for campaign ledger models.

This module provides the foundational types, validators, and base classes
used throughout the ledger schema system.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Annotated
from pydantic import BaseModel, Field, ConfigDict

# =============================================================================
# Base Model
# =============================================================================

class DomainModel(BaseModel):
    """Base class for all ledger domain models.

    Provides common configuration for all Pydantic models in the domain layer:
    - Validation on assignment for runtime safety
    - Support for Decimal and datetime types
    - Enum members kept as members (status enums are compared, not strings)
    """

    model_config = ConfigDict(
        frozen=False,
        validate_assignment=True,
        arbitrary_types_allowed=True,
    )


class FrozenModel(DomainModel):
    """Base class for records that may never be edited after creation."""

    model_config = ConfigDict(
        frozen=True,
        arbitrary_types_allowed=True,
    )


# =============================================================================
# Type Aliases - Numeric
# =============================================================================

MoneyAmount = Annotated[
    Decimal,
    Field(ge=0, description="Currency amount (non-negative)")
]

PositiveAmount = Annotated[
    Decimal,
    Field(gt=0, description="Currency amount (strictly positive)")
]

Percentage = Annotated[
    Decimal,
    Field(ge=0, le=100, description="Percentage on a 0-100 scale (20 = 20%)")
]

ShareCount = Annotated[
    Decimal,
    Field(ge=0, description="Number of shares (non-negative)")
]


# =============================================================================
# ID Conventions
# =============================================================================

CampaignId = Annotated[str, Field(min_length=1, description="Campaign identifier")]

InvestmentId = Annotated[str, Field(min_length=1, description="Investment identifier")]

UserId = Annotated[
    str,
    Field(min_length=1, description="Investor or founder identifier (owned by the auth collaborator)")
]

REGION_PATTERN = r'^[a-z][a-z0-9_-]*$'

RegionCode = Annotated[
    str,
    Field(
        pattern=REGION_PATTERN,
        description="Lowercase region code, or 'global' for the default tier set (e.g., 'asia-pacific')"
    )
]

GLOBAL_REGION = "global"


# =============================================================================
# Currency Rounding
# =============================================================================

def quantize_money(amount: Decimal, minor_unit: int = 2) -> Decimal:
    """Round an amount to the currency minor unit using round-half-up.

    Ties round away from zero: 0.005 -> 0.01, -0.005 -> -0.01.

    Args:
        amount: Unrounded amount
        minor_unit: Number of decimal places of the currency (2 for USD)

    Returns:
        Amount quantized to ``minor_unit`` places
    """
    exponent = Decimal(1).scaleb(-minor_unit)
    return amount.quantize(exponent, rounding=ROUND_HALF_UP)
