"""Platform fee reference data.

Fee tiers are static, versioned configuration: a FeeSchedule snapshot is passed
explicitly into fee resolution so a historical fee can always be recomputed
with the schedule that produced it.
"""

import re
from decimal import Decimal
from typing import Dict, List, Optional
from pydantic import Field, field_validator, model_validator

from .base import DomainModel, FrozenModel, MoneyAmount, Percentage, RegionCode, GLOBAL_REGION, REGION_PATTERN


class FeeTierRule(FrozenModel):
    """One fee band for a region.

    A band covers ``min_amount <= amount <= max_amount``; ``max_amount=None``
    makes the band open-ended.

    Examples:
        FeeTierRule(name="standard", region="global", min_amount=1000, fee_percentage=5)
        FeeTierRule(name="eu_large", region="eu", min_amount=50000, max_amount=250000,
                    fee_percentage=3.5)
    """

    name: str = Field(
        min_length=1,
        description="Tier label reported back with each fee quote"
    )

    region: RegionCode = Field(
        default=GLOBAL_REGION,
        description="Region the band applies to, or 'global'"
    )

    min_amount: MoneyAmount = Field(
        default=Decimal("0"),
        description="Inclusive lower bound of the band"
    )

    max_amount: Optional[MoneyAmount] = Field(
        default=None,
        description="Inclusive upper bound of the band. None = open-ended"
    )

    fee_percentage: Percentage = Field(
        description="Fee as a percentage of the amount (5 = 5%)"
    )

    @model_validator(mode='after')
    def validate_band(self):
        if self.max_amount is not None and self.max_amount < self.min_amount:
            raise ValueError("max_amount must be >= min_amount")
        return self

    @property
    def is_open_ended(self) -> bool:
        return self.max_amount is None

    @property
    def is_global(self) -> bool:
        return self.region == GLOBAL_REGION

    def contains(self, amount: Decimal) -> bool:
        if amount < self.min_amount:
            return False
        return self.max_amount is None or amount <= self.max_amount

    def width(self) -> Decimal:
        """Band width; open-ended bands are infinitely wide."""
        if self.max_amount is None:
            return Decimal("Infinity")
        return self.max_amount - self.min_amount


class FeeSchedule(FrozenModel):
    """Versioned snapshot of fee tiers and regional adjustments.

    Regional adjustments are relative: ``{"asia-pacific": -10}`` turns a 5%
    global tier into 4.5% for asia-pacific investors. They only apply when the
    resolved tier is a global tier; a region-specific tier already states its
    own rate.
    """

    version: str = Field(
        min_length=1,
        description="Schedule version recorded on every settled investment"
    )

    tiers: List[FeeTierRule] = Field(
        min_length=1,
        description="Fee bands for 'global' and specific regions"
    )

    regional_adjustments: Dict[str, Decimal] = Field(
        default_factory=dict,
        description="Region -> relative percentage adjustment applied to global tiers"
    )

    free_threshold: MoneyAmount = Field(
        default=Decimal("1000"),
        description="Amounts strictly below this pay no platform fee"
    )

    minor_unit: int = Field(
        default=2,
        ge=0,
        description="Decimal places of the settlement currency"
    )

    region_precedence: bool = Field(
        default=True,
        description="True: an exact region match beats any global band. "
                    "False: the narrowest containing band wins, region only breaks ties."
    )

    @field_validator('regional_adjustments')
    @classmethod
    def validate_adjustments(cls, v: Dict[str, Decimal]) -> Dict[str, Decimal]:
        """Lowercase region keys so they match normalized investor regions."""
        normalized: Dict[str, Decimal] = {}
        for region, adjustment in v.items():
            key = region.strip().lower()
            if not re.match(REGION_PATTERN, key):
                raise ValueError(f"Malformed region code in regional_adjustments: {region!r}")
            if key in normalized:
                raise ValueError(f"Duplicate adjustment for region '{key}'")
            if adjustment <= -100:
                raise ValueError(f"Adjustment for '{key}' would make the fee negative: {adjustment}")
            normalized[key] = adjustment
        return normalized

    @model_validator(mode='after')
    def validate_adjusted_rates(self):
        # Adjusted global rates must stay a valid percentage
        for region, adjustment in self.regional_adjustments.items():
            factor = Decimal("1") + adjustment / Decimal("100")
            for tier in self.tiers:
                if tier.is_global and tier.fee_percentage * factor > 100:
                    raise ValueError(
                        f"Adjustment for '{region}' raises tier '{tier.name}' above 100%: "
                        f"{tier.fee_percentage * factor}"
                    )
        return self


class FeeQuote(DomainModel):
    """Result of resolving a fee for an amount and region."""

    tier_name: str
    region: RegionCode
    fee_percentage: Percentage
    fee_amount: MoneyAmount
    schedule_version: str

