"""Fee tier resolution.

Pure function of (amount, region, schedule). Safe to call concurrently.

Selection precedence (default):
    1. Tiers for the exact region beat global tiers.
    2. Among tiers whose [min_amount, max_amount] band contains the amount,
       the narrowest band wins.
       Open-ended bands are infinitely wide, so they are only used when no
       closed band contains the amount; among those the one with the
       highest lower bound wins.

Amounts below the schedule's free threshold pay 0% in every region.

Rounding:
    fee_amount = round_half_up(amount * fee_percentage / 100, minor_unit)
"""

import re
from decimal import Decimal
from typing import Iterable, List, Optional

from ..errors import ConfigurationError, ValidationError
from ..schemas import FeeQuote, FeeSchedule, FeeTierRule, GLOBAL_REGION, REGION_PATTERN, quantize_money

FREE_TIER_NAME = "free"

_REGION_PATTERN = re.compile(REGION_PATTERN)


def normalize_region(region: Optional[str]) -> str:
    """Lowercase and validate a region code. Empty means global."""
    if region is None:
        return GLOBAL_REGION
    if not isinstance(region, str):
        raise ValidationError(f"Region must be a string, got {type(region).__name__}")
    normalized = region.strip().lower()
    if not normalized:
        return GLOBAL_REGION
    if not _REGION_PATTERN.match(normalized):
        raise ValidationError(f"Malformed region code: {region!r}")
    return normalized


def _narrowest(tiers: Iterable[FeeTierRule]) -> Optional[FeeTierRule]:
    # Ties on width go to the higher lower bound, then regional over global
    ordered = sorted(
        tiers,
        key=lambda t: (t.width(), -t.min_amount, t.is_global),
    )
    return ordered[0] if ordered else None


def select_tier(amount: Decimal, region: str, schedule: FeeSchedule) -> FeeTierRule:
    """Pick the fee tier for an amount.

    Args:
        amount: Investment amount
        region: Normalized region code
        schedule: Fee schedule snapshot

    Returns:
        The tier that applies

    Raises:
        ConfigurationError: If no tier covers the amount
    """
    regional: List[FeeTierRule] = [
        t for t in schedule.tiers if t.region == region and not t.is_global
    ]
    global_tiers: List[FeeTierRule] = [t for t in schedule.tiers if t.is_global]

    if schedule.region_precedence:
        candidate_groups = [regional, global_tiers]
    else:
        candidate_groups = [regional + global_tiers]

    for group in candidate_groups:
        tier = _narrowest(t for t in group if t.contains(amount))
        if tier is not None:
            return tier

    raise ConfigurationError(
        f"Fee schedule '{schedule.version}' has no tier covering {amount} for region '{region}'"
    )


def effective_percentage(tier: FeeTierRule, region: str, schedule: FeeSchedule) -> Decimal:
    """Apply the regional adjustment to a global tier's rate."""
    if not tier.is_global or region == GLOBAL_REGION:
        return tier.fee_percentage
    adjustment = schedule.regional_adjustments.get(region)
    if adjustment is None:
        return tier.fee_percentage
    return tier.fee_percentage * (Decimal("1") + Decimal(adjustment) / Decimal("100"))


def resolve_fee(amount: Decimal, region: Optional[str], schedule: FeeSchedule) -> FeeQuote:
    """Resolve the platform fee for an amount.

    Args:
        amount: Amount the fee is charged on (non-negative)
        region: Investor region code; None or "" means global
        schedule: Versioned fee schedule snapshot

    Returns:
        FeeQuote with tier name, percentage and rounded fee amount

    Raises:
        ValidationError: Negative amount or malformed region
        ConfigurationError: No tier covers the amount

    Example:
        Global 5% tier, asia-pacific adjustment -10%, amount $5,000:
        fee_percentage = 5 * 0.9 = 4.5
        fee_amount = 5000 * 4.5 / 100 = 225.00
    """
    amount = Decimal(amount)
    if amount < 0:
        raise ValidationError(f"Fee amount must be non-negative, got {amount}")
    region = normalize_region(region)

    if amount < schedule.free_threshold:
        return FeeQuote(
            tier_name=FREE_TIER_NAME,
            region=region,
            fee_percentage=Decimal("0"),
            fee_amount=quantize_money(Decimal("0"), schedule.minor_unit),
            schedule_version=schedule.version,
        )

    tier = select_tier(amount, region, schedule)
    percentage = effective_percentage(tier, region, schedule)
    fee_amount = quantize_money(amount * percentage / Decimal("100"), schedule.minor_unit)

    return FeeQuote(
        tier_name=tier.name,
        region=region,
        fee_percentage=percentage,
        fee_amount=fee_amount,
        schedule_version=schedule.version,
    )
