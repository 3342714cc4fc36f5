"""SAFE terms, agreement snapshots and conversion results.

A SAFE (Simple Agreement for Future Equity) entitles the investor to shares in
a future priced round (or cash at a liquidity event) under cap and/or
discount terms.

Key mechanics:
    - cap_price = valuation_cap / fully_diluted_shares
    - discount_price = price_per_share * (1 - discount_rate / 100)
    - conversion_price = min(cap_price, discount_price)
    - shares_issued = investment_amount / conversion_price

Example with both cap and discount:
    SAFE: $50K investment, $5M cap, 20% discount
    Priced round: $1.00/share, 10M fully diluted shares

    Via cap: $5M / 10M = $0.50
    Via discount: $1.00 * 0.8 = $0.80

    Cap wins: $50K / $0.50 = 100K shares
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import Field

from .base import (
    DomainModel,
    FrozenModel,
    InvestmentId,
    MoneyAmount,
    PositiveAmount,
    Percentage,
    ShareCount,
)


class ConversionBasis(str, Enum):
    CAP = "cap"
    DISCOUNT = "discount"


# =============================================================================
# SAFE Terms
# =============================================================================

class SafeTerms(FrozenModel):
    """Economic terms of one investor's SAFE.

    Unlike the campaign, terms are allowed to carry neither cap nor discount:
    that configuration is refused at conversion time with a
    ConfigurationError instead of silently converting at the round price.
    """

    investment_amount: PositiveAmount = Field(
        description="Principal invested via the SAFE"
    )

    valuation_cap: Optional[PositiveAmount] = Field(
        default=None,
        description="Valuation cap for conversion"
    )

    discount_rate: Optional[Percentage] = Field(
        default=None,
        description="Discount on the round price, 0-100 (20 = 20% discount)"
    )


class SafeAgreementSnapshot(FrozenModel):
    """Immutable SAFE agreement issued for a completed investment.

    Corrections never edit a snapshot: a new snapshot is issued with
    ``supersedes`` pointing at the one it replaces.
    """

    agreement_id: str
    investment_id: InvestmentId
    investment_amount: PositiveAmount
    valuation_cap: Optional[PositiveAmount] = None
    discount_rate: Optional[Percentage] = None
    company_name: str = Field(min_length=1)
    investor_name: str = Field(min_length=1)
    agreement_date: datetime

    supersedes: Optional[str] = Field(
        default=None,
        description="agreement_id of the snapshot this one replaces"
    )

    def terms(self) -> SafeTerms:
        return SafeTerms(
            investment_amount=self.investment_amount,
            valuation_cap=self.valuation_cap,
            discount_rate=self.discount_rate,
        )


# =============================================================================
# Triggering Events
# =============================================================================

class FinancingEvent(DomainModel):
    """Priced round that triggers SAFE conversion."""

    price_per_share: PositiveAmount = Field(
        description="Price per share paid by new-money investors in the round"
    )

    fully_diluted_shares: ShareCount = Field(
        description="Fully diluted share count used as the cap-price denominator"
    )


class LiquidityEvent(DomainModel):
    """Change of control or IPO before any priced round.

    The SAFE converts at the exit price and the investor receives the greater
    of the principal and the as-converted value.
    """

    exit_price_per_share: PositiveAmount = Field(
        description="Per-share price paid at the liquidity event"
    )

    fully_diluted_shares: ShareCount = Field(
        description="Fully diluted share count at the liquidity event"
    )

    def as_financing_event(self) -> FinancingEvent:
        return FinancingEvent(
            price_per_share=self.exit_price_per_share,
            fully_diluted_shares=self.fully_diluted_shares,
        )


# =============================================================================
# Results
# =============================================================================

class ConversionResult(DomainModel):
    """Outcome of converting a SAFE at a financing event."""

    conversion_price: Decimal = Field(gt=0)
    shares_issued: ShareCount = Field(
        description="investment_amount / conversion_price, unrounded"
    )
    whole_shares_issued: ShareCount = Field(
        description="shares_issued with the fractional share dropped"
    )
    basis: ConversionBasis = Field(
        description="Which bound produced the conversion price"
    )
    cap_price: Optional[Decimal] = Field(
        default=None,
        description="Cap-derived price, None when no cap is set"
    )
    discount_price: Optional[Decimal] = Field(
        default=None,
        description="Discount-derived price, None when no discount is set"
    )


class LiquidityPayout(DomainModel):
    """Cash owed to a SAFE holder at a liquidity event."""

    payout: MoneyAmount
    principal: MoneyAmount
    as_converted_value: MoneyAmount
    conversion: ConversionResult
    principal_protected: bool = Field(
        description="True when the principal exceeded the as-converted value"
    )
