"""SAFE conversion math.

Pure functions; no ledger access. The ledger service looks up the SAFE terms
for an investment and delegates here.
"""

from decimal import Decimal, ROUND_DOWN

from ..errors import ConfigurationError
from ..schemas import (
    ConversionBasis,
    ConversionResult,
    FinancingEvent,
    LiquidityEvent,
    LiquidityPayout,
    SafeTerms,
)

INFINITY = Decimal("Infinity")


def whole_shares(shares: Decimal) -> Decimal:
    """Shares a transfer agent can register: the fraction is dropped."""
    return shares.to_integral_value(rounding=ROUND_DOWN)


def convert_safe(terms: SafeTerms, event: FinancingEvent) -> ConversionResult:
    """Compute conversion price and shares for a SAFE at a priced round.

    Args:
        terms: SAFE economic terms (amount, cap, discount)
        event: Financing event (price per share, fully diluted shares)

    Returns:
        ConversionResult with price, shares and the winning bound

    Raises:
        ConfigurationError: Neither cap nor discount set, or zero fully
            diluted shares

    Math:
        cap_price = valuation_cap / fully_diluted_shares      (inf if no cap)
        discount_price = price_per_share * (1 - discount/100) (inf if no discount)
        conversion_price = min(cap_price, discount_price)
        shares_issued = investment_amount / conversion_price
        whole_shares_issued = floor(shares_issued)

    A tie between the two prices is reported as "cap".
    """
    if terms.valuation_cap is None and terms.discount_rate is None:
        raise ConfigurationError(
            "SAFE has neither valuation_cap nor discount_rate; refusing to convert at the round price"
        )
    if event.fully_diluted_shares <= 0:
        raise ConfigurationError("fully_diluted_shares must be greater than zero")

    cap_price = INFINITY
    if terms.valuation_cap is not None:
        cap_price = terms.valuation_cap / event.fully_diluted_shares

    discount_price = INFINITY
    if terms.discount_rate is not None:
        discount_price = event.price_per_share * (
            Decimal("1") - terms.discount_rate / Decimal("100")
        )

    if cap_price <= discount_price:
        conversion_price, basis = cap_price, ConversionBasis.CAP
    else:
        conversion_price, basis = discount_price, ConversionBasis.DISCOUNT

    if conversion_price <= 0:
        raise ConfigurationError(f"Conversion price must be positive, got {conversion_price}")

    shares = terms.investment_amount / conversion_price

    return ConversionResult(
        conversion_price=conversion_price,
        shares_issued=shares,
        whole_shares_issued=whole_shares(shares),
        basis=basis,
        cap_price=cap_price if cap_price.is_finite() else None,
        discount_price=discount_price if discount_price.is_finite() else None,
    )


def liquidity_payout(terms: SafeTerms, event: LiquidityEvent) -> LiquidityPayout:
    """Cash due to a SAFE holder at a liquidity event.

    The holder receives the greater of the principal and the as-converted
    value (shares from conversion at the exit price * exit price), so never
    less than what was invested.
    """
    conversion = convert_safe(terms, event.as_financing_event())
    as_converted = conversion.shares_issued * event.exit_price_per_share
    principal = terms.investment_amount

    return LiquidityPayout(
        payout=max(principal, as_converted),
        principal=principal,
        as_converted_value=as_converted,
        conversion=conversion,
        principal_protected=principal > as_converted,
    )
