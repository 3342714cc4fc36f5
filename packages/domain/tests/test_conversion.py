"""Tests for SAFE conversion math.

Example from the pricing docs:
    $50K SAFE, $5M cap, 20% discount
    Round at $1.00/share, 10M fully diluted shares
    cap price $0.50, discount price $0.80 -> cap wins, 100,000 shares
"""

import pytest
from decimal import Decimal

from campaign_ledger.engine import convert_safe, liquidity_payout
from campaign_ledger.errors import ConfigurationError
from campaign_ledger.schemas import ConversionBasis, FinancingEvent, LiquidityEvent, SafeTerms


def terms(amount="50000", cap=None, discount=None):
    return SafeTerms(
        investment_amount=Decimal(amount),
        valuation_cap=Decimal(cap) if cap is not None else None,
        discount_rate=Decimal(discount) if discount is not None else None,
    )


ROUND = FinancingEvent(price_per_share=Decimal("1.00"), fully_diluted_shares=Decimal("10000000"))


# =============================================================================
# Conversion at a priced round
# =============================================================================

def test_cap_and_discount_cap_wins():
    result = convert_safe(terms(cap="5000000", discount="20"), ROUND)

    assert result.cap_price == Decimal("0.5")
    assert result.discount_price == Decimal("0.8")
    assert result.conversion_price == Decimal("0.5")
    assert result.basis == ConversionBasis.CAP
    assert result.shares_issued == Decimal("100000")


def test_cap_and_discount_discount_wins():
    # $20M cap -> $2.00; discount -> $0.80
    result = convert_safe(terms(cap="20000000", discount="20"), ROUND)

    assert result.basis == ConversionBasis.DISCOUNT
    assert result.conversion_price == Decimal("0.8")
    assert result.shares_issued == Decimal("62500")


def test_cap_only():
    result = convert_safe(terms(cap="5000000"), ROUND)

    assert result.basis == ConversionBasis.CAP
    assert result.discount_price is None
    assert result.shares_issued == Decimal("100000")


def test_discount_only():
    result = convert_safe(terms(discount="20"), ROUND)

    assert result.basis == ConversionBasis.DISCOUNT
    assert result.cap_price is None
    assert result.conversion_price == Decimal("0.8")
    assert result.shares_issued == Decimal("62500")


def test_zero_discount_converts_at_round_price():
    result = convert_safe(terms(discount="0"), ROUND)

    assert result.conversion_price == ROUND.price_per_share
    assert result.shares_issued == Decimal("50000")


def test_tie_reports_cap():
    # $8M cap / 10M = $0.80 == $1.00 * (1 - 20%)
    result = convert_safe(terms(cap="8000000", discount="20"), ROUND)

    assert result.basis == ConversionBasis.CAP
    assert result.conversion_price == Decimal("0.8")


def test_fractional_shares_are_exact():
    # 70% discount on $1.00: $1,000 / $0.30 = 3,333.33... shares
    event = FinancingEvent(price_per_share=Decimal("1"), fully_diluted_shares=Decimal("1000"))
    result = convert_safe(terms(amount="1000", discount="70"), event)

    assert result.conversion_price == Decimal("0.3")
    assert result.shares_issued == Decimal("1000") / Decimal("0.3")
    assert result.shares_issued > Decimal("3333.33")
    assert result.whole_shares_issued == Decimal("3333")


def test_as_converted_value_uses_exact_shares():
    # 3,333.33... shares * $0.60 exit = $2,000, not 3,333 * 0.60 = $1,999.80
    event = LiquidityEvent(exit_price_per_share=Decimal("0.60"), fully_diluted_shares=Decimal("1000"))
    payout = liquidity_payout(terms(amount="1000", discount="50"), event)

    assert payout.conversion.whole_shares_issued == Decimal("3333")
    assert payout.as_converted_value.quantize(Decimal("0.01")) == Decimal("2000.00")
    assert payout.payout == payout.as_converted_value


# =============================================================================
# Configuration errors
# =============================================================================

def test_neither_cap_nor_discount_is_error():
    with pytest.raises(ConfigurationError, match="neither valuation_cap nor discount_rate"):
        convert_safe(terms(), ROUND)


def test_zero_fully_diluted_shares_is_error():
    event = FinancingEvent(price_per_share=Decimal("1.00"), fully_diluted_shares=Decimal("0"))
    with pytest.raises(ConfigurationError, match="fully_diluted_shares"):
        convert_safe(terms(cap="5000000"), event)


def test_full_discount_is_error():
    with pytest.raises(ConfigurationError, match="must be positive"):
        convert_safe(terms(discount="100"), ROUND)


# =============================================================================
# Liquidity events
# =============================================================================

class TestLiquidityPayout:
    """Investor receives max(principal, as-converted value)."""

    def test_as_converted_value_above_principal(self):
        # Converts at the $0.50 cap price: 100,000 shares * $3.00 = $300,000
        event = LiquidityEvent(exit_price_per_share=Decimal("3.00"), fully_diluted_shares=Decimal("10000000"))
        payout = liquidity_payout(terms(cap="5000000", discount="20"), event)

        assert payout.conversion.shares_issued == Decimal("100000")
        assert payout.as_converted_value == Decimal("300000")
        assert payout.payout == Decimal("300000")
        assert payout.principal_protected is False

    def test_principal_protected_on_low_exit(self):
        # $0.10 exit: discount price $0.08 -> 625,000 shares * $0.10 = $62,500
        # cap price $0.50 loses; as converted is above principal here
        event = LiquidityEvent(exit_price_per_share=Decimal("0.10"), fully_diluted_shares=Decimal("10000000"))
        payout = liquidity_payout(terms(cap="5000000", discount="20"), event)
        assert payout.payout == Decimal("62500")

        # Cap only: 100,000 shares * $0.10 = $10,000 < $50,000 principal
        payout = liquidity_payout(terms(cap="5000000"), event)
        assert payout.as_converted_value == Decimal("10000")
        assert payout.payout == Decimal("50000")
        assert payout.principal_protected is True

    def test_liquidity_without_terms_is_error(self):
        event = LiquidityEvent(exit_price_per_share=Decimal("3.00"), fully_diluted_shares=Decimal("10000000"))
        with pytest.raises(ConfigurationError):
            liquidity_payout(terms(), event)
