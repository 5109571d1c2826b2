"""Tests for Ontario and Toronto land transfer tax."""

from decimal import Decimal

import pytest

from closing_engine.calculations.land_transfer import (
    calculate_land_transfer_tax,
    calculate_toronto_land_transfer_tax,
    marginal_tax,
)
from closing_engine.models.lookups import LAND_TRANSFER_TAX_BRACKETS


class TestOntarioLandTransferTax:
    """Marginal bracket calculation and first-time buyer refund."""

    def test_half_million_home(self):
        """$500,000 spans four brackets: 275 + 1,950 + 2,250 + 2,000."""
        assert calculate_land_transfer_tax(Decimal("500000")) == Decimal("6475.00")

    def test_top_bracket(self):
        """Amounts above $2M are taxed at 2.5%."""
        assert calculate_land_transfer_tax(Decimal("2500000")) == Decimal("48975.00")

    @pytest.mark.parametrize("price,unrounded,rounded", [
        ("54999", "274.995", "275.00"),
        ("55000", "275", "275.00"),
        ("55001", "275.01", "275.01"),
        ("2000000", "36475", "36475.00"),
        ("2000001", "36475.025", "36475.02"),
    ])
    def test_bracket_boundaries(self, price, unrounded, rounded):
        """Each dollar past a boundary is taxed at the next bracket's rate; half cents round to even."""
        assert marginal_tax(Decimal(price), LAND_TRANSFER_TAX_BRACKETS) == Decimal(unrounded)
        assert calculate_land_transfer_tax(Decimal(price)) == Decimal(rounded)

    def test_first_time_buyer_refund(self):
        """First-time buyers get up to $4,000 back."""
        assert calculate_land_transfer_tax(Decimal("500000"), is_first_time_buyer=True) == Decimal("2475.00")

    def test_refund_never_makes_tax_negative(self):
        """A refund larger than the tax only zeroes it."""
        assert calculate_land_transfer_tax(Decimal("40000"), is_first_time_buyer=True) == Decimal("0.00")

    def test_zero_price(self):
        assert calculate_land_transfer_tax(Decimal("0")) == Decimal("0.00")

    def test_negative_price_rejected(self):
        with pytest.raises(ValueError):
            calculate_land_transfer_tax(Decimal("-1"))


class TestTorontoLandTransferTax:
    """Municipal tax mirrors the provincial brackets."""

    def test_matches_provincial_without_refund(self):
        price = Decimal("750000")
        assert calculate_toronto_land_transfer_tax(price) == calculate_land_transfer_tax(price)

    def test_first_time_buyer_refund_is_larger(self):
        """Toronto refunds up to $4,475."""
        assert calculate_toronto_land_transfer_tax(Decimal("500000"), is_first_time_buyer=True) == Decimal("2000.00")
