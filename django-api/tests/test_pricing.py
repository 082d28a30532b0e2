"""Unit tests for price calculation.

Run with: pytest tests/test_pricing.py -v
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from events.domain import Money
from registrations.domain import DiscountType, PromoCode, calculate_price

BASE = Money(amount=Decimal("1000"))


def promo(discount_type: DiscountType, value: str, is_active: bool = True) -> PromoCode:
    return PromoCode(
        id=uuid4(),
        code="TEST",
        discount_type=discount_type,
        discount_value=Decimal(value),
        usage_limit=100,
        is_active=is_active,
    )


class TestCalculatePrice:
    """Tests for calculate_price."""

    def test_no_promo_code(self):
        """Without a code the base price is charged."""
        price = calculate_price(BASE)
        assert price.final_price == BASE
        assert price.discount_amount == Money.zero()

    def test_percentage_discount(self):
        """base=1000, percentage 10 -> final 900, discount 100."""
        price = calculate_price(BASE, promo(DiscountType.PERCENTAGE, "10"))
        assert price.final_price.amount == Decimal("900.00")
        assert price.discount_amount.amount == Decimal("100.00")

    def test_amount_discount(self):
        """base=1000, amount 150 -> final 850, discount 150."""
        price = calculate_price(BASE, promo(DiscountType.AMOUNT, "150"))
        assert price.final_price.amount == Decimal("850.00")
        assert price.discount_amount.amount == Decimal("150.00")

    def test_inactive_promo_is_ignored(self):
        """An inactive code leaves the price untouched."""
        price = calculate_price(BASE, promo(DiscountType.PERCENTAGE, "50", is_active=False))
        assert price.final_price == BASE
        assert price.discount_amount.is_zero()

    @pytest.mark.parametrize(
        "discount_type,value,discount",
        [
            (DiscountType.AMOUNT, "1000", "1000"),
            (DiscountType.AMOUNT, "1500", "1500"),
            (DiscountType.PERCENTAGE, "100", "1000"),
            (DiscountType.PERCENTAGE, "150", "1500"),
        ],
    )
    def test_final_price_never_below_zero(self, discount_type, value, discount):
        """Oversized discounts floor the final price at zero."""
        price = calculate_price(BASE, promo(discount_type, value))
        assert price.final_price.is_zero()
        assert price.discount_amount.amount == Decimal(discount)

    def test_amount_larger_than_base_is_reported_in_full(self):
        """base=100, amount 150 -> final 0, discount 150."""
        price = calculate_price(Money(amount=Decimal("100")), promo(DiscountType.AMOUNT, "150"))
        assert price.final_price.is_zero()
        assert price.discount_amount.amount == Decimal("150.00")

    def test_percentage_rounds_to_cents(self):
        """Fractional percentage discounts are rounded to whole cents."""
        price = calculate_price(Money(amount=Decimal("99.99")), promo(DiscountType.PERCENTAGE, "15"))
        assert price.discount_amount.amount == Decimal("15.00")
        assert price.final_price.amount == Decimal("84.99")

    def test_zero_discount(self):
        price = calculate_price(BASE, promo(DiscountType.AMOUNT, "0"))
        assert price.final_price == BASE
        assert price.discount_amount.is_zero()
