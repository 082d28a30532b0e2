"""Price calculation for registrations."""

from dataclasses import dataclass
from decimal import Decimal

from events.domain.value_objects import Money
from registrations.domain.models import DiscountType, PromoCode

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PriceBreakdown:
    final_price: Money
    discount_amount: Money


def calculate_price(base_price: Money, promo_code: PromoCode | None = None) -> PriceBreakdown:
    """Apply a promo code discount to a base price.

    Inactive codes are ignored. The final price never drops below zero; the
    reported discount is the full discount the code grants.
    """
    if promo_code is None or not promo_code.is_active:
        return PriceBreakdown(final_price=base_price, discount_amount=Money.zero())

    if promo_code.discount_type == DiscountType.PERCENTAGE:
        discount = base_price.amount * promo_code.discount_value / HUNDRED
    else:
        discount = promo_code.discount_value

    discount_amount = Money(amount=discount)
    return PriceBreakdown(
        final_price=Money(amount=max(Decimal("0"), base_price.amount - discount_amount.amount)),
        discount_amount=discount_amount,
    )
