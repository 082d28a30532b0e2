"""Unit tests for domain primitives.

These test invariants that must hold at construction time.
Run with: pytest tests/test_domain.py -v
"""

from datetime import timedelta
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from django.utils import timezone

from events.domain import Capacity, Event, Money, parse_uuid
from registrations.domain import DiscountType, PromoCode


class TestMoney:
    """Tests for Money value object."""

    def test_money_accepts_positive_amount(self):
        """Money can be created with positive amount."""
        assert Money(amount=Decimal("12.5")).amount == Decimal("12.50")

    def test_money_accepts_zero(self):
        """Money can be created with zero."""
        assert Money.zero().is_zero()

    def test_money_rejects_negative_amount(self):
        """Money raises ValueError for negative amount."""
        with pytest.raises(ValueError):
            Money(amount=Decimal("-0.01"))

    def test_money_rounds_half_up_to_cents(self):
        """Fractions of a cent are rounded half up."""
        assert Money(amount=Decimal("10.005")).amount == Decimal("10.01")
        assert Money(amount=Decimal("10.004")).amount == Decimal("10.00")

    def test_money_str_format(self):
        """Money string representation is formatted to 2 decimal places."""
        assert str(Money(amount=Decimal("900"))) == "900.00"

    def test_minor_units(self):
        """Amounts convert to and from kopiykas."""
        assert Money(amount=Decimal("850.25")).minor_units == 85025
        assert Money.from_minor_units(90000) == Money(amount=Decimal("900"))


class TestCapacity:
    """Tests for Capacity value object."""

    def test_capacity_accepts_positive_value(self):
        """Capacity can be created with positive value."""
        assert Capacity(value=1).value == 1

    def test_capacity_rejects_zero(self):
        """An event offers at least one seat."""
        with pytest.raises(ValueError):
            Capacity(value=0)

    def test_capacity_rejects_negative_value(self):
        """Capacity raises ValueError for negative value."""
        with pytest.raises(ValueError):
            Capacity(value=-5)


class TestParseUuid:
    """Tests for identifier parsing."""

    def test_valid_uuid(self):
        """Parses valid UUID strings and passes UUIDs through."""
        value = uuid4()
        assert parse_uuid(str(value)) == value
        assert parse_uuid(value) is value

    def test_invalid_uuid(self):
        """Raises ValueError for malformed input."""
        with pytest.raises(ValueError):
            parse_uuid("not-a-uuid")


class TestEvent:
    """Tests for Event domain model."""

    def _event(self, **overrides) -> Event:
        fields = {
            "id": UUID(int=1),
            "title": "Night Run",
            "location": "Lviv",
            "date": timezone.now() + timedelta(days=1),
            "capacity": Capacity(value=2),
            "registered_count": 0,
        }
        fields.update(overrides)
        return Event(**fields)

    def test_open_only_before_start(self):
        """Registration closes once the event starts."""
        now = timezone.now()
        assert self._event(date=now + timedelta(minutes=1)).is_open_at(now)
        assert not self._event(date=now).is_open_at(now)
        assert not self._event(date=now - timedelta(days=1)).is_open_at(now)

    def test_available_capacity(self):
        """Capacity is available until registered_count reaches capacity."""
        assert self._event(registered_count=1).has_available_capacity
        assert not self._event(registered_count=2).has_available_capacity


class TestPromoCode:
    """Tests for PromoCode domain model."""

    def _promo(self, **overrides) -> PromoCode:
        fields = {
            "id": uuid4(),
            "code": "RUN",
            "discount_type": DiscountType.AMOUNT,
            "discount_value": Decimal("100"),
            "usage_limit": 2,
        }
        fields.update(overrides)
        return PromoCode(**fields)

    def test_exhausted_at_limit(self):
        assert not self._promo(used_count=1).is_exhausted
        assert self._promo(used_count=2).is_exhausted

    def test_expiry(self):
        now = timezone.now()
        assert not self._promo().is_expired_at(now)
        assert self._promo(expiration_date=now - timedelta(seconds=1)).is_expired_at(now)
        assert not self._promo(expiration_date=now + timedelta(days=1)).is_expired_at(now)
