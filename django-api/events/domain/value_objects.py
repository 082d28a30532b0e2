"""Domain primitives that enforce validity at creation time."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Self
from uuid import UUID

CENT = Decimal("0.01")


def parse_uuid(value: str | UUID) -> UUID:
    """Parse an identifier, raising ValueError for malformed input."""
    if isinstance(value, UUID):
        return value
    return UUID(str(value))


@dataclass(frozen=True)
class Money:
    """Non-negative amount rounded to whole cents."""

    amount: Decimal

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("Money amount cannot be negative")
        object.__setattr__(
            self, "amount", Decimal(self.amount).quantize(CENT, rounding=ROUND_HALF_UP)
        )

    @classmethod
    def zero(cls) -> Self:
        return cls(amount=Decimal("0"))

    @property
    def minor_units(self) -> int:
        """Amount in the smallest currency unit (kopiykas, cents)."""
        return int(self.amount * 100)

    @classmethod
    def from_minor_units(cls, value: int) -> Self:
        return cls(amount=Decimal(value) / 100)

    def is_zero(self) -> bool:
        return self.amount == 0

    def __str__(self) -> str:
        return f"{self.amount:.2f}"


@dataclass(frozen=True)
class Capacity:
    """Number of seats an event offers. An event always offers at least one."""

    value: int

    def __post_init__(self) -> None:
        if self.value < 1:
            raise ValueError("Capacity must be at least 1")
