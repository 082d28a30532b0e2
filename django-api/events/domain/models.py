"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in events/models.py (persistence layer).
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from events.domain.value_objects import Capacity, Money


@dataclass(frozen=True)
class Event:
    """Domain representation of an Event."""

    id: UUID
    title: str
    location: str
    date: datetime
    capacity: Capacity
    registered_count: int
    price: Money | None = None

    @property
    def has_available_capacity(self) -> bool:
        return self.registered_count < self.capacity.value

    def is_open_at(self, now: datetime) -> bool:
        """Registration is allowed only strictly before the event starts."""
        return self.date > now
