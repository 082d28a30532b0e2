from events.domain.models import Event
from events.domain.value_objects import Capacity, Money, parse_uuid

__all__ = [
    "Event",
    "Money",
    "Capacity",
    "parse_uuid",
]
