"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
"""

import uuid

from django.db import models
from django.db.models import F, Q


class Event(models.Model):
    """Persistence model for events."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    location = models.CharField(max_length=255)
    date = models.DateTimeField()
    capacity = models.PositiveIntegerField()
    registered_count = models.PositiveIntegerField(default=0)
    price = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    image_url = models.URLField(max_length=500, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["date"]
        indexes = [
            models.Index(fields=["date"], name="event_date_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(capacity__gte=1), name="event_capacity_at_least_one"
            ),
            models.CheckConstraint(
                condition=Q(registered_count__lte=F("capacity")),
                name="event_registered_count_within_capacity",
            ),
        ]

    def __str__(self) -> str:
        return self.title
