import uuid

import django.db.models.expressions
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("title", models.CharField(max_length=100)),
                ("description", models.TextField(blank=True)),
                ("location", models.CharField(max_length=255)),
                ("date", models.DateTimeField()),
                ("capacity", models.PositiveIntegerField()),
                ("registered_count", models.PositiveIntegerField(default=0)),
                (
                    "price",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True),
                ),
                ("image_url", models.URLField(blank=True, max_length=500, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["date"],
                "indexes": [models.Index(fields=["date"], name="event_date_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("capacity__gte", 1)),
                        name="event_capacity_at_least_one",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("registered_count__lte", django.db.models.expressions.F("capacity"))
                        ),
                        name="event_registered_count_within_capacity",
                    ),
                ],
            },
        ),
    ]
