from django.contrib import admin

from events.models import Event


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ["title", "location", "date", "capacity", "registered_count", "price"]
    search_fields = ["title", "location"]
    readonly_fields = ["registered_count", "created_at", "updated_at"]
    ordering = ["-date"]
