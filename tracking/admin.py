"""Django admin configuration for the tracking app."""

from django.contrib import admin

from .models import TrackingEvent


@admin.register(TrackingEvent)
class TrackingEventAdmin(admin.ModelAdmin):
    """Read-only browser for recorded analytics events."""

    list_display = ('event_type', 'product_name', 'category_name', 'placement', 'created_at')
    list_filter = ('event_type', 'placement')
    search_fields = ('product_name', 'category_name')
    readonly_fields = [f.name for f in TrackingEvent._meta.fields]

    def has_add_permission(self, request):
        return False
