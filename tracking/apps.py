"""App configuration for the tracking app."""

from django.apps import AppConfig


class TrackingConfig(AppConfig):
    """Analytics events and visitor segments."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'tracking'
    verbose_name = 'Tracking'
