"""App configuration for the products app."""

from django.apps import AppConfig


class ProductsConfig(AppConfig):
    """Catalogue, product index and shop pages."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'products'
    verbose_name = 'Shop'

    def ready(self):
        from . import shop  # noqa: F401  registers the settings-reset receiver
