"""
Process-wide shop services.

get_shop() builds the collaborators every shop view shares (index service,
filter service, link generator, fallback filter definition) once from
settings. They are read-only for the lifetime of the process and are
rebuilt when a SHOP_* setting changes (e.g. under override_settings).
"""

import functools
import logging

from django.conf import settings
from django.core.signals import setting_changed
from django.dispatch import receiver
from django.utils.functional import cached_property

from .filters import FilterService
from .index import IndexService
from .links import ProductLinkGenerator
from .models import FilterDefinition

logger = logging.getLogger(__name__)


class Shop:

    def __init__(self, index_service, filter_service, link_generator,
                 fallback_filter_definition_name='', page_range=5, autocomplete_limit=10):
        self.index_service = index_service
        self.filter_service = filter_service
        self.link_generator = link_generator
        self.fallback_filter_definition_name = fallback_filter_definition_name
        self.page_range = page_range
        self.autocomplete_limit = autocomplete_limit

    @cached_property
    def fallback_filter_definition(self):
        """
        The configured fallback definition, loaded on first use.

        Falls back to an unsaved default definition when none is configured
        or the configured one does not exist.
        """
        name = self.fallback_filter_definition_name
        if name:
            definition = FilterDefinition.objects.filter(name=name).first()
            if definition is not None:
                return definition
            logger.warning('Fallback filter definition %r not found, using defaults', name)
        return FilterDefinition.default()


@functools.lru_cache(maxsize=None)
def get_shop():
    return Shop(
        index_service=IndexService(settings.SHOP_INDEX_TENANTS, settings.SHOP_CURRENT_TENANT),
        filter_service=FilterService(),
        link_generator=ProductLinkGenerator(),
        fallback_filter_definition_name=settings.SHOP_FALLBACK_FILTER_DEFINITION,
        page_range=settings.SHOP_PAGE_RANGE,
        autocomplete_limit=settings.SHOP_AUTOCOMPLETE_LIMIT,
    )


@receiver(setting_changed)
def reset_shop(setting, **kwargs):
    """Rebuild the shop services when a test overrides a SHOP_* setting."""
    if setting.startswith('SHOP_'):
        get_shop.cache_clear()
