"""
Index service: hands out product listings for the configured tenant.

Tenants are declared in settings.SHOP_INDEX_TENANTS, each naming a backend
class by dotted path plus its options, the same way Django configures
CACHES. SHOP_CURRENT_TENANT selects the tenant the storefront reads from.
"""

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from .base import (
    ORDER_FIELDS,
    VARIANT_MODE_INCLUDE,
    VARIANT_MODE_VARIANTS_ONLY,
    IndexBackend,
    ProductListing,
)

__all__ = [
    'ORDER_FIELDS',
    'VARIANT_MODE_INCLUDE',
    'VARIANT_MODE_VARIANTS_ONLY',
    'IndexBackend',
    'IndexService',
    'ProductListing',
]


class IndexService:
    """Builds one backend per tenant and serves listings for the current one."""

    def __init__(self, tenants, current_tenant):
        self.backends = {
            name: self._load_backend(name, options)
            for name, options in tenants.items()
        }
        if current_tenant not in self.backends:
            raise ImproperlyConfigured(
                f'SHOP_CURRENT_TENANT {current_tenant!r} is not declared in SHOP_INDEX_TENANTS.'
            )
        self.current_tenant = current_tenant

    @staticmethod
    def _load_backend(name, options):
        path = options.get('BACKEND')
        if not path:
            raise ImproperlyConfigured(f'Index tenant {name!r} has no BACKEND.')
        try:
            backend_class = import_string(path)
        except ImportError as exc:
            raise ImproperlyConfigured(
                f'Index tenant {name!r}: cannot import backend {path!r}.'
            ) from exc
        if not issubclass(backend_class, IndexBackend):
            raise ImproperlyConfigured(
                f'Index tenant {name!r}: {path!r} is not an IndexBackend.'
            )
        return backend_class(name, options)

    def get_backend(self, tenant=None):
        try:
            return self.backends[tenant or self.current_tenant]
        except KeyError:
            raise ImproperlyConfigured(f'Unknown index tenant {tenant!r}.') from None

    def get_product_list_for_current_tenant(self):
        return self.get_backend().get_product_list()
