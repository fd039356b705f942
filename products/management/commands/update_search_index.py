"""
Management command: update_search_index

Pushes every product into the index of a tenant, published or not, so the
index always carries the current publication flag, then drops documents of
products that were deleted since the last run. Only tenants backed by an
external search engine store anything; the database tenant reads the
catalogue tables directly and is skipped.

Usage:
    # Index into the current tenant (SHOP_CURRENT_TENANT):
    python manage.py update_search_index

    # Index into a specific tenant, recreating its index first:
    python manage.py update_search_index --tenant elasticsearch --recreate

    # Index in smaller batches:
    python manage.py update_search_index --batch-size 100
"""

from django.core.management.base import BaseCommand, CommandError

from products.exceptions import IndexBackendError
from products.models import Product
from products.shop import get_shop


class Command(BaseCommand):
    """Write all products to a tenant's search index."""

    help = 'Push all products into the search index of a tenant and drop deleted ones.'

    def add_arguments(self, parser):
        """Register command-line arguments."""
        parser.add_argument(
            '--tenant',
            default=None,
            help='Tenant to index into (default: SHOP_CURRENT_TENANT).',
        )
        parser.add_argument(
            '--recreate',
            action='store_true',
            default=False,
            help='Drop and recreate the index before writing.',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=500,
            metavar='N',
            help='Products per bulk request (default: 500).',
        )

    def handle(self, *args, **options):
        """Entry point — index all products and drop stale documents."""
        backend = get_shop().index_service.get_backend(options['tenant'])
        batch_size = max(1, options['batch_size'])

        if not backend.supports_indexing:
            self.stdout.write(
                f'Tenant {backend.name!r} reads straight from the catalogue; nothing to index.'
            )
            return

        products = (
            Product.objects
            .select_related('manufacturer', 'category')
            .order_by('pk')
        )
        total = products.count()
        self.stdout.write(f'Indexing {total} products into tenant {backend.name!r}...')

        written = 0
        try:
            if options['recreate']:
                backend.create_index(recreate=True)
                self.stdout.write(self.style.WARNING('Index recreated.'))
            for start in range(0, total, batch_size):
                written += backend.index_products(products[start:start + batch_size])
                self.stdout.write(f'  {written}/{total}')
            if not options['recreate']:
                removed = backend.remove_stale_products(products.values_list('pk', flat=True))
                if removed:
                    self.stdout.write(f'Removed {removed} deleted products from the index.')
        except IndexBackendError as exc:
            raise CommandError(f'Indexing failed after {written} products: {exc}') from exc

        self.stdout.write(self.style.SUCCESS(f'Done. {written} products indexed.'))
