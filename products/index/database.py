"""
Relational index backend: listings are Django querysets over the catalogue.

Only published products are ever returned. Field names used by filter
definitions are mapped onto ORM lookups through FIELD_LOOKUPS; anything not
in the map is ignored, so a filter definition cannot reach arbitrary
columns.
"""

import json
import logging
import re

from django.db.models import Q

from ..models import Product
from .base import VARIANT_MODE_VARIANTS_ONLY, IndexBackend, ProductListing

logger = logging.getLogger(__name__)

# filter field → (lookup used for matching, path used for group_by_values)
FIELD_LOOKUPS = {
    'car_class':    ('car_class__in', 'car_class'),
    'manufacturer': ('manufacturer__slug__in', 'manufacturer__slug'),
    'product_type': ('product_type__in', 'product_type'),
    'category':     ('category__slug__in', 'category__slug'),
}
RANGE_FIELDS = ('price',)

# Columns a search token is matched against.
SEARCH_FIELDS = ('name', 'manufacturer__name', 'colors', 'car_class')

_WHITESPACE = re.compile(r'\s+')


class DatabaseProductListing(ProductListing):
    """Listing backed by a Product queryset."""

    def __init__(self, backend):
        super().__init__(backend)
        self.conditions = []

    def _add(self, condition):
        self.conditions.append(condition)
        self._reset()

    def get_queryset(self):
        qs = (
            Product.objects
            .filter(is_published=True)
            .select_related('manufacturer', 'category')
        )
        if self.variant_mode == VARIANT_MODE_VARIANTS_ONLY:
            qs = qs.exclude(object_type=Product.OBJECT_TYPE_VIRTUAL_CAR)
        for condition in self.conditions:
            qs = qs.filter(condition)
        return qs.order_by(self.order_key or 'name', 'pk')

    def restrict_to_ids(self, ids):
        self._add(Q(pk__in=list(ids)))

    def restrict_to_category(self, category):
        self._add(Q(category_id__in=category.get_descendant_ids()))

    def add_search_term(self, term):
        """One conjunctive condition per whitespace-separated token."""
        term = _WHITESPACE.sub(' ', term or '').strip()
        if not term:
            return
        for token in term.split(' '):
            match = Q()
            for field in SEARCH_FIELDS:
                match |= Q(**{f'{field}__icontains': token})
            # colors is stored as JSON text with non-ASCII characters escaped
            escaped = json.dumps(token.lower())[1:-1]
            if escaped != token.lower():
                match |= Q(colors__icontains=escaped)
            self._add(match)

    def add_field_condition(self, field, values):
        values = [v for v in values if v not in (None, '')]
        if not values:
            return
        if field == 'colors':
            # JSON containment is not available on every database; match the
            # encoded element instead.
            match = Q()
            for value in values:
                match |= Q(colors__icontains=json.dumps(value))
            self._add(match)
            return
        if field not in FIELD_LOOKUPS:
            logger.warning('Ignoring condition on unsupported field %r', field)
            return
        lookup, _ = FIELD_LOOKUPS[field]
        self._add(Q(**{lookup: values}))

    def add_range_condition(self, field, minimum=None, maximum=None):
        if field not in RANGE_FIELDS:
            logger.warning('Ignoring range condition on unsupported field %r', field)
            return
        if minimum is not None:
            self._add(Q(**{f'{field}__gte': minimum}))
        if maximum is not None:
            self._add(Q(**{f'{field}__lte': maximum}))

    def group_by_values(self, field):
        qs = self.get_queryset()
        if field == 'colors':
            values = set()
            for colors in qs.values_list('colors', flat=True):
                values.update(colors or [])
            return sorted(values)
        if field not in FIELD_LOOKUPS:
            return []
        _, path = FIELD_LOOKUPS[field]
        return sorted(
            v for v in qs.order_by().values_list(path, flat=True).distinct() if v
        )

    def fetch(self, offset, size):
        return list(self.get_queryset()[offset:offset + size])

    def fetch_count(self):
        return self.get_queryset().count()


class DatabaseBackend(IndexBackend):
    """Reads straight from the catalogue tables; nothing to index."""

    listing_class = DatabaseProductListing
