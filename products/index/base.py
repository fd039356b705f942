"""
Common interface of index backends and the product listings they produce.

A ProductListing collects conditions first and queries its backend lazily,
the first time it is iterated, counted or sliced. Each backend translates
the same operations (restrict to ids, restrict to a category, full-text
term, field and range conditions) into its own query language.
"""

VARIANT_MODE_INCLUDE = 'include'
VARIANT_MODE_VARIANTS_ONLY = 'variants_only'

# Fields a filter definition may order by.
ORDER_FIELDS = ('name', 'price', 'created_at')


class ProductListing:
    """Lazy, filterable, sliceable view over an index backend."""

    def __init__(self, backend):
        self.backend = backend
        self.variant_mode = VARIANT_MODE_INCLUDE
        self.order_key = None
        self.limit = None
        self._items = None
        self._count = None

    def __repr__(self):
        return f'<{self.__class__.__name__} tenant={self.backend.name!r}>'

    def _reset(self):
        self._items = None
        self._count = None

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def set_variant_mode(self, mode):
        self.variant_mode = mode
        self._reset()

    def set_order_key(self, key):
        """Order by one of ORDER_FIELDS, '-' prefix for descending. Others are ignored."""
        if key and key.lstrip('-') in ORDER_FIELDS:
            self.order_key = key
            self._reset()

    def set_limit(self, limit):
        self.limit = limit
        self._reset()

    # -------------------------------------------------------------------------
    # Conditions, implemented per backend
    # -------------------------------------------------------------------------

    def restrict_to_ids(self, ids):
        """Only products whose id is in `ids`. An empty list matches nothing."""
        raise NotImplementedError

    def restrict_to_category(self, category):
        """Only products in `category` or any category below it."""
        raise NotImplementedError

    def add_search_term(self, term):
        """Full-text search for `term` (already stripped of markup)."""
        raise NotImplementedError

    def add_field_condition(self, field, values):
        """Only products whose `field` matches any of `values`."""
        raise NotImplementedError

    def add_range_condition(self, field, minimum=None, maximum=None):
        """Only products whose `field` lies within the inclusive bounds."""
        raise NotImplementedError

    def group_by_values(self, field):
        """Distinct values of `field` among the current matches, sorted."""
        raise NotImplementedError

    # -------------------------------------------------------------------------
    # Evaluation, implemented per backend
    # -------------------------------------------------------------------------

    def fetch(self, offset, size):
        """Return up to `size` matching products starting at `offset`."""
        raise NotImplementedError

    def fetch_count(self):
        """Return the total number of matches, ignoring `limit`."""
        raise NotImplementedError

    # -------------------------------------------------------------------------
    # Sequence protocol (used by templates and django.core.paginator)
    # -------------------------------------------------------------------------

    def count(self):
        if self._count is None:
            self._count = self.fetch_count()
        if self.limit is not None:
            return min(self._count, self.limit)
        return self._count

    def __len__(self):
        return self.count()

    def __iter__(self):
        if self._items is None:
            size = self.limit if self.limit is not None else self.count()
            self._items = self.fetch(0, size) if size else []
        return iter(self._items)

    def __getitem__(self, key):
        if isinstance(key, slice):
            if key.step not in (None, 1):
                raise ValueError('Product listings do not support slice steps.')
            total = self.count()
            start = key.start or 0
            stop = total if key.stop is None else min(key.stop, total)
            if start >= stop:
                return []
            return self.fetch(start, stop - start)

        if key < 0 or key >= self.count():
            raise IndexError('Product listing index out of range.')
        return self.fetch(key, 1)[0]


class IndexBackend:
    """
    One configured index tenant.

    Subclasses set `listing_class` and may override index_products() to
    push catalogue changes into an external index.
    """

    listing_class = ProductListing
    supports_indexing = False

    def __init__(self, name, options):
        self.name = name
        self.options = options

    def get_product_list(self):
        return self.listing_class(self)

    def index_products(self, products):
        """Write `products` to the index. Returns the number of documents written."""
        return 0

    def remove_stale_products(self, existing_ids):
        """Drop documents whose product id is not in `existing_ids`. Returns the number removed."""
        return 0
