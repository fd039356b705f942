"""
Catalogue models for Carshop.

Includes Manufacturer, FilterDefinition, Category and Product. Cars and
accessory parts share the Product table; behaviour that differs between
them lives in products.kinds and is reached through Product.kind.
"""

from django.core.cache import cache
from django.core.validators import MinValueValidator
from django.db import models
from django.utils.text import slugify

DEFAULT_PAGE_LIMIT = 18


class Manufacturer(models.Model):
    """Car or parts manufacturer (e.g. Jaguar, Bosch)."""

    name = models.CharField(max_length=100, unique=True)
    slug = models.SlugField(max_length=100, unique=True, db_index=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        """Auto-generate slug from name if not set."""
        if not self.slug:
            self.slug = slugify(self.name)
        super().save(*args, **kwargs)


class FilterDefinition(models.Model):
    """
    Reusable listing configuration: page size, ordering and the filter
    fields offered to the visitor.

    `filters` is a list of field configs, e.g.
        [{"type": "multiselect", "field": "colors", "label": "Color"},
         {"type": "range", "field": "price", "label": "Price"},
         {"type": "category", "field": "category", "label": "Category"}]

    `conditions` maps field names to values that are always applied,
    regardless of what the visitor selects.
    """

    name = models.CharField(max_length=100, unique=True)
    page_limit = models.PositiveIntegerField(
        default=DEFAULT_PAGE_LIMIT, validators=[MinValueValidator(1)],
    )
    order_by = models.CharField(
        max_length=100, blank=True,
        help_text='Field to order by, prefix with "-" for descending.',
    )
    filters = models.JSONField(default=list, blank=True)
    conditions = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name

    @classmethod
    def default(cls):
        """Unsaved definition used when nothing else is configured."""
        return cls(name='default', page_limit=DEFAULT_PAGE_LIMIT)


class Category(models.Model):
    """
    Product category. Categories form a tree via `parent`; a listing for
    a category shows products of the category and all its descendants.
    """

    name = models.CharField(max_length=100)
    slug = models.SlugField(max_length=100, db_index=True)
    parent = models.ForeignKey(
        'self', on_delete=models.CASCADE, null=True, blank=True,
        related_name='children',
    )
    filter_definition = models.ForeignKey(
        FilterDefinition, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='categories',
    )

    class Meta:
        verbose_name_plural = 'categories'
        ordering = ['name']

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        """Auto-generate slug from name and invalidate cached subtrees."""
        if not self.slug:
            self.slug = slugify(self.name)
        super().save(*args, **kwargs)
        cache.delete_many([f'category_descendants_{pk}' for pk in self.get_ancestor_ids()])

    def get_ancestors(self):
        """Return the chain of categories from the root down to self."""
        chain = []
        node = self
        while node is not None:
            chain.append(node)
            node = node.parent
        return list(reversed(chain))

    def get_ancestor_ids(self):
        return [c.pk for c in self.get_ancestors()]

    def get_descendant_ids(self):
        """
        Return the ids of this category and every category below it.

        Cached for 1 hour; saving any category busts the cache for itself
        and all of its ancestors.
        """
        cache_key = f'category_descendants_{self.pk}'
        ids = cache.get(cache_key)
        if ids is not None:
            return ids

        ids = [self.pk]
        frontier = [self.pk]
        while frontier:
            frontier = list(
                Category.objects.filter(parent_id__in=frontier).values_list('pk', flat=True)
            )
            ids.extend(frontier)

        cache.set(cache_key, ids, timeout=3600)
        return ids


class Product(models.Model):
    """
    A sellable item: either a car or an accessory part.

    Cars may be virtual (an abstract model grouping variants via `parent`)
    or actual (a concrete, buyable configuration). Only actual cars get a
    detail page. Accessories point at the products they fit through
    `compatible_to`.
    """

    TYPE_CAR = 'car'
    TYPE_ACCESSORY = 'accessory'
    TYPE_CHOICES = [
        (TYPE_CAR, 'Car'),
        (TYPE_ACCESSORY, 'Accessory part'),
    ]

    OBJECT_TYPE_ACTUAL_CAR = 'actual-car'
    OBJECT_TYPE_VIRTUAL_CAR = 'virtual-car'
    OBJECT_TYPE_CHOICES = [
        (OBJECT_TYPE_ACTUAL_CAR, 'Actual car'),
        (OBJECT_TYPE_VIRTUAL_CAR, 'Virtual car'),
    ]

    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, blank=True, db_index=True)
    product_type = models.CharField(max_length=20, choices=TYPE_CHOICES, db_index=True)
    object_type = models.CharField(
        max_length=20, choices=OBJECT_TYPE_CHOICES, blank=True,
        help_text='Cars only: virtual cars group their actual variants.',
    )
    is_published = models.BooleanField(default=True, db_index=True)
    manufacturer = models.ForeignKey(
        Manufacturer, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='products',
    )
    category = models.ForeignKey(
        Category, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='products',
    )
    parent = models.ForeignKey(
        'self', on_delete=models.CASCADE, null=True, blank=True,
        related_name='variants',
    )
    colors = models.JSONField(default=list, blank=True)
    car_class = models.CharField(max_length=100, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    description = models.TextField(blank=True)
    accessories = models.ManyToManyField(
        'self', symmetrical=False, blank=True, related_name='accessory_for',
    )
    compatible_to = models.ManyToManyField(
        'self', symmetrical=False, blank=True, related_name='compatible_accessories',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        indexes = [
            models.Index(fields=['is_published', 'category'], name='product_published_category_idx'),
            models.Index(fields=['is_published', 'product_type'], name='product_published_type_idx'),
        ]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        """Auto-generate slug from name if not set."""
        if not self.slug:
            self.slug = slugify(self.name) or 'product'
        super().save(*args, **kwargs)

    @property
    def kind(self):
        """The ProductKind handling this product's type, or None."""
        from .kinds import get_kind  # avoid circular import at module level
        return get_kind(self.product_type)

    @property
    def first_color(self):
        return self.colors[0] if self.colors else ''

    def get_compatible_to_product_ids(self):
        """Ids of the products this accessory fits."""
        return list(self.compatible_to.values_list('pk', flat=True))

    def get_absolute_url(self):
        from .links import ProductLinkGenerator
        return ProductLinkGenerator().generate(self)
