"""
Django admin configuration for the products app.

Provides admin interfaces for Manufacturer, FilterDefinition, Category and
Product, with a shop-link column and a preview link for unpublished
products.
"""

from django.contrib import admin
from django.utils.html import format_html

from .models import Category, FilterDefinition, Manufacturer, Product


@admin.register(Manufacturer)
class ManufacturerAdmin(admin.ModelAdmin):
    """Admin for manufacturers."""

    list_display = ('name', 'slug', 'product_count')
    prepopulated_fields = {'slug': ('name',)}
    search_fields = ('name',)

    @admin.display(description='Products')
    def product_count(self, obj):
        """Show number of products from this manufacturer."""
        return obj.products.count()


@admin.register(FilterDefinition)
class FilterDefinitionAdmin(admin.ModelAdmin):
    """Admin for listing filter definitions."""

    list_display = ('name', 'page_limit', 'order_by', 'filter_count')
    search_fields = ('name',)

    @admin.display(description='Filters')
    def filter_count(self, obj):
        return len(obj.filters or [])


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    """Admin for product categories."""

    list_display = ('name', 'parent', 'filter_definition', 'product_count', 'shop_link')
    list_filter = ('parent',)
    prepopulated_fields = {'slug': ('name',)}
    search_fields = ('name',)

    @admin.display(description='Products')
    def product_count(self, obj):
        """Show number of products directly in this category."""
        return obj.products.count()

    @admin.display(description='Shop')
    def shop_link(self, obj):
        from .links import ProductLinkGenerator
        url = ProductLinkGenerator().generate_category(obj)
        return format_html('<a href="{}" target="_blank">{}</a>', url, url)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """
    Admin for the product catalogue.

    The shop link of an unpublished product opens it in preview mode, which
    only works for staff users.
    """

    list_display = (
        'name', 'product_type', 'object_type', 'manufacturer', 'category',
        'price', 'is_published', 'shop_link',
    )
    list_filter = ('product_type', 'object_type', 'is_published', 'manufacturer', 'category')
    search_fields = ('name', 'car_class', 'description')
    prepopulated_fields = {'slug': ('name',)}
    filter_horizontal = ('accessories', 'compatible_to')
    raw_id_fields = ('parent',)
    readonly_fields = ('created_at', 'updated_at')
    list_editable = ('is_published',)
    list_per_page = 50

    fieldsets = (
        ('Product Info', {
            'fields': (
                'name', 'slug', 'product_type', 'object_type', 'parent',
                'manufacturer', 'category', 'is_published',
            ),
        }),
        ('Attributes', {
            'fields': ('colors', 'car_class', 'price', 'description'),
        }),
        ('Relations', {
            'fields': ('accessories', 'compatible_to'),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    @admin.display(description='Shop')
    def shop_link(self, obj):
        url = obj.get_absolute_url()
        if not obj.is_published:
            url = f'{url}?preview=1'
        return format_html('<a href="{}" target="_blank">view</a>', url)
