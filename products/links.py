"""
URL generation for products and categories.

Shop URLs carry the category path for readability, but only the trailing
id is used to resolve the object:
    /shop/sports-cars/coupe/e-type-fhc~p42
    /shop/sports-cars/coupe~c7
"""

from urllib.parse import urlencode

from django.urls import reverse


def _category_path(category):
    """'parent-slug/child-slug/' for a category, '' for none."""
    if category is None:
        return ''
    return ''.join(f'{c.slug or "category"}/' for c in category.get_ancestors())


class ProductLinkGenerator:

    def generate(self, product):
        """Canonical detail URL of `product`."""
        return reverse('products:detail', kwargs={
            'path': _category_path(product.category),
            'productname': product.slug or 'product',
            'product_id': product.pk,
        })

    def generate_category(self, category):
        """Listing URL of `category`."""
        return reverse('products:listing', kwargs={
            'path': _category_path(category.parent),
            'categoryname': category.slug or 'category',
            'category_id': category.pk,
        })

    def generate_with_mockup(self, product, params):
        """
        Detail URL for a product coming out of a search result.

        `params` are appended as query string, e.g. to carry the search
        term over to the detail page.
        """
        url = self.generate(product)
        if params:
            url = f'{url}?{urlencode(params, doseq=True)}'
        return url
