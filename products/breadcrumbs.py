"""
Breadcrumb trail and head title for shop pages.

Both live on the request for the duration of one response and are exposed
to templates by products.context_processors.shop_navigation.
"""

from django.urls import reverse
from django.utils.translation import gettext as _

from .links import ProductLinkGenerator

BREADCRUMBS_ATTR = 'shop_breadcrumbs'
HEAD_TITLE_ATTR = 'shop_head_title'


def set_head_title(request, title):
    setattr(request, HEAD_TITLE_ATTR, title)


def get_head_title(request):
    return getattr(request, HEAD_TITLE_ATTR, '')


class BreadcrumbHelper:
    """Builds the breadcrumb trail for one request."""

    def __init__(self, request, link_generator=None):
        self.request = request
        self.link_generator = link_generator or ProductLinkGenerator()
        if not hasattr(request, BREADCRUMBS_ATTR):
            setattr(request, BREADCRUMBS_ATTR, [
                {'id': 'home', 'label': _('Shop'), 'url': reverse('products:search')},
            ])

    @property
    def entries(self):
        return getattr(self.request, BREADCRUMBS_ATTR)

    def append(self, entry):
        """Add `entry` (a dict with id, label and optional url) to the trail."""
        entry.setdefault('url', None)
        self.entries.append(entry)

    def _append_categories(self, category):
        for node in category.get_ancestors():
            self.append({
                'id': f'category-{node.pk}',
                'label': node.name,
                'url': self.link_generator.generate_category(node),
            })

    def enrich_category_page(self, category):
        self._append_categories(category)

    def enrich_product_detail_page(self, product):
        if product.category is not None:
            self._append_categories(product.category)
        self.append({
            'id': f'product-{product.pk}',
            'label': product.name,
            'url': self.link_generator.generate(product),
        })

    def enrich_generic_dynamic_page(self, label):
        self.append({'id': 'dynamic-page', 'label': label})
