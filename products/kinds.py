"""
Per-type product behaviour.

Each product type registers one ProductKind. Views ask the kind whether a
product may be shown, which template renders it, what extra context the
detail page needs and how it is labelled in autocomplete, instead of
checking the product type themselves.
"""

from .index import VARIANT_MODE_VARIANTS_ONLY
from .models import Product

CROSSSELL_PLACEMENT = 'crosssells'


class ProductKind:
    """Behaviour shared by all product types. Subclasses fill in the rest."""

    product_type = None
    class_id = None
    detail_template = None
    search_weight = 1

    def is_displayable(self, product):
        """Whether a published product of this kind gets a detail page."""
        return True

    def build_detail_context(self, product, shop, tracking_manager):
        """Return extra detail-page context, recording cross-sell impressions."""
        raise NotImplementedError

    def autocomplete_label(self, product):
        return product.name


class CarKind(ProductKind):
    product_type = Product.TYPE_CAR
    class_id = 'CAR'
    detail_template = 'products/detail.html'
    search_weight = 2

    def is_displayable(self, product):
        return product.object_type == Product.OBJECT_TYPE_ACTUAL_CAR

    def build_detail_context(self, product, shop, tracking_manager):
        accessories = list(product.accessories.filter(is_published=True))
        for accessory in accessories:
            tracking_manager.track_product_impression(accessory, CROSSSELL_PLACEMENT)
        return {'accessories': accessories}

    def autocomplete_label(self, product):
        label = ' '.join(part for part in (product.name, product.first_color) if part)
        if product.car_class:
            label = f'{label}, {product.car_class}'
        return label


class AccessoryKind(ProductKind):
    product_type = Product.TYPE_ACCESSORY
    class_id = 'AP'
    detail_template = 'products/detail_accessory.html'

    def build_detail_context(self, product, shop, tracking_manager):
        listing = shop.index_service.get_product_list_for_current_tenant()
        listing.set_variant_mode(VARIANT_MODE_VARIANTS_ONLY)
        listing.restrict_to_ids(product.get_compatible_to_product_ids())

        compatible = list(listing)
        for compatible_product in compatible:
            tracking_manager.track_product_impression(compatible_product, CROSSSELL_PLACEMENT)
        return {'compatible_to': compatible}


KINDS = {kind.product_type: kind for kind in (CarKind(), AccessoryKind())}


def get_kind(product_type):
    """Return the registered kind for `product_type`, or None if unknown."""
    return KINDS.get(product_type)
