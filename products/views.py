"""
Views for the shop.

Product detail, category listing, search (page and JSON autocomplete) and
the product teaser fragment. The views only sequence calls into the shop
services: the index service finds products, the filter service narrows
listings, the tracking manager records analytics and the link generator
builds canonical URLs.

Ordering rules:
- The detail page redirects to its canonical URL before recording anything,
  so a visit through an outdated URL is only counted once.
- Filters are applied to a listing before it is paginated.
- Impressions are recorded only for the products on the rendered page, and
  never for layout-less fragments or autocomplete responses.
"""

import logging

from django.http import Http404, JsonResponse
from django.shortcuts import redirect, render
from django.utils.html import strip_tags
from django.utils.translation import get_language
from django.utils.translation import gettext as _
from django.views.decorators.http import require_GET

from tracking.manager import TrackingManager
from tracking.segments import SegmentTrackingHelper

from .breadcrumbs import BreadcrumbHelper, set_head_title
from .filters import CATEGORY_PARAM, resolve_filter_definition
from .index import VARIANT_MODE_VARIANTS_ONLY
from .models import Category, Product
from .pagination import paginate
from .shop import get_shop

logger = logging.getLogger(__name__)

PLACEMENT_GRID = 'grid'
PLACEMENT_SEARCH_RESULTS = 'search-results'
PLACEMENT_TEASER = 'teaser'

TRUTHY = ('1', 'true', 'yes', 'on')


def verify_preview_request(request, product):
    """Staff may preview unpublished products by adding ?preview=1."""
    return (
        product is not None
        and request.GET.get('preview', '').lower() in TRUTHY
        and request.user.is_authenticated
        and request.user.is_staff
    )


def _is_visible(request, product):
    if product is None or product.kind is None:
        return False
    if product.is_published and product.kind.is_displayable(product):
        return True
    return verify_preview_request(request, product)


def _is_fragment_request(request, no_layout):
    return (
        bool(no_layout)
        or request.GET.get('noLayout', '').lower() in TRUTHY
        or request.headers.get('x-requested-with') == 'XMLHttpRequest'
    )


def _get_category(category_id):
    if not category_id:
        return None
    try:
        return (
            Category.objects
            .select_related('filter_definition', 'parent')
            .filter(pk=int(category_id))
            .first()
        )
    except (TypeError, ValueError):
        return None


@require_GET
def detail(request, product_id, **kwargs):
    """
    Product detail page.

    404 unless the product is published and displayable for its kind
    (actual cars, accessories) or a staff preview is requested. Requests on
    any URL other than the canonical one are redirected there, keeping the
    query string.
    """
    shop = get_shop()
    product = (
        Product.objects
        .select_related('category', 'manufacturer')
        .filter(pk=product_id)
        .first()
    )
    if not _is_visible(request, product):
        logger.info('Product #%s not found or not displayable', product_id)
        raise Http404('Product not found.')

    canonical_url = shop.link_generator.generate(product)
    if canonical_url != request.path:
        query_string = request.META.get('QUERY_STRING', '')
        logger.debug('Redirecting %s to canonical %s', request.path, canonical_url)
        return redirect(f'{canonical_url}?{query_string}' if query_string else canonical_url)

    BreadcrumbHelper(request, shop.link_generator).enrich_product_detail_page(product)
    set_head_title(request, product.name)

    SegmentTrackingHelper(request).track_segments_for_product(product)

    tracking_manager = TrackingManager(request)
    tracking_manager.track_product_view(product)

    kind = product.kind
    ctx = {'product': product}
    ctx.update(kind.build_detail_context(product, shop, tracking_manager))
    return render(request, kind.detail_template, ctx)


@require_GET
def listing(request, category_id=None, filter_definition=None, no_layout=False, **kwargs):
    """
    Category listing with filters and pagination.

    The category filter is always pinned to the category from the URL, so a
    crafted query string cannot widen the listing. Unknown categories still
    render, with no breadcrumbs and no category tracking.
    """
    shop = get_shop()
    params = request.GET.copy()
    params[CATEGORY_PARAM] = category_id or ''

    category = _get_category(category_id)
    tracking_manager = TrackingManager(request)
    if category is not None:
        set_head_title(request, category.name)
        BreadcrumbHelper(request, shop.link_generator).enrich_category_page(category)
        SegmentTrackingHelper(request).track_segments_for_category(category)
        tracking_manager.track_category_page_view(category.name)

    product_listing = shop.index_service.get_product_list_for_current_tenant()
    product_listing.set_variant_mode(VARIANT_MODE_VARIANTS_ONLY)

    definition = resolve_filter_definition(
        request, category, shop.fallback_filter_definition, explicit=filter_definition,
    )
    filters = shop.filter_service.setup_product_list(definition, product_listing, params)

    page_obj, pagination = paginate(
        product_listing, request.GET.get('page'), definition.page_limit, shop.page_range,
    )

    ctx = {
        'category': category,
        'filter_definition': definition,
        'filters': filters,
        'product_listing': product_listing,
        'page_obj': page_obj,
        'products': list(page_obj.object_list),
        'pagination': pagination,
    }

    if _is_fragment_request(request, no_layout):
        return render(request, 'products/listing_content.html', ctx)

    for product in ctx['products']:
        tracking_manager.track_product_impression(product, PLACEMENT_GRID)

    return render(request, 'products/listing.html', ctx)


@require_GET
def search(request):
    """
    Search results page, or autocomplete JSON when ?autocomplete is present.

    Autocomplete returns up to SHOP_AUTOCOMPLETE_LIMIT entries of
    {"href": ..., "product": <label>} and records nothing.
    """
    shop = get_shop()
    params = request.GET.copy()

    category = _get_category(params.get('category'))
    params[CATEGORY_PARAM] = category.pk if category is not None else ''

    product_listing = shop.index_service.get_product_list_for_current_tenant()
    product_listing.set_variant_mode(VARIANT_MODE_VARIANTS_ONLY)

    term = strip_tags(request.GET.get('term', '')).strip()
    product_listing.add_search_term(term)

    if 'autocomplete' in request.GET:
        product_listing.set_limit(shop.autocomplete_limit)
        results = []
        for product in product_listing:
            kind = product.kind
            results.append({
                'href': shop.link_generator.generate_with_mockup(product, {}),
                'product': kind.autocomplete_label(product) if kind else product.name,
            })
        return JsonResponse(results, safe=False)

    definition = resolve_filter_definition(request, category, shop.fallback_filter_definition)
    filters = shop.filter_service.setup_product_list(definition, product_listing, params)

    page_obj, pagination = paginate(
        product_listing, request.GET.get('page'), definition.page_limit, shop.page_range,
    )
    products = list(page_obj.object_list)

    tracking_manager = TrackingManager(request)
    for product in products:
        tracking_manager.track_product_impression(product, PLACEMENT_SEARCH_RESULTS)

    label = _('Search results for "%(term)s"') % {'term': term}
    BreadcrumbHelper(request, shop.link_generator).append({'id': 'search-result', 'label': label})
    set_head_title(request, label)

    return render(request, 'products/search.html', {
        'term': term,
        'language': get_language(),
        'category': category,
        'filter_definition': definition,
        'filters': filters,
        'products': products,
        'page_obj': page_obj,
        'pagination': pagination,
    })


@require_GET
def teaser(request):
    """
    Product teaser fragment for embedding in content pages.

    Only ?type=object is supported; anything else, and unknown or
    unpublished products, is a 404.
    """
    if request.GET.get('type') != 'object':
        raise Http404('Product not found.')

    try:
        product_id = int(request.GET.get('id', ''))
    except ValueError:
        raise Http404('Product not found.') from None

    product = (
        Product.objects
        .select_related('category', 'manufacturer')
        .filter(pk=product_id, is_published=True)
        .first()
    )
    if product is None:
        raise Http404('Product not found.')

    TrackingManager(request).track_product_impression(product, PLACEMENT_TEASER)
    return render(request, 'products/product_teaser.html', {'product': product})
