"""
Tests for the shop views.

Covers the detail, listing, search and teaser views. Focuses on:
- Visibility rules (published, actual cars, previews) and 404s
- Canonical URL redirects happening before any tracking
- One impression per rendered product, with the right placement
- Filter definition precedence and pinned category filters
- Autocomplete payload shape and limits
"""

import decimal

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.test import Client, TestCase, override_settings
from django.urls import reverse

from tracking.models import TrackingEvent

from .kinds import AccessoryKind, CarKind
from .links import ProductLinkGenerator
from .models import Category, FilterDefinition, Manufacturer, Product

User = get_user_model()

_TEST_STORAGES = {
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}


def _make_car(name='E-Type', category=None, **kwargs):
    """Create a published, actual car."""
    kwargs.setdefault('object_type', Product.OBJECT_TYPE_ACTUAL_CAR)
    return Product.objects.create(
        name=name, product_type=Product.TYPE_CAR, category=category, **kwargs,
    )


def _make_accessory(name='Roof Box', category=None, **kwargs):
    """Create a published accessory part."""
    return Product.objects.create(
        name=name, product_type=Product.TYPE_ACCESSORY, category=category, **kwargs,
    )


def _events(event_type, placement=None):
    qs = TrackingEvent.objects.filter(event_type=event_type)
    if placement is not None:
        qs = qs.filter(placement=placement)
    return qs


class ProductModelTest(TestCase):
    """Test Product and Category model behaviour."""

    def setUp(self):
        cache.clear()

    def test_slug_auto_generated(self):
        """Slug is set automatically from name when not provided."""
        car = _make_car(name='Jaguar E-Type')
        self.assertEqual(car.slug, 'jaguar-e-type')

    def test_kind_for_known_types(self):
        """Cars and accessories resolve to their kinds."""
        self.assertIsInstance(_make_car().kind, CarKind)
        self.assertIsInstance(_make_accessory().kind, AccessoryKind)

    def test_kind_for_unknown_type_is_none(self):
        """An unknown product_type has no kind."""
        product = Product.objects.create(name='Mystery', product_type='boat')
        self.assertIsNone(product.kind)

    def test_get_compatible_to_product_ids(self):
        """Compatible ids come from the compatible_to relation."""
        car_a = _make_car(name='Car A')
        car_b = _make_car(name='Car B')
        part = _make_accessory()
        part.compatible_to.add(car_a, car_b)
        self.assertEqual(sorted(part.get_compatible_to_product_ids()), sorted([car_a.pk, car_b.pk]))

    def test_category_descendants(self):
        """Descendant ids include the category itself and all levels below."""
        root = Category.objects.create(name='Cars')
        child = Category.objects.create(name='Sports Cars', parent=root)
        grandchild = Category.objects.create(name='Coupes', parent=child)
        other = Category.objects.create(name='Parts')
        ids = root.get_descendant_ids()
        self.assertCountEqual(ids, [root.pk, child.pk, grandchild.pk])
        self.assertNotIn(other.pk, ids)

    def test_category_descendants_cache_busted_on_save(self):
        """Adding a subcategory invalidates the cached subtree of its ancestors."""
        root = Category.objects.create(name='Cars')
        self.assertEqual(root.get_descendant_ids(), [root.pk])
        child = Category.objects.create(name='Vans', parent=root)
        self.assertCountEqual(root.get_descendant_ids(), [root.pk, child.pk])


class ProductKindTest(TestCase):
    """Test per-type behaviour."""

    def test_car_autocomplete_label(self):
        """Car labels read 'name first-color, class'."""
        car = _make_car(name='E-Type', colors=['red', 'black'], car_class='Sports Car')
        self.assertEqual(car.kind.autocomplete_label(car), 'E-Type red, Sports Car')

    def test_car_autocomplete_label_without_color_or_class(self):
        """Missing attributes do not leave stray separators."""
        car = _make_car(name='E-Type')
        self.assertEqual(car.kind.autocomplete_label(car), 'E-Type')

    def test_accessory_autocomplete_label(self):
        """Accessory labels are just the name."""
        part = _make_accessory(name='Roof Box', colors=['black'])
        self.assertEqual(part.kind.autocomplete_label(part), 'Roof Box')

    def test_only_actual_cars_are_displayable(self):
        """Virtual cars group variants and never get a detail page."""
        actual = _make_car(name='Actual')
        virtual = _make_car(name='Virtual', object_type=Product.OBJECT_TYPE_VIRTUAL_CAR)
        self.assertTrue(actual.kind.is_displayable(actual))
        self.assertFalse(virtual.kind.is_displayable(virtual))

    def test_search_weights_favour_cars(self):
        """Cars weigh twice as much as accessories in search scoring."""
        self.assertEqual(CarKind.search_weight, 2)
        self.assertEqual(AccessoryKind.search_weight, 1)


@override_settings(STORAGES=_TEST_STORAGES)
class ProductDetailViewTest(TestCase):
    """Test the product detail view."""

    def setUp(self):
        """Create a car with two accessories in a category tree."""
        cache.clear()
        self.client = Client()
        self.manufacturer = Manufacturer.objects.create(name='Jaguar')
        self.root = Category.objects.create(name='Cars')
        self.category = Category.objects.create(name='Sports Cars', parent=self.root)
        self.car = _make_car(
            name='E-Type', category=self.category, manufacturer=self.manufacturer,
            colors=['red'], car_class='Sports Car', price=decimal.Decimal('95000.00'),
        )
        self.roof_box = _make_accessory(name='Roof Box')
        self.mats = _make_accessory(name='Floor Mats')
        self.car.accessories.add(self.roof_box, self.mats)
        self.url = ProductLinkGenerator().generate(self.car)

    def test_canonical_url_shape(self):
        """Canonical URL carries the category path, slug and id."""
        self.assertEqual(self.url, f'/shop/cars/sports-cars/e-type~p{self.car.pk}')

    def test_category_without_slug_in_path(self):
        """Categories whose name has no slug characters still give a clean path."""
        category = Category.objects.create(name='日本')
        car = _make_car(name='Skyline', category=category)
        url = ProductLinkGenerator().generate(car)
        self.assertEqual(url, f'/shop/category/skyline~p{car.pk}')
        self.assertEqual(self.client.get(url).status_code, 200)

    def test_car_detail_ok(self):
        """Published actual car renders the car template."""
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, 'products/detail.html')
        self.assertEqual(response.context['product'], self.car)
        self.assertContains(response, 'E-Type')

    def test_car_detail_tracks_view_and_crosssells(self):
        """One product view and one crosssells impression per accessory."""
        self.client.get(self.url)
        views = _events(TrackingEvent.PRODUCT_VIEW)
        self.assertEqual(views.count(), 1)
        self.assertEqual(views.get().product, self.car)
        crosssells = _events(TrackingEvent.PRODUCT_IMPRESSION, 'crosssells')
        self.assertCountEqual(
            [e.product for e in crosssells], [self.roof_box, self.mats],
        )

    def test_unpublished_returns_404(self):
        """Unpublished products are not found and nothing is tracked."""
        self.car.is_published = False
        self.car.save()
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 404)
        self.assertFalse(TrackingEvent.objects.exists())

    def test_virtual_car_returns_404(self):
        """Virtual cars are not found."""
        self.car.object_type = Product.OBJECT_TYPE_VIRTUAL_CAR
        self.car.save()
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 404)

    def test_unknown_product_type_returns_404(self):
        """Products of an unsupported type are not found."""
        Product.objects.filter(pk=self.car.pk).update(product_type='boat')
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 404)

    def test_missing_product_returns_404(self):
        """Non-existent id returns 404."""
        url = reverse('products:detail', kwargs={
            'path': '', 'productname': 'ghost', 'product_id': 999999,
        })
        response = self.client.get(url)
        self.assertEqual(response.status_code, 404)

    def test_non_canonical_url_redirects_with_query_string(self):
        """Outdated URLs redirect to the canonical one, keeping the query string."""
        old_url = reverse('products:detail', kwargs={
            'path': 'old/path/', 'productname': 'old-name', 'product_id': self.car.pk,
        })
        response = self.client.get(old_url, {'utm_source': 'newsletter'})
        self.assertEqual(response.status_code, 302)
        self.assertEqual(response['Location'], f'{self.url}?utm_source=newsletter')

    def test_non_canonical_url_redirects_without_query_string(self):
        """No trailing '?' when the request had no query string."""
        old_url = reverse('products:detail', kwargs={
            'path': '', 'productname': 'old-name', 'product_id': self.car.pk,
        })
        response = self.client.get(old_url)
        self.assertEqual(response['Location'], self.url)

    def test_non_canonical_url_records_nothing(self):
        """Redirects happen before any tracking."""
        old_url = reverse('products:detail', kwargs={
            'path': '', 'productname': 'old-name', 'product_id': self.car.pk,
        })
        self.client.get(old_url)
        self.assertFalse(TrackingEvent.objects.exists())
        self.assertNotIn('shop_segments', self.client.session)

    def test_staff_preview_of_unpublished_product(self):
        """Staff can preview unpublished products with ?preview=1."""
        User.objects.create_user(username='editor', password='pass1234', is_staff=True)
        self.client.login(username='editor', password='pass1234')
        self.car.is_published = False
        self.car.save()
        response = self.client.get(self.url, {'preview': '1'})
        self.assertEqual(response.status_code, 200)

    def test_preview_requires_staff(self):
        """Non-staff users cannot preview."""
        User.objects.create_user(username='visitor', password='pass1234')
        self.client.login(username='visitor', password='pass1234')
        self.car.is_published = False
        self.car.save()
        response = self.client.get(self.url, {'preview': '1'})
        self.assertEqual(response.status_code, 404)

    def test_breadcrumbs_and_title(self):
        """Breadcrumbs follow the category path; the title is the product name."""
        response = self.client.get(self.url)
        labels = [c['label'] for c in response.context['breadcrumbs']]
        self.assertEqual(labels[1:], ['Cars', 'Sports Cars', 'E-Type'])
        self.assertEqual(response.context['head_title'], 'E-Type')

    def test_segments_tracked_in_session(self):
        """Viewing a product bumps its category and manufacturer segments."""
        self.client.get(self.url)
        segments = self.client.session['shop_segments']
        self.assertEqual(segments['category:cars'], 1)
        self.assertEqual(segments['category:sports-cars'], 1)
        self.assertEqual(segments['manufacturer:jaguar'], 1)


@override_settings(STORAGES=_TEST_STORAGES)
class AccessoryDetailViewTest(TestCase):
    """Test the detail view for accessory parts."""

    def setUp(self):
        cache.clear()
        self.client = Client()
        self.part = _make_accessory(name='Roof Box')
        self.car_a = _make_car(name='Car A')
        self.car_b = _make_car(name='Car B')
        self.hidden = _make_car(name='Hidden Car', is_published=False)
        self.virtual = _make_car(name='Virtual Car', object_type=Product.OBJECT_TYPE_VIRTUAL_CAR)
        _make_car(name='Unrelated Car')
        self.part.compatible_to.add(self.car_a, self.car_b, self.hidden, self.virtual)

    def test_accessory_detail_lists_compatible_products(self):
        """Only published, non-virtual compatible products are listed."""
        response = self.client.get(self.part.get_absolute_url())
        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, 'products/detail_accessory.html')
        self.assertCountEqual(response.context['compatible_to'], [self.car_a, self.car_b])

    def test_accessory_detail_tracks_crosssells(self):
        """One crosssells impression per compatible product found."""
        self.client.get(self.part.get_absolute_url())
        self.assertEqual(_events(TrackingEvent.PRODUCT_VIEW).count(), 1)
        crosssells = _events(TrackingEvent.PRODUCT_IMPRESSION, 'crosssells')
        self.assertCountEqual([e.product for e in crosssells], [self.car_a, self.car_b])

    def test_accessory_without_compatible_products(self):
        """An accessory fitting nothing still renders."""
        part = _make_accessory(name='Air Freshener')
        response = self.client.get(part.get_absolute_url())
        self.assertEqual(response.status_code, 200)
        self.assertEqual(list(response.context['compatible_to']), [])


@override_settings(STORAGES=_TEST_STORAGES)
class ListingViewTest(TestCase):
    """Test the category listing view."""

    def setUp(self):
        """A category with a subcategory and a paged filter definition."""
        cache.clear()
        self.client = Client()
        self.definition = FilterDefinition.objects.create(
            name='cars', page_limit=2,
            filters=[{'type': 'multiselect', 'field': 'colors', 'label': 'Color'}],
        )
        self.category = Category.objects.create(name='Cars', filter_definition=self.definition)
        self.subcategory = Category.objects.create(name='Coupes', parent=self.category)
        self.other = Category.objects.create(name='Parts')

        _make_car(name='Alpha', category=self.category, colors=['red'])
        _make_car(name='Bravo', category=self.category, colors=['blue'])
        _make_car(name='Charlie', category=self.subcategory, colors=['red'])
        _make_car(name='Virtual', category=self.category, object_type=Product.OBJECT_TYPE_VIRTUAL_CAR)
        _make_car(name='Hidden', category=self.category, is_published=False)
        _make_accessory(name='Roof Box', category=self.other)

        self.url = ProductLinkGenerator().generate_category(self.category)

    def _names(self, response):
        return [p.name for p in response.context['products']]

    def test_listing_ok(self):
        """Listing renders the full page with the first page of products."""
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, 'products/listing.html')
        self.assertEqual(self._names(response), ['Alpha', 'Bravo'])

    def test_listing_includes_subcategories_and_excludes_hidden(self):
        """Subcategory products count; virtual and unpublished products do not."""
        response = self.client.get(self.url)
        self.assertEqual(response.context['page_obj'].paginator.count, 3)

    def test_second_page(self):
        """Page parameter selects the page."""
        response = self.client.get(self.url, {'page': 2})
        self.assertEqual(self._names(response), ['Charlie'])

    def test_invalid_page_falls_back_to_first(self):
        """Garbage or out-of-range pages show page 1."""
        for page in ('abc', '99'):
            response = self.client.get(self.url, {'page': page})
            self.assertEqual(response.context['page_obj'].number, 1)

    def test_grid_impression_per_rendered_product(self):
        """Exactly one grid impression per product on the page."""
        self.client.get(self.url)
        grid = _events(TrackingEvent.PRODUCT_IMPRESSION, 'grid')
        self.assertEqual(sorted(e.product_name for e in grid), ['Alpha', 'Bravo'])

    def test_category_page_view_tracked(self):
        """A resolved category records one category page view."""
        self.client.get(self.url)
        views = _events(TrackingEvent.CATEGORY_PAGE_VIEW)
        self.assertEqual(views.count(), 1)
        self.assertEqual(views.get().category_name, 'Cars')

    def test_fragment_request_skips_impressions(self):
        """noLayout renders only the listing fragment and records no impressions."""
        response = self.client.get(self.url, {'noLayout': '1'})
        self.assertTemplateUsed(response, 'products/listing_content.html')
        self.assertTemplateNotUsed(response, 'products/listing.html')
        self.assertFalse(_events(TrackingEvent.PRODUCT_IMPRESSION).exists())

    def test_ajax_request_is_a_fragment(self):
        """XMLHttpRequests get the fragment too."""
        response = self.client.get(self.url, HTTP_X_REQUESTED_WITH='XMLHttpRequest')
        self.assertTemplateNotUsed(response, 'products/listing.html')

    def test_unknown_category(self):
        """Unknown category: valid empty listing, no breadcrumbs, no category view."""
        url = reverse('products:listing', kwargs={
            'path': '', 'categoryname': 'gone', 'category_id': 999999,
        })
        response = self.client.get(url)
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.context['category'])
        self.assertEqual(self._names(response), [])
        self.assertEqual(response.context['breadcrumbs'], [])
        self.assertFalse(_events(TrackingEvent.CATEGORY_PAGE_VIEW).exists())

    def test_category_filter_cannot_be_spoofed(self):
        """A parentCategoryIds parameter cannot widen the listing."""
        response = self.client.get(self.url, {'parentCategoryIds': self.other.pk, 'page': 1})
        self.assertNotIn('Roof Box', self._names(response))
        self.assertEqual(response.context['page_obj'].paginator.count, 3)

    def test_color_filter(self):
        """Multiselect filters narrow the listing."""
        response = self.client.get(self.url, {'colors': 'red'})
        self.assertEqual(self._names(response), ['Alpha', 'Charlie'])

    def test_filter_state_in_context(self):
        """Filter states expose the available values."""
        response = self.client.get(self.url)
        color_filter = response.context['filters'][0]
        self.assertEqual(color_filter.field, 'colors')
        self.assertEqual(color_filter.values, ['blue', 'red'])

    def test_category_filter_definition_used(self):
        """The category's stored filter definition applies without an override."""
        response = self.client.get(self.url)
        self.assertEqual(response.context['filter_definition'], self.definition)

    def test_explicit_filter_definition_wins(self):
        """A filterdefinition parameter overrides the category's definition."""
        explicit = FilterDefinition.objects.create(name='explicit', page_limit=1)
        response = self.client.get(self.url, {'filterdefinition': explicit.pk})
        self.assertEqual(response.context['filter_definition'], explicit)
        self.assertEqual(len(response.context['products']), 1)

    @override_settings(SHOP_FALLBACK_FILTER_DEFINITION='fallback')
    def test_fallback_filter_definition(self):
        """Without explicit or category definitions the fallback applies."""
        fallback = FilterDefinition.objects.create(name='fallback', page_limit=10)
        url = ProductLinkGenerator().generate_category(self.other)
        response = self.client.get(url)
        self.assertEqual(response.context['filter_definition'], fallback)

    def test_default_definition_when_no_fallback_configured(self):
        """With nothing configured an unsaved default definition is used."""
        url = ProductLinkGenerator().generate_category(self.other)
        response = self.client.get(url)
        self.assertEqual(response.context['filter_definition'].name, 'default')
        self.assertEqual([p.name for p in response.context['products']], ['Roof Box'])

    def test_zero_page_limit_is_rejected(self):
        """A filter definition must show at least one product per page."""
        definition = FilterDefinition(name='broken', page_limit=0)
        with self.assertRaises(ValidationError):
            definition.full_clean()

    def test_zero_page_limit_still_renders(self):
        """A stored page limit of 0 is treated as 1 instead of failing the page."""
        FilterDefinition.objects.filter(pk=self.definition.pk).update(page_limit=0)
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self._names(response), ['Alpha'])
        self.assertEqual(response.context['pagination']['page_count'], 3)

    def test_pagination_window(self):
        """The pager shows a sliding window of five pages."""
        for i in range(10):
            _make_car(name=f'Extra {i:02d}', category=self.category)
        response = self.client.get(self.url, {'page': 4})
        pagination = response.context['pagination']
        self.assertEqual(pagination['pages_in_range'], [2, 3, 4, 5, 6])
        self.assertEqual(pagination['page_count'], 7)

    def test_breadcrumbs_and_title(self):
        """Category pages get a breadcrumb and the category name as title."""
        url = ProductLinkGenerator().generate_category(self.subcategory)
        response = self.client.get(url)
        labels = [c['label'] for c in response.context['breadcrumbs']]
        self.assertEqual(labels[1:], ['Cars', 'Coupes'])
        self.assertEqual(response.context['head_title'], 'Coupes')


@override_settings(STORAGES=_TEST_STORAGES)
class SearchViewTest(TestCase):
    """Test the search page and autocomplete."""

    def setUp(self):
        cache.clear()
        self.client = Client()
        self.url = reverse('products:search')
        jaguar = Manufacturer.objects.create(name='Jaguar')
        self.red = _make_car(
            name='E-Type', manufacturer=jaguar, colors=['red'], car_class='Sports Car',
        )
        self.green = _make_car(
            name='XK120', manufacturer=jaguar, colors=['green'], car_class='Roadster',
        )
        self.part = _make_accessory(name='Jaguar Floor Mats')
        _make_car(name='Beetle', colors=['red'], car_class='Compact')

    def test_search_page_ok(self):
        """Search renders the results page with term and language."""
        response = self.client.get(self.url, {'term': 'jaguar'})
        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, 'products/search.html')
        self.assertEqual(response.context['term'], 'jaguar')
        self.assertEqual(response.context['language'], 'en')
        self.assertCountEqual(
            response.context['products'], [self.red, self.green, self.part],
        )

    def test_search_tokens_are_conjunctive(self):
        """Every token must match."""
        response = self.client.get(self.url, {'term': 'jaguar  red'})
        self.assertEqual(list(response.context['products']), [self.red])

    def test_search_strips_markup(self):
        """Markup in the term is removed."""
        response = self.client.get(self.url, {'term': '<b>Beetle</b>'})
        self.assertEqual(response.context['term'], 'Beetle')
        self.assertEqual([p.name for p in response.context['products']], ['Beetle'])

    def test_search_results_impressions(self):
        """One search-results impression per product on the page."""
        self.client.get(self.url, {'term': 'jaguar'})
        impressions = _events(TrackingEvent.PRODUCT_IMPRESSION, 'search-results')
        self.assertCountEqual(
            [e.product for e in impressions], [self.red, self.green, self.part],
        )
        self.assertEqual(TrackingEvent.objects.count(), 3)

    def test_search_breadcrumb_and_title(self):
        """A localised search-result breadcrumb and title mention the term."""
        response = self.client.get(self.url, {'term': 'beetle'})
        last = response.context['breadcrumbs'][-1]
        self.assertEqual(last['id'], 'search-result')
        self.assertIn('beetle', last['label'])
        self.assertEqual(response.context['head_title'], last['label'])

    def test_unsupported_browser_language_falls_back_to_english(self):
        """Only languages with a catalogue are offered; others get English."""
        response = self.client.get(self.url, {'term': 'beetle'}, HTTP_ACCEPT_LANGUAGE='de')
        self.assertEqual(response.context['language'], 'en')
        self.assertEqual(response.context['head_title'], 'Search results for "beetle"')

    def test_search_narrowed_by_category(self):
        """A category parameter restricts results to that category."""
        category = Category.objects.create(name='Classics')
        self.green.category = category
        self.green.save()
        response = self.client.get(self.url, {'term': 'jaguar', 'category': category.pk})
        self.assertEqual(list(response.context['products']), [self.green])

    def test_autocomplete_returns_json_list(self):
        """Autocomplete returns a JSON array of href/product entries."""
        response = self.client.get(self.url, {'term': 'e-type', 'autocomplete': '1'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'application/json')
        self.assertEqual(response.json(), [{
            'href': self.red.get_absolute_url(),
            'product': 'E-Type red, Sports Car',
        }])

    def test_autocomplete_accessory_label(self):
        """Accessories are labelled by name only."""
        response = self.client.get(self.url, {'term': 'mats', 'autocomplete': ''})
        self.assertEqual([r['product'] for r in response.json()], ['Jaguar Floor Mats'])

    def test_autocomplete_limit_10(self):
        """At most 10 entries, each with a non-empty href."""
        for i in range(15):
            _make_car(name=f'Jaguar Model {i}')
        response = self.client.get(self.url, {'term': 'jaguar', 'autocomplete': '1'})
        data = response.json()
        self.assertEqual(len(data), 10)
        self.assertTrue(all(entry['href'] for entry in data))

    def test_autocomplete_records_nothing(self):
        """Autocomplete neither tracks nor renders a template."""
        response = self.client.get(self.url, {'term': 'jaguar', 'autocomplete': '1'})
        self.assertFalse(TrackingEvent.objects.exists())
        self.assertEqual(response.templates, [])


@override_settings(STORAGES=_TEST_STORAGES)
class TeaserViewTest(TestCase):
    """Test the product teaser fragment."""

    def setUp(self):
        self.client = Client()
        self.url = reverse('products:teaser')
        self.car = _make_car(name='E-Type')

    def test_teaser_ok(self):
        """type=object renders the teaser and records a teaser impression."""
        response = self.client.get(self.url, {'type': 'object', 'id': self.car.pk})
        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, 'products/product_teaser.html')
        impressions = _events(TrackingEvent.PRODUCT_IMPRESSION, 'teaser')
        self.assertEqual(impressions.get().product, self.car)

    def test_teaser_unsupported_type(self):
        """Any other type is a 404."""
        response = self.client.get(self.url, {'type': 'document', 'id': self.car.pk})
        self.assertEqual(response.status_code, 404)

    def test_teaser_bad_or_missing_id(self):
        """Unknown, malformed or unpublished ids are a 404."""
        hidden = _make_car(name='Hidden', is_published=False)
        for product_id in ('999999', 'abc', '', hidden.pk):
            response = self.client.get(self.url, {'type': 'object', 'id': product_id})
            self.assertEqual(response.status_code, 404)
        self.assertFalse(TrackingEvent.objects.exists())
