"""
Tests for filter definitions, pagination and the shop container.

Covers:
- FilterService: select, multiselect, range and category filters,
  fixed conditions, ordering and the pinned category
- resolve_filter_definition precedence
- Sliding pager window
- Shop fallback filter definition lookup
"""

import decimal

from django.core.cache import cache
from django.core.paginator import Paginator
from django.http import QueryDict
from django.test import RequestFactory, TestCase, override_settings

from .filters import CATEGORY_PARAM, FilterService, resolve_filter_definition
from .index.database import DatabaseBackend
from .models import Category, FilterDefinition, Product
from .pagination import paginate, sliding_window
from .shop import get_shop


def _make_car(name, **kwargs):
    kwargs.setdefault('object_type', Product.OBJECT_TYPE_ACTUAL_CAR)
    return Product.objects.create(name=name, product_type=Product.TYPE_CAR, **kwargs)


class FilterServiceTest(TestCase):
    """Test how filter definitions narrow a listing."""

    def setUp(self):
        cache.clear()
        self.service = FilterService()
        self.backend = DatabaseBackend('default', {})
        self.cars = Category.objects.create(name='Cars')
        self.coupes = Category.objects.create(name='Coupes', parent=self.cars)
        self.vans = Category.objects.create(name='Vans', parent=self.cars)

        self.red = _make_car('Alpha', colors=['red'], car_class='Coupe',
                             price=decimal.Decimal('100'), category=self.coupes)
        self.blue = _make_car('Bravo', colors=['blue'], car_class='Van',
                              price=decimal.Decimal('200'), category=self.vans)
        self.green = _make_car('Charlie', colors=['green'], car_class='Coupe',
                               price=decimal.Decimal('300'), category=self.coupes)

    def _run(self, filters=None, params=None, **definition):
        definition = FilterDefinition(name='test', filters=filters or [], **definition)
        listing = self.backend.get_product_list()
        states = self.service.setup_product_list(definition, listing, QueryDict(params or ''))
        return listing, states

    def test_select(self):
        """Select filters apply a single value and list the options."""
        listing, states = self._run(
            [{'type': 'select', 'field': 'car_class', 'label': 'Class'}], 'car_class=Van',
        )
        self.assertEqual(list(listing), [self.blue])
        self.assertEqual(states[0].current, 'Van')
        self.assertEqual(states[0].values, ['Coupe', 'Van'])
        self.assertEqual(states[0].label, 'Class')

    def test_select_preselect(self):
        """Preselected values apply when the visitor chose nothing."""
        listing, states = self._run(
            [{'type': 'select', 'field': 'car_class', 'preselect': 'Coupe'}],
        )
        self.assertEqual(list(listing), [self.red, self.green])
        self.assertEqual(states[0].label, 'car_class')

    def test_multiselect(self):
        """Multiselect filters match any selected value."""
        listing, states = self._run(
            [{'type': 'multiselect', 'field': 'colors'}], 'colors=red&colors=blue',
        )
        self.assertEqual(list(listing), [self.red, self.blue])
        self.assertEqual(states[0].current, ['red', 'blue'])
        self.assertEqual(states[0].values, ['blue', 'green', 'red'])

    def test_range(self):
        """Range filters read <field>_min and <field>_max."""
        listing, states = self._run(
            [{'type': 'range', 'field': 'price'}], 'price_min=150&price_max=300',
        )
        self.assertEqual(list(listing), [self.blue, self.green])
        self.assertEqual(states[0].current, {'min': decimal.Decimal('150'), 'max': decimal.Decimal('300')})

    def test_range_ignores_non_numeric_bounds(self):
        """Unparseable bounds are dropped, not errors."""
        listing, states = self._run([{'type': 'range', 'field': 'price'}], 'price_min=cheap')
        self.assertEqual(len(list(listing)), 3)
        self.assertEqual(states[0].current, {'min': None, 'max': None})

    def test_category_filter(self):
        """Category filters offer the subcategories of the pinned category."""
        params = f'{CATEGORY_PARAM}={self.cars.pk}&category=vans'
        listing, states = self._run([{'type': 'category', 'field': 'category'}], params)
        self.assertEqual(list(listing), [self.blue])
        self.assertCountEqual(states[0].values, [self.coupes, self.vans])
        self.assertEqual(states[0].current, self.vans)

    def test_pinned_category_without_category_filter(self):
        """The pinned category applies even if the definition has no category filter."""
        listing, _ = self._run(params=f'{CATEGORY_PARAM}={self.coupes.pk}')
        self.assertEqual(list(listing), [self.red, self.green])

    def test_pinned_missing_category_matches_nothing(self):
        """A pinned category that does not exist empties the listing."""
        listing, _ = self._run(params=f'{CATEGORY_PARAM}=999999')
        self.assertEqual(list(listing), [])

    def test_conditions_and_order(self):
        """Fixed conditions and ordering come from the definition."""
        listing, _ = self._run(conditions={'car_class': 'Coupe'}, order_by='-price')
        self.assertEqual(list(listing), [self.green, self.red])

    def test_unsupported_filter_skipped(self):
        """Unknown filter types are logged and skipped."""
        with self.assertLogs('products.filters', 'WARNING'):
            listing, states = self._run([{'type': 'slider', 'field': 'price'}, {'type': 'select'}])
        self.assertEqual(states, [])
        self.assertEqual(len(list(listing)), 3)

    def test_plain_dict_params(self):
        """Params may be a plain dict as well as a QueryDict."""
        definition = FilterDefinition(name='test', filters=[{'type': 'multiselect', 'field': 'colors'}])
        listing = self.backend.get_product_list()
        self.service.setup_product_list(definition, listing, {'colors': ['green']})
        self.assertEqual(list(listing), [self.green])


class ResolveFilterDefinitionTest(TestCase):
    """Test filter definition precedence: explicit > category > fallback."""

    def setUp(self):
        self.factory = RequestFactory()
        self.fallback = FilterDefinition(name='fallback')
        self.stored = FilterDefinition.objects.create(name='stored')
        self.other = FilterDefinition.objects.create(name='other')
        self.category = Category.objects.create(name='Cars', filter_definition=self.stored)
        self.plain = Category.objects.create(name='Parts')

    def test_explicit_instance_wins(self):
        request = self.factory.get('/', {'filterdefinition': self.other.pk})
        explicit = FilterDefinition(name='explicit')
        self.assertIs(resolve_filter_definition(request, self.category, self.fallback, explicit), explicit)

    def test_query_parameter_wins_over_category(self):
        request = self.factory.get('/', {'filterdefinition': self.other.pk})
        self.assertEqual(resolve_filter_definition(request, self.category, self.fallback), self.other)

    def test_unknown_query_parameter_falls_through(self):
        for value in ('999999', 'abc'):
            request = self.factory.get('/', {'filterdefinition': value})
            self.assertEqual(resolve_filter_definition(request, self.category, self.fallback), self.stored)

    def test_category_definition(self):
        request = self.factory.get('/')
        self.assertEqual(resolve_filter_definition(request, self.category, self.fallback), self.stored)

    def test_fallback(self):
        request = self.factory.get('/')
        self.assertIs(resolve_filter_definition(request, self.plain, self.fallback), self.fallback)
        self.assertIs(resolve_filter_definition(request, None, self.fallback), self.fallback)


class PaginationTest(TestCase):
    """Test the sliding pager window."""

    def _window(self, page, pages, page_range=5):
        page_obj = Paginator(list(range(pages)), 1).page(page)
        return sliding_window(page_obj, page_range)

    def test_window_at_start(self):
        window = self._window(1, 10)
        self.assertEqual(window['pages_in_range'], [1, 2, 3, 4, 5])
        self.assertIsNone(window['previous'])
        self.assertEqual(window['next'], 2)

    def test_window_centred(self):
        window = self._window(6, 10)
        self.assertEqual(window['pages_in_range'], [4, 5, 6, 7, 8])
        self.assertEqual(window['first_page_in_range'], 4)
        self.assertEqual(window['last_page_in_range'], 8)

    def test_window_at_end(self):
        window = self._window(10, 10)
        self.assertEqual(window['pages_in_range'], [6, 7, 8, 9, 10])
        self.assertIsNone(window['next'])
        self.assertEqual(window['last'], 10)

    def test_window_with_few_pages(self):
        window = self._window(2, 3)
        self.assertEqual(window['pages_in_range'], [1, 2, 3])
        self.assertEqual(window['page_count'], 3)
        self.assertEqual(window['total_item_count'], 3)
        self.assertEqual(window['item_count_per_page'], 1)

    def test_paginate_invalid_page(self):
        """Garbage and out-of-range pages fall back to page 1."""
        for page in ('abc', '0', '50', None):
            page_obj, pagination = paginate(list(range(7)), page, 3)
            self.assertEqual(page_obj.number, 1)
            self.assertEqual(pagination['page_count'], 3)

    def test_paginate_page_size_below_one(self):
        """A page size of 0 is treated as 1."""
        page_obj, pagination = paginate(list(range(3)), '2', 0)
        self.assertEqual(list(page_obj.object_list), [1])
        self.assertEqual(pagination['item_count_per_page'], 1)

    def test_paginate_empty(self):
        """An empty listing still has one (empty) page."""
        page_obj, pagination = paginate([], '1', 10)
        self.assertEqual(list(page_obj.object_list), [])
        self.assertEqual(pagination['pages_in_range'], [1])


class ShopTest(TestCase):
    """Test the shop container built from settings."""

    @override_settings(SHOP_FALLBACK_FILTER_DEFINITION='catalogue')
    def test_configured_fallback(self):
        definition = FilterDefinition.objects.create(name='catalogue', page_limit=30)
        self.assertEqual(get_shop().fallback_filter_definition, definition)

    @override_settings(SHOP_FALLBACK_FILTER_DEFINITION='missing')
    def test_missing_fallback_uses_default(self):
        with self.assertLogs('products.shop', 'WARNING'):
            definition = get_shop().fallback_filter_definition
        self.assertEqual(definition.name, 'default')
        self.assertIsNone(definition.pk)

    @override_settings(SHOP_PAGE_RANGE=7, SHOP_AUTOCOMPLETE_LIMIT=3)
    def test_settings_are_applied(self):
        shop = get_shop()
        self.assertEqual(shop.page_range, 7)
        self.assertEqual(shop.autocomplete_limit, 3)
