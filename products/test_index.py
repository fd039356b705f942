"""
Tests for the index service and its backends.

Covers:
- IndexService configuration errors and tenant lookup
- DatabaseProductListing conditions, search tokens, slicing and counting
- ElasticsearchProductListing query documents, hit loading and error handling
- ElasticsearchBackend bulk indexing
- The update_search_index management command
"""

import decimal
import json
from io import StringIO
from unittest import mock

import requests
from django.core.cache import cache
from django.core.exceptions import ImproperlyConfigured
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import Client, TestCase, override_settings
from django.urls import reverse

from .exceptions import IndexBackendError
from .index import VARIANT_MODE_VARIANTS_ONLY, IndexService
from .index.database import DatabaseBackend, DatabaseProductListing
from .index.elasticsearch import ElasticsearchBackend, build_document
from .models import Category, Manufacturer, Product

_TEST_STORAGES = {
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}

_ES_TENANTS = {
    'default': {'BACKEND': 'products.index.database.DatabaseBackend'},
    'elasticsearch': {
        'BACKEND': 'products.index.elasticsearch.ElasticsearchBackend',
        'URL': 'http://es.test:9200/',
        'INDEX': 'products_test',
    },
}


def _make_car(name, **kwargs):
    kwargs.setdefault('object_type', Product.OBJECT_TYPE_ACTUAL_CAR)
    return Product.objects.create(name=name, product_type=Product.TYPE_CAR, **kwargs)


def _es_response(payload, status_code=200):
    """Fake requests.Response carrying `payload` as JSON."""
    response = mock.Mock(status_code=status_code)
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f'{status_code} error')
    else:
        response.raise_for_status.return_value = None
    return response


def _sent_body(call):
    return call.kwargs['json']


class IndexServiceTest(TestCase):
    """Test tenant configuration."""

    def test_current_tenant_listing(self):
        """The current tenant hands out its own listing class."""
        service = IndexService({'default': {'BACKEND': 'products.index.database.DatabaseBackend'}}, 'default')
        self.assertIsInstance(service.get_backend(), DatabaseBackend)
        self.assertIsInstance(service.get_product_list_for_current_tenant(), DatabaseProductListing)

    def test_unknown_current_tenant(self):
        """Selecting an undeclared tenant is a configuration error."""
        with self.assertRaises(ImproperlyConfigured):
            IndexService({'default': {'BACKEND': 'products.index.database.DatabaseBackend'}}, 'missing')

    def test_missing_backend(self):
        """Tenants must name a backend."""
        with self.assertRaises(ImproperlyConfigured):
            IndexService({'default': {}}, 'default')

    def test_unimportable_backend(self):
        """A backend path that does not import is a configuration error."""
        with self.assertRaises(ImproperlyConfigured):
            IndexService({'default': {'BACKEND': 'products.index.nowhere.Backend'}}, 'default')

    def test_backend_must_be_index_backend(self):
        """Arbitrary classes are rejected."""
        with self.assertRaises(ImproperlyConfigured):
            IndexService({'default': {'BACKEND': 'products.filters.FilterService'}}, 'default')

    def test_get_backend_by_name(self):
        """Other tenants are reachable by name; unknown names raise."""
        service = IndexService(_ES_TENANTS, 'default')
        self.assertIsInstance(service.get_backend('elasticsearch'), ElasticsearchBackend)
        with self.assertRaises(ImproperlyConfigured):
            service.get_backend('solr')


class DatabaseProductListingTest(TestCase):
    """Test the relational listing."""

    def setUp(self):
        cache.clear()
        self.backend = DatabaseBackend('default', {})
        self.jaguar = Manufacturer.objects.create(name='Jaguar')
        self.vw = Manufacturer.objects.create(name='Volkswagen')
        self.category = Category.objects.create(name='Cars')
        self.sub = Category.objects.create(name='Classics', parent=self.category)

        self.etype = _make_car(
            'E-Type', manufacturer=self.jaguar, colors=['red', 'black'],
            car_class='Sports Car', price=decimal.Decimal('95000'), category=self.sub,
        )
        self.beetle = _make_car(
            'Beetle', manufacturer=self.vw, colors=['yellow'],
            car_class='Compact', price=decimal.Decimal('15000'), category=self.category,
        )
        self.virtual = _make_car(
            'XK Series', manufacturer=self.jaguar,
            object_type=Product.OBJECT_TYPE_VIRTUAL_CAR,
        )
        self.hidden = _make_car('Prototype', is_published=False)
        self.part = Product.objects.create(
            name='Roof Box', product_type=Product.TYPE_ACCESSORY, price=decimal.Decimal('300'),
        )

    def _listing(self):
        return self.backend.get_product_list()

    def test_only_published_products(self):
        """Unpublished products never appear."""
        self.assertNotIn(self.hidden, list(self._listing()))

    def test_variants_only_excludes_virtual_cars(self):
        """Variants-only mode drops virtual cars."""
        listing = self._listing()
        self.assertIn(self.virtual, list(listing))
        listing.set_variant_mode(VARIANT_MODE_VARIANTS_ONLY)
        self.assertNotIn(self.virtual, list(listing))

    def test_default_order_is_name(self):
        """Products come back by name."""
        names = [p.name for p in self._listing()]
        self.assertEqual(names, sorted(names))

    def test_order_key(self):
        """Whitelisted order keys apply; unknown ones are ignored."""
        listing = self._listing()
        listing.restrict_to_ids([self.etype.pk, self.beetle.pk, self.part.pk])
        listing.set_order_key('-price')
        self.assertEqual(list(listing), [self.etype, self.beetle, self.part])
        listing.set_order_key('description')
        self.assertEqual(listing.order_key, '-price')

    def test_restrict_to_ids(self):
        """Only the given ids; an empty list matches nothing."""
        listing = self._listing()
        listing.restrict_to_ids([self.beetle.pk, self.hidden.pk])
        self.assertEqual(list(listing), [self.beetle])

        empty = self._listing()
        empty.restrict_to_ids([])
        self.assertEqual(list(empty), [])
        self.assertEqual(empty.count(), 0)

    def test_restrict_to_category_includes_descendants(self):
        """A category restriction covers the whole subtree."""
        listing = self._listing()
        listing.restrict_to_category(self.category)
        self.assertCountEqual(list(listing), [self.etype, self.beetle])

    def test_search_matches_any_field(self):
        """A token matches name, manufacturer, colors or class."""
        for term, expected in [
            ('beetle', [self.beetle]),
            ('volkswagen', [self.beetle]),
            ('yellow', [self.beetle]),
            ('compact', [self.beetle]),
        ]:
            listing = self._listing()
            listing.add_search_term(term)
            self.assertEqual(list(listing), expected, term)

    def test_search_tokens_are_conjunctive(self):
        """All tokens must match."""
        listing = self._listing()
        listing.set_variant_mode(VARIANT_MODE_VARIANTS_ONLY)
        listing.add_search_term('  jaguar\tblack ')
        self.assertEqual(list(listing), [self.etype])

    def test_search_matches_non_ascii_colors(self):
        """Colors with non-ASCII characters are found by search like by the color filter."""
        cabrio = _make_car('Cabrio', colors=['Grün'])
        for term in ('grün', 'Grün'):
            listing = self._listing()
            listing.add_search_term(term)
            self.assertEqual(list(listing), [cabrio], term)

        listing = self._listing()
        listing.add_field_condition('colors', ['Grün'])
        self.assertEqual(list(listing), [cabrio])

    def test_blank_search_term_is_ignored(self):
        """An empty term adds no condition."""
        listing = self._listing()
        listing.add_search_term('   ')
        self.assertEqual(listing.conditions, [])

    def test_field_conditions(self):
        """Field conditions match any of their values."""
        listing = self._listing()
        listing.add_field_condition('manufacturer', ['volkswagen', 'bosch'])
        self.assertEqual(list(listing), [self.beetle])

        listing = self._listing()
        listing.add_field_condition('colors', ['black', 'yellow'])
        self.assertCountEqual(list(listing), [self.etype, self.beetle])

    def test_unsupported_field_is_ignored(self):
        """Fields outside the lookup map add nothing."""
        listing = self._listing()
        with self.assertLogs('products.index.database', 'WARNING'):
            listing.add_field_condition('description', ['x'])
        self.assertEqual(listing.conditions, [])

    def test_range_condition(self):
        """Inclusive price bounds."""
        listing = self._listing()
        listing.add_range_condition('price', decimal.Decimal('300'), decimal.Decimal('15000'))
        self.assertCountEqual(list(listing), [self.beetle, self.part])

    def test_group_by_values(self):
        """Distinct values among current matches."""
        listing = self._listing()
        listing.set_variant_mode(VARIANT_MODE_VARIANTS_ONLY)
        self.assertEqual(listing.group_by_values('colors'), ['black', 'red', 'yellow'])
        self.assertEqual(listing.group_by_values('manufacturer'), ['jaguar', 'volkswagen'])
        self.assertEqual(listing.group_by_values('unknown'), [])

    def test_count_slicing_and_limit(self):
        """Counting and slicing go through the queryset; limit caps both."""
        listing = self._listing()
        self.assertEqual(listing.count(), 4)
        self.assertEqual(len(listing), 4)
        self.assertEqual([p.name for p in listing[1:3]], ['E-Type', 'Roof Box'])
        self.assertEqual(listing[0], self.beetle)
        with self.assertRaises(IndexError):
            listing[4]

        listing.set_limit(2)
        self.assertEqual(listing.count(), 2)
        self.assertEqual(len(list(listing)), 2)


class ElasticsearchListingTest(TestCase):
    """Test query documents sent to Elasticsearch, with HTTP mocked out."""

    def setUp(self):
        cache.clear()
        self.backend = ElasticsearchBackend('elasticsearch', _ES_TENANTS['elasticsearch'])
        self.etype = _make_car('E-Type')
        self.beetle = _make_car('Beetle')
        patcher = mock.patch.object(self.backend.session, 'request')
        self.request = patcher.start()
        self.addCleanup(patcher.stop)

    def _query(self, listing):
        return listing.build_query()['bool']

    def test_published_filter_always_applied(self):
        """Every query is limited to published documents."""
        query = self._query(self.backend.get_product_list())
        self.assertIn({'term': {'system.o_published': True}}, query['filter'])
        self.assertNotIn('must', query)

    def test_restrict_to_ids(self):
        """Id restrictions become a terms filter."""
        listing = self.backend.get_product_list()
        listing.restrict_to_ids([3, 5])
        self.assertIn({'terms': {'system.o_id': [3, 5]}}, self._query(listing)['filter'])

    def test_restrict_to_category(self):
        """Category restrictions match on the ancestor id list."""
        category = Category.objects.create(name='Cars')
        listing = self.backend.get_product_list()
        listing.restrict_to_category(category)
        self.assertIn({'term': {'attributes.categoryIds': category.pk}}, self._query(listing)['filter'])

    def test_variants_only(self):
        """Variants-only mode excludes virtual cars."""
        listing = self.backend.get_product_list()
        listing.set_variant_mode(VARIANT_MODE_VARIANTS_ONLY)
        self.assertEqual(
            self._query(listing)['must_not'],
            [{'term': {'system.o_objectType': Product.OBJECT_TYPE_VIRTUAL_CAR}}],
        )

    def test_search_term_weights_cars_over_accessories(self):
        """Search scores are multiplied by 2 for cars and 1 for accessories."""
        listing = self.backend.get_product_list()
        listing.add_search_term('jaguar red')
        function_score = self._query(listing)['must'][0]['function_score']
        self.assertEqual(function_score['boost_mode'], 'multiply')
        self.assertEqual(function_score['query']['multi_match']['query'], 'jaguar red')
        self.assertEqual(function_score['query']['multi_match']['operator'], 'and')
        weights = {
            f['filter']['match']['system.o_classId']: f['weight']
            for f in function_score['functions']
        }
        self.assertEqual(weights, {'CAR': 2, 'AP': 1})

    def test_range_bounds_are_numbers(self):
        """Decimal bounds are sent as JSON numbers."""
        listing = self.backend.get_product_list()
        listing.add_range_condition('price', decimal.Decimal('10.5'), None)
        self.assertIn({'range': {'attributes.price': {'gte': 10.5}}}, self._query(listing)['filter'])
        json.dumps(listing.build_query())

    def test_fetch_keeps_hit_order(self):
        """Products are loaded from the database in hit order; stale hits are skipped."""
        self.request.return_value = _es_response({'hits': {'hits': [
            {'_id': str(self.beetle.pk)}, {'_id': '999999'}, {'_id': str(self.etype.pk)},
        ]}})
        listing = self.backend.get_product_list()
        listing.set_order_key('-price')
        self.assertEqual(listing.fetch(10, 5), [self.beetle, self.etype])

        method, url = self.request.call_args.args
        body = _sent_body(self.request.call_args)
        self.assertEqual((method, url), ('POST', 'http://es.test:9200/products_test/_search'))
        self.assertEqual(body['from'], 10)
        self.assertEqual(body['size'], 5)
        self.assertEqual(body['sort'], [{'attributes.price': 'desc'}])

    def test_count(self):
        """Counts come from the _count endpoint."""
        self.request.return_value = _es_response({'count': 42})
        listing = self.backend.get_product_list()
        self.assertEqual(listing.count(), 42)
        self.assertTrue(self.request.call_args.args[1].endswith('/_count'))

    def test_group_by_values(self):
        """Available values come from a terms aggregation."""
        self.request.return_value = _es_response({'aggregations': {'values': {'buckets': [
            {'key': 'red', 'doc_count': 3}, {'key': 'blue', 'doc_count': 1},
        ]}}})
        listing = self.backend.get_product_list()
        self.assertEqual(listing.group_by_values('colors'), ['blue', 'red'])

    def test_transport_error(self):
        """Connection failures surface as IndexBackendError."""
        self.request.side_effect = requests.ConnectionError('refused')
        with self.assertRaises(IndexBackendError):
            self.backend.get_product_list().count()

    def test_error_status(self):
        """HTTP error statuses surface as IndexBackendError."""
        self.request.return_value = _es_response({'error': 'boom'}, status_code=500)
        with self.assertRaises(IndexBackendError):
            self.backend.get_product_list().fetch(0, 10)

    def test_malformed_response(self):
        """Responses missing the expected keys surface as IndexBackendError."""
        self.request.return_value = _es_response({'unexpected': True})
        with self.assertRaises(IndexBackendError):
            self.backend.get_product_list().fetch(0, 10)

    def test_build_document(self):
        """Documents carry the class id and the ancestor category ids."""
        root = Category.objects.create(name='Cars')
        sub = Category.objects.create(name='Classics', parent=root)
        car = _make_car('XK120', category=sub, colors=['green'], price=decimal.Decimal('1.50'))
        document = build_document(car)
        self.assertEqual(document['system']['o_classId'], 'CAR')
        self.assertEqual(document['attributes']['categoryIds'], [root.pk, sub.pk])
        self.assertEqual(document['attributes']['price'], 1.5)
        json.dumps(document)

    def test_index_products_bulk(self):
        """Products are written with one NDJSON bulk request."""
        self.request.return_value = _es_response({'errors': False, 'items': []})
        written = self.backend.index_products([self.etype, self.beetle])
        self.assertEqual(written, 2)
        method, url = self.request.call_args.args
        self.assertEqual((method, url), ('POST', 'http://es.test:9200/products_test/_bulk'))
        lines = self.request.call_args.kwargs['data'].strip().split('\n')
        self.assertEqual(len(lines), 4)
        self.assertEqual(json.loads(lines[0]), {'index': {'_id': str(self.etype.pk)}})

    def test_index_products_reports_failures(self):
        """Per-document errors in a bulk response raise."""
        self.request.return_value = _es_response({'errors': True, 'items': [
            {'index': {'_id': str(self.etype.pk), 'error': {'type': 'mapper_parsing_exception'}}},
        ]})
        with self.assertRaises(IndexBackendError):
            self.backend.index_products([self.etype])

    def test_index_nothing(self):
        """An empty batch sends no request."""
        self.assertEqual(self.backend.index_products([]), 0)
        self.request.assert_not_called()


@override_settings(
    STORAGES=_TEST_STORAGES,
    SHOP_INDEX_TENANTS=_ES_TENANTS,
    SHOP_CURRENT_TENANT='elasticsearch',
)
class ElasticsearchSearchViewTest(TestCase):
    """The search view reads through the Elasticsearch tenant when it is current."""

    def setUp(self):
        self.client = Client()
        self.car = _make_car('E-Type', colors=['red'], car_class='Sports Car')

    @mock.patch.object(requests.Session, 'request')
    def test_autocomplete(self, request):
        """Autocomplete hits are turned into href/label entries."""
        def respond(method, url, **kwargs):
            if url.endswith('/_count'):
                return _es_response({'count': 1})
            return _es_response({'hits': {'hits': [{'_id': str(self.car.pk)}]}})
        request.side_effect = respond

        response = self.client.get(reverse('products:search'), {'term': 'e-type', 'autocomplete': '1'})
        self.assertEqual(response.json(), [{
            'href': self.car.get_absolute_url(),
            'product': 'E-Type red, Sports Car',
        }])
        search_call = [c for c in request.call_args_list if c.args[1].endswith('/_search')][0]
        self.assertEqual(_sent_body(search_call)['size'], 10)


class UpdateSearchIndexCommandTest(TestCase):
    """Test the update_search_index management command."""

    def setUp(self):
        self.etype = _make_car('E-Type')
        self.beetle = _make_car('Beetle')
        self.prototype = _make_car('Prototype', is_published=False)

    def test_database_tenant_is_skipped(self):
        """Tenants without an external index have nothing to do."""
        out = StringIO()
        call_command('update_search_index', stdout=out)
        self.assertIn('nothing to index', out.getvalue())

    @override_settings(SHOP_INDEX_TENANTS=_ES_TENANTS)
    @mock.patch.object(ElasticsearchBackend, 'remove_stale_products', return_value=0)
    @mock.patch.object(ElasticsearchBackend, 'index_products')
    def test_indexes_all_products_in_batches(self, index_products, remove_stale_products):
        """Every product, published or not, is sent in batches of --batch-size."""
        index_products.side_effect = lambda products: len(list(products))
        out = StringIO()
        call_command('update_search_index', tenant='elasticsearch', batch_size=1, stdout=out)
        self.assertEqual(index_products.call_count, 3)
        self.assertIn('3 products indexed', out.getvalue())

    @override_settings(SHOP_INDEX_TENANTS=_ES_TENANTS)
    @mock.patch.object(requests.Session, 'request')
    def test_unpublished_product_is_reindexed_as_unpublished(self, request):
        """Unpublishing a product updates its document instead of leaving it searchable."""
        request.side_effect = lambda method, url, **kwargs: (
            _es_response({'deleted': 0}) if url.endswith('/_delete_by_query')
            else _es_response({'errors': False, 'items': []})
        )
        self.beetle.is_published = False
        self.beetle.save()

        call_command('update_search_index', tenant='elasticsearch', stdout=StringIO())

        bulk_call = [c for c in request.call_args_list if c.args[1].endswith('/_bulk')][0]
        lines = bulk_call.kwargs['data'].strip().split('\n')
        documents = {
            json.loads(action)['index']['_id']: json.loads(source)
            for action, source in zip(lines[::2], lines[1::2])
        }
        self.assertIs(documents[str(self.beetle.pk)]['system']['o_published'], False)
        self.assertIs(documents[str(self.prototype.pk)]['system']['o_published'], False)
        self.assertIs(documents[str(self.etype.pk)]['system']['o_published'], True)

    @override_settings(SHOP_INDEX_TENANTS=_ES_TENANTS)
    @mock.patch.object(requests.Session, 'request')
    def test_deleted_products_are_removed(self, request):
        """Documents of products no longer in the catalogue are deleted by query."""
        request.side_effect = lambda method, url, **kwargs: (
            _es_response({'deleted': 1}) if url.endswith('/_delete_by_query')
            else _es_response({'errors': False, 'items': []})
        )
        self.prototype.delete()
        out = StringIO()

        call_command('update_search_index', tenant='elasticsearch', stdout=out)

        delete_call = [c for c in request.call_args_list if c.args[1].endswith('/_delete_by_query')][0]
        must_not = _sent_body(delete_call)['query']['bool']['must_not']
        self.assertCountEqual(must_not[0]['terms']['system.o_id'], [self.etype.pk, self.beetle.pk])
        self.assertIn('Removed 1 deleted products', out.getvalue())

    @override_settings(SHOP_INDEX_TENANTS=_ES_TENANTS)
    @mock.patch.object(ElasticsearchBackend, 'remove_stale_products')
    @mock.patch.object(ElasticsearchBackend, 'create_index')
    @mock.patch.object(ElasticsearchBackend, 'index_products', return_value=3)
    def test_recreate(self, index_products, create_index, remove_stale_products):
        """--recreate drops and recreates the index first; nothing stale is left to remove."""
        call_command('update_search_index', tenant='elasticsearch', recreate=True, stdout=StringIO())
        create_index.assert_called_once_with(recreate=True)
        remove_stale_products.assert_not_called()

    @override_settings(SHOP_INDEX_TENANTS=_ES_TENANTS)
    @mock.patch.object(ElasticsearchBackend, 'index_products', side_effect=IndexBackendError('down'))
    def test_backend_failure(self, index_products):
        """Backend errors become a CommandError."""
        with self.assertRaises(CommandError):
            call_command('update_search_index', tenant='elasticsearch', stdout=StringIO())
