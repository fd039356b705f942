"""
Search-engine index backend talking to Elasticsearch over its REST API.

Products are indexed as documents with two sections:
    system      — id, class id (CAR / AP), object type, publication flag
    attributes  — searchable and filterable product data

Listings build a bool query document and POST it to the _search and
_count endpoints. Hits only carry ids; the products themselves are loaded
from the database in hit order.

Configuration (settings.SHOP_INDEX_TENANTS[<tenant>]):
    URL      — base URL of the cluster, e.g. http://localhost:9200
    INDEX    — index name
    TIMEOUT  — request timeout in seconds
"""

import json
import logging

import requests

from ..exceptions import IndexBackendError
from ..models import Product
from .base import VARIANT_MODE_VARIANTS_ONLY, IndexBackend, ProductListing

logger = logging.getLogger(__name__)

# filter field → document path
FIELD_PATHS = {
    'colors':       'attributes.color',
    'car_class':    'attributes.carClass',
    'manufacturer': 'attributes.manufacturer',
    'product_type': 'system.o_type',
    'category':     'attributes.category',
}
RANGE_PATHS = {
    'price': 'attributes.price',
}
ORDER_PATHS = {
    'name':       'attributes.name',
    'price':      'attributes.price',
    'created_at': 'system.o_creationDate',
}

# Weighted over name and manufacturer; every field is also searched through
# its analyzed and ngram sub-fields so partial words match in autocomplete.
SEARCH_FIELDS = [
    'attributes.name^4',
    'attributes.name.analyzed',
    'attributes.name.analyzed_ngram',
    'attributes.manufacturer_name^3',
    'attributes.manufacturer_name.analyzed',
    'attributes.manufacturer_name.analyzed_ngram',
    'attributes.color',
    'attributes.color.analyzed',
    'attributes.color.analyzed_ngram',
    'attributes.carClass',
    'attributes.carClass.analyzed',
    'attributes.carClass.analyzed_ngram',
]

GROUP_BY_SIZE = 200

_TEXT_FIELD = {
    'type': 'keyword',
    'fields': {
        'analyzed': {'type': 'text', 'analyzer': 'standard'},
        'analyzed_ngram': {
            'type': 'text',
            'analyzer': 'ngram_analyzer',
            'search_analyzer': 'standard',
        },
    },
}

INDEX_DEFINITION = {
    'settings': {
        'analysis': {
            'analyzer': {
                'ngram_analyzer': {
                    'tokenizer': 'ngram_tokenizer',
                    'filter': ['lowercase'],
                },
            },
            'tokenizer': {
                'ngram_tokenizer': {
                    'type': 'ngram',
                    'min_gram': 2,
                    'max_gram': 3,
                    'token_chars': ['letter', 'digit'],
                },
            },
        },
    },
    'mappings': {
        'properties': {
            'system': {
                'properties': {
                    'o_id': {'type': 'long'},
                    'o_classId': {'type': 'keyword'},
                    'o_type': {'type': 'keyword'},
                    'o_objectType': {'type': 'keyword'},
                    'o_published': {'type': 'boolean'},
                    'o_creationDate': {'type': 'date'},
                },
            },
            'attributes': {
                'properties': {
                    'name': _TEXT_FIELD,
                    'manufacturer_name': _TEXT_FIELD,
                    'color': _TEXT_FIELD,
                    'carClass': _TEXT_FIELD,
                    'manufacturer': {'type': 'keyword'},
                    'category': {'type': 'keyword'},
                    'categoryIds': {'type': 'long'},
                    'price': {'type': 'double'},
                },
            },
        },
    },
}


def build_search_query(term, kinds):
    """
    Weighted multi-field query for `term`.

    Matches are scored per field, then multiplied by the weight of the
    product kind so that, for equal text relevance, cars rank above
    accessories.
    """
    return {
        'function_score': {
            'query': {
                'multi_match': {
                    'query': term,
                    'type': 'cross_fields',
                    'operator': 'and',
                    'fields': SEARCH_FIELDS,
                },
            },
            'functions': [
                {
                    'filter': {'match': {'system.o_classId': kind.class_id}},
                    'weight': kind.search_weight,
                }
                for kind in kinds
            ],
            'boost_mode': 'multiply',
        },
    }


def build_document(product):
    """Index document for `product`."""
    category = product.category
    return {
        'system': {
            'o_id': product.pk,
            'o_classId': product.kind.class_id if product.kind else None,
            'o_type': product.product_type,
            'o_objectType': product.object_type,
            'o_published': product.is_published,
            'o_creationDate': product.created_at.isoformat() if product.created_at else None,
        },
        'attributes': {
            'name': product.name,
            'manufacturer_name': product.manufacturer.name if product.manufacturer else None,
            'manufacturer': product.manufacturer.slug if product.manufacturer else None,
            'color': list(product.colors or []),
            'carClass': product.car_class,
            'category': category.slug if category else None,
            'categoryIds': category.get_ancestor_ids() if category else [],
            'price': float(product.price) if product.price is not None else None,
        },
    }


class ElasticsearchProductListing(ProductListing):
    """Listing built as an Elasticsearch bool query."""

    def __init__(self, backend):
        super().__init__(backend)
        self.queries = []
        self.filters = []

    def _add_filter(self, clause):
        self.filters.append(clause)
        self._reset()

    def build_query(self):
        query = {
            'bool': {
                'filter': [{'term': {'system.o_published': True}}, *self.filters],
            },
        }
        if self.queries:
            query['bool']['must'] = list(self.queries)
        if self.variant_mode == VARIANT_MODE_VARIANTS_ONLY:
            query['bool']['must_not'] = [
                {'term': {'system.o_objectType': Product.OBJECT_TYPE_VIRTUAL_CAR}},
            ]
        return query

    def restrict_to_ids(self, ids):
        self._add_filter({'terms': {'system.o_id': list(ids)}})

    def restrict_to_category(self, category):
        self._add_filter({'term': {'attributes.categoryIds': category.pk}})

    def add_search_term(self, term):
        term = (term or '').strip()
        if not term:
            return
        from ..kinds import KINDS  # avoid circular import at module level
        self.queries.append(build_search_query(term, KINDS.values()))
        self._reset()

    def add_field_condition(self, field, values):
        values = [v for v in values if v not in (None, '')]
        if not values:
            return
        if field not in FIELD_PATHS:
            logger.warning('Ignoring condition on unsupported field %r', field)
            return
        self._add_filter({'terms': {FIELD_PATHS[field]: values}})

    def add_range_condition(self, field, minimum=None, maximum=None):
        if field not in RANGE_PATHS:
            logger.warning('Ignoring range condition on unsupported field %r', field)
            return
        bounds = {}
        if minimum is not None:
            bounds['gte'] = float(minimum)
        if maximum is not None:
            bounds['lte'] = float(maximum)
        if bounds:
            self._add_filter({'range': {RANGE_PATHS[field]: bounds}})

    def group_by_values(self, field):
        if field not in FIELD_PATHS:
            return []
        body = {
            'size': 0,
            'query': self.build_query(),
            'aggs': {'values': {'terms': {'field': FIELD_PATHS[field], 'size': GROUP_BY_SIZE}}},
        }
        result = self.backend.request('POST', '_search', body)
        try:
            buckets = result['aggregations']['values']['buckets']
        except (KeyError, TypeError) as exc:
            raise IndexBackendError('Malformed aggregation response.') from exc
        return sorted(str(b['key']) for b in buckets)

    def fetch(self, offset, size):
        body = {
            'query': self.build_query(),
            'from': offset,
            'size': size,
            '_source': False,
        }
        if self.order_key:
            direction = 'desc' if self.order_key.startswith('-') else 'asc'
            body['sort'] = [{ORDER_PATHS[self.order_key.lstrip('-')]: direction}]

        result = self.backend.request('POST', '_search', body)
        try:
            ids = [int(hit['_id']) for hit in result['hits']['hits']]
        except (KeyError, TypeError, ValueError) as exc:
            raise IndexBackendError('Malformed search response.') from exc

        products = (
            Product.objects
            .filter(is_published=True)
            .select_related('manufacturer', 'category')
            .in_bulk(ids)
        )
        # Keep hit order; skip hits whose product vanished since indexing
        return [products[pk] for pk in ids if pk in products]

    def fetch_count(self):
        result = self.backend.request('POST', '_count', {'query': self.build_query()})
        try:
            return int(result['count'])
        except (KeyError, TypeError, ValueError) as exc:
            raise IndexBackendError('Malformed count response.') from exc


class ElasticsearchBackend(IndexBackend):
    """Elasticsearch tenant. One requests.Session per backend instance."""

    listing_class = ElasticsearchProductListing
    supports_indexing = True

    def __init__(self, name, options):
        super().__init__(name, options)
        self.url = options.get('URL', 'http://localhost:9200').rstrip('/')
        self.index = options.get('INDEX', 'carshop_products')
        self.timeout = options.get('TIMEOUT', 10)
        self.session = requests.Session()

    def request(self, method, path, body=None, data=None, headers=None):
        """
        Call `{URL}/{INDEX}/{path}` and return the decoded JSON response.

        Raises IndexBackendError on transport errors, error statuses and
        undecodable responses.
        """
        url = f'{self.url}/{self.index}/{path}' if path else f'{self.url}/{self.index}'
        logger.debug('%s %s %s', method, url, json.dumps(body) if body is not None else '')
        try:
            response = self.session.request(
                method, url,
                json=body, data=data, headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            logger.error('Elasticsearch request %s %s failed: %s', method, url, exc)
            raise IndexBackendError(f'Elasticsearch request to {url} failed.') from exc
        except ValueError as exc:
            raise IndexBackendError(f'Elasticsearch returned invalid JSON for {url}.') from exc

    def create_index(self, recreate=False):
        """Create the index with its mapping; drop it first when `recreate`."""
        if recreate:
            try:
                self.request('DELETE', '')
            except IndexBackendError:
                logger.info('Index %s did not exist, nothing to drop', self.index)
        self.request('PUT', '', INDEX_DEFINITION)

    def index_products(self, products):
        lines = []
        count = 0
        for product in products:
            lines.append(json.dumps({'index': {'_id': str(product.pk)}}))
            lines.append(json.dumps(build_document(product)))
            count += 1
        if not lines:
            return 0

        result = self.request(
            'POST', '_bulk',
            data='\n'.join(lines) + '\n',
            headers={'Content-Type': 'application/x-ndjson'},
        )
        if result.get('errors'):
            failed = [
                item['index'].get('_id')
                for item in result.get('items', [])
                if item.get('index', {}).get('error')
            ]
            raise IndexBackendError(f'Bulk indexing failed for products {failed}.')
        return count

    def remove_stale_products(self, existing_ids):
        """Delete documents of products that no longer exist in the catalogue."""
        result = self.request('POST', '_delete_by_query', {
            'query': {
                'bool': {
                    'must_not': [{'terms': {'system.o_id': list(existing_ids)}}],
                },
            },
        })
        try:
            return int(result.get('deleted', 0))
        except (TypeError, ValueError) as exc:
            raise IndexBackendError('Malformed delete-by-query response.') from exc
