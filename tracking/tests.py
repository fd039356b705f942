"""
Tests for the tracking app.

Covers:
- TrackingManager fan-out to every configured tracker
- DatabaseTracker rows and LoggingTracker log lines
- SHOP_TRACKERS configuration
- SegmentTrackingHelper session counters
"""

from django.test import RequestFactory, TestCase, override_settings

from products.models import Category, Manufacturer, Product

from .manager import TrackingManager, get_trackers
from .models import TrackingEvent
from .segments import SESSION_KEY, SegmentTrackingHelper
from .trackers import DatabaseTracker, LoggingTracker, Tracker


class RecordingTracker(Tracker):
    """Keeps every call in memory."""

    def __init__(self):
        self.calls = []

    def track_product_view(self, request, product):
        self.calls.append(('view', product))

    def track_product_impression(self, request, product, placement):
        self.calls.append(('impression', product, placement))

    def track_category_page_view(self, request, category_name, page):
        self.calls.append(('category', category_name, page))


def _make_product(name='E-Type'):
    return Product.objects.create(
        name=name, product_type=Product.TYPE_CAR, object_type=Product.OBJECT_TYPE_ACTUAL_CAR,
    )


class TrackingManagerTest(TestCase):

    def setUp(self):
        self.request = RequestFactory().get('/')
        self.product = _make_product()

    def test_every_tracker_receives_every_event(self):
        first, second = RecordingTracker(), RecordingTracker()
        manager = TrackingManager(self.request, trackers=[first, second])
        manager.track_product_view(self.product)
        manager.track_product_impression(self.product, 'grid')
        manager.track_category_page_view('Cars', page=2)
        expected = [
            ('view', self.product),
            ('impression', self.product, 'grid'),
            ('category', 'Cars', 2),
        ]
        self.assertEqual(first.calls, expected)
        self.assertEqual(second.calls, expected)

    def test_no_trackers(self):
        """With no trackers configured nothing is recorded."""
        TrackingManager(self.request, trackers=[]).track_product_view(self.product)
        self.assertFalse(TrackingEvent.objects.exists())

    def test_default_trackers_from_settings(self):
        trackers = get_trackers()
        self.assertEqual(
            [type(t) for t in trackers], [DatabaseTracker, LoggingTracker],
        )
        self.assertIs(get_trackers(), trackers)

    @override_settings(SHOP_TRACKERS=['tracking.trackers.LoggingTracker'])
    def test_configured_trackers(self):
        """SHOP_TRACKERS decides which trackers run."""
        with self.assertLogs('tracking.trackers', 'INFO') as logs:
            TrackingManager(self.request).track_product_view(self.product)
        self.assertFalse(TrackingEvent.objects.exists())
        self.assertIn('product view: E-Type', logs.output[0])


class DatabaseTrackerTest(TestCase):

    def setUp(self):
        self.request = RequestFactory().get('/')
        self.tracker = DatabaseTracker()
        self.product = _make_product()

    def test_product_view(self):
        self.tracker.track_product_view(self.request, self.product)
        event = TrackingEvent.objects.get()
        self.assertEqual(event.event_type, TrackingEvent.PRODUCT_VIEW)
        self.assertEqual(event.product, self.product)
        self.assertEqual(event.product_name, 'E-Type')
        self.assertEqual(event.session_key, '')

    def test_product_impression(self):
        self.tracker.track_product_impression(self.request, self.product, 'crosssells')
        event = TrackingEvent.objects.get()
        self.assertEqual(event.placement, 'crosssells')
        self.assertEqual(str(event), 'product_impression: E-Type (crosssells)')

    def test_category_page_view(self):
        self.tracker.track_category_page_view(self.request, 'Cars', 3)
        event = TrackingEvent.objects.get()
        self.assertEqual(event.category_name, 'Cars')
        self.assertEqual(event.page, 3)
        self.assertIsNone(event.product)
        self.assertEqual(str(event), 'category_page_view: Cars')

    def test_event_survives_product_deletion(self):
        """Deleting a product keeps its events and their product name."""
        self.tracker.track_product_view(self.request, self.product)
        self.product.delete()
        event = TrackingEvent.objects.get()
        self.assertIsNone(event.product)
        self.assertEqual(event.product_name, 'E-Type')


class SegmentTrackingHelperTest(TestCase):

    def setUp(self):
        self.request = RequestFactory().get('/')
        self.request.session = {}
        self.helper = SegmentTrackingHelper(self.request)
        self.cars = Category.objects.create(name='Cars')
        self.coupes = Category.objects.create(name='Coupes', parent=self.cars)

    def test_category_segments_include_ancestors(self):
        self.helper.track_segments_for_category(self.coupes)
        self.assertEqual(
            self.request.session[SESSION_KEY],
            {'category:cars': 1, 'category:coupes': 1},
        )

    def test_product_segments(self):
        product = _make_product()
        product.category = self.coupes
        product.manufacturer = Manufacturer.objects.create(name='Jaguar')
        self.helper.track_segments_for_product(product)
        self.helper.track_segments_for_category(self.cars)
        self.assertEqual(self.helper.get_segments(), [
            ('category:cars', 2),
            ('category:coupes', 1),
            ('manufacturer:jaguar', 1),
        ])

    def test_product_without_segments(self):
        """A product with no category or manufacturer leaves the session alone."""
        self.helper.track_segments_for_product(_make_product())
        self.assertNotIn(SESSION_KEY, self.request.session)

    def test_no_session(self):
        """Requests without a session are ignored."""
        request = RequestFactory().get('/')
        helper = SegmentTrackingHelper(request)
        helper.track_segments_for_category(self.cars)
        self.assertEqual(helper.get_segments(), [])
