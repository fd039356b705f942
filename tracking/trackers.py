"""
Tracker implementations. settings.SHOP_TRACKERS lists the ones in use.

A tracker receives every event the TrackingManager records. Add a class
here (or anywhere importable) and list its dotted path in SHOP_TRACKERS to
forward events to another analytics system.
"""

import logging

from .models import TrackingEvent

logger = logging.getLogger(__name__)


class Tracker:
    """Base tracker; every hook is a no-op."""

    def track_product_view(self, request, product):
        pass

    def track_product_impression(self, request, product, placement):
        pass

    def track_category_page_view(self, request, category_name, page):
        pass


def _session_key(request):
    session = getattr(request, 'session', None)
    return (session.session_key or '') if session is not None else ''


class DatabaseTracker(Tracker):
    """Stores each event as a TrackingEvent row."""

    def track_product_view(self, request, product):
        TrackingEvent.objects.create(
            event_type=TrackingEvent.PRODUCT_VIEW,
            product=product,
            product_name=product.name,
            session_key=_session_key(request),
        )

    def track_product_impression(self, request, product, placement):
        TrackingEvent.objects.create(
            event_type=TrackingEvent.PRODUCT_IMPRESSION,
            product=product,
            product_name=product.name,
            placement=placement,
            session_key=_session_key(request),
        )

    def track_category_page_view(self, request, category_name, page):
        TrackingEvent.objects.create(
            event_type=TrackingEvent.CATEGORY_PAGE_VIEW,
            category_name=category_name,
            page=page,
            session_key=_session_key(request),
        )


class LoggingTracker(Tracker):
    """Writes each event to the tracking log."""

    def track_product_view(self, request, product):
        logger.info('product view: %s (#%s)', product.name, product.pk)

    def track_product_impression(self, request, product, placement):
        logger.debug('product impression: %s (#%s) in %s', product.name, product.pk, placement)

    def track_category_page_view(self, request, category_name, page):
        logger.info('category page view: %s', category_name)
