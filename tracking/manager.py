"""Fans analytics events out to the configured trackers."""

import functools

from django.conf import settings
from django.utils.module_loading import import_string


@functools.lru_cache(maxsize=None)
def _load_trackers(paths):
    return tuple(import_string(path)() for path in paths)


def get_trackers():
    """Tracker instances for settings.SHOP_TRACKERS, built once per list."""
    return _load_trackers(tuple(settings.SHOP_TRACKERS))


class TrackingManager:
    """
    Records analytics events for one request.

    Views create one per request; every call is forwarded to each tracker.
    """

    def __init__(self, request, trackers=None):
        self.request = request
        self.trackers = get_trackers() if trackers is None else trackers

    def track_product_view(self, product):
        for tracker in self.trackers:
            tracker.track_product_view(self.request, product)

    def track_product_impression(self, product, placement):
        for tracker in self.trackers:
            tracker.track_product_impression(self.request, product, placement)

    def track_category_page_view(self, category_name, page=None):
        for tracker in self.trackers:
            tracker.track_category_page_view(self.request, category_name, page)
