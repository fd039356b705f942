"""
Visitor segments for personalisation.

Every product or category a visitor looks at bumps a counter for the
segments it belongs to. Counters live in the session, so they follow the
visitor without an account, and can be read by teasers or recommendation
blocks to favour what the visitor has shown interest in.
"""

import logging

logger = logging.getLogger(__name__)

SESSION_KEY = 'shop_segments'


class SegmentTrackingHelper:

    def __init__(self, request):
        self.request = request

    def _bump(self, segments):
        session = getattr(self.request, 'session', None)
        if session is None:
            return
        counters = dict(session.get(SESSION_KEY, {}))
        for segment in segments:
            counters[segment] = counters.get(segment, 0) + 1
        session[SESSION_KEY] = counters
        logger.debug('segments tracked: %s', ', '.join(segments))

    def _category_segments(self, category):
        return [f'category:{node.slug}' for node in category.get_ancestors()]

    def track_segments_for_product(self, product):
        segments = []
        if product.category is not None:
            segments.extend(self._category_segments(product.category))
        if product.manufacturer is not None:
            segments.append(f'manufacturer:{product.manufacturer.slug}')
        if segments:
            self._bump(segments)

    def track_segments_for_category(self, category):
        self._bump(self._category_segments(category))

    def get_segments(self):
        """Segment counters of the current visitor, highest first."""
        session = getattr(self.request, 'session', None)
        counters = session.get(SESSION_KEY, {}) if session is not None else {}
        return sorted(counters.items(), key=lambda item: (-item[1], item[0]))
