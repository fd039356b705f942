"""
Analytics events recorded by the storefront.

One row per event: product views, product impressions (tagged with the
placement the product was shown in) and category page views.
"""

from django.db import models


class TrackingEvent(models.Model):
    """A single analytics event."""

    PRODUCT_VIEW = 'product_view'
    PRODUCT_IMPRESSION = 'product_impression'
    CATEGORY_PAGE_VIEW = 'category_page_view'
    EVENT_CHOICES = [
        (PRODUCT_VIEW, 'Product view'),
        (PRODUCT_IMPRESSION, 'Product impression'),
        (CATEGORY_PAGE_VIEW, 'Category page view'),
    ]

    event_type = models.CharField(max_length=30, choices=EVENT_CHOICES, db_index=True)
    # Products may be deleted later; the event keeps its name
    product = models.ForeignKey(
        'products.Product', on_delete=models.SET_NULL, null=True, blank=True,
        related_name='tracking_events',
    )
    product_name = models.CharField(max_length=200, blank=True)
    category_name = models.CharField(max_length=100, blank=True)
    placement = models.CharField(
        max_length=50, blank=True, db_index=True,
        help_text='Where an impression happened, e.g. grid, crosssells, search-results.',
    )
    page = models.PositiveIntegerField(null=True, blank=True)
    session_key = models.CharField(max_length=40, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['event_type', 'created_at'], name='tracking_event_type_idx'),
        ]

    def __str__(self):
        subject = self.product_name or self.category_name
        if self.placement:
            return f'{self.event_type}: {subject} ({self.placement})'
        return f'{self.event_type}: {subject}'
