"""
Template context processors for Carshop.

Registered in settings.TEMPLATES['OPTIONS']['context_processors'].
"""

from .breadcrumbs import BREADCRUMBS_ATTR, get_head_title


def shop_navigation(request):
    """
    Expose the breadcrumb trail and head title built by the view.

        breadcrumbs — list of {'id', 'label', 'url'} dicts, root first
        head_title  — page title set by the view, '' if none
    """
    return {
        'breadcrumbs': list(getattr(request, BREADCRUMBS_ATTR, [])),
        'head_title': get_head_title(request),
    }
