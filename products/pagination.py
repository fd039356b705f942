"""
Pagination for product listings.

Wraps django.core.paginator and adds a sliding window of page numbers for
the pager, centred on the current page.
"""

from django.core.paginator import InvalidPage, Paginator


def sliding_window(page_obj, page_range):
    """
    Return the pager variables for `page_obj`.

    `pages_in_range` holds at most `page_range` consecutive page numbers,
    keeping the current page in the middle where possible.
    """
    paginator = page_obj.paginator
    current = page_obj.number
    total = paginator.num_pages
    page_range = max(1, min(page_range, total))

    first = current - page_range // 2
    first = max(1, min(first, total - page_range + 1))
    last = first + page_range - 1

    return {
        'current': current,
        'first': 1,
        'last': total,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'page_count': total,
        'total_item_count': paginator.count,
        'item_count_per_page': paginator.per_page,
        'pages_in_range': list(range(first, last + 1)),
        'first_page_in_range': first,
        'last_page_in_range': last,
    }


def paginate(listing, page_number, per_page, page_range=5):
    """
    Paginate `listing` and return (page_obj, pagination_variables).

    Invalid or out-of-range page numbers fall back to page 1; a page size
    below 1 is treated as 1.
    """
    paginator = Paginator(listing, max(1, per_page or 1))
    try:
        page_obj = paginator.page(page_number or 1)
    except InvalidPage:
        page_obj = paginator.page(1)
    return page_obj, sliding_window(page_obj, page_range)
