"""Template helpers for shop pages."""

from django import template

register = template.Library()


@register.simple_tag(takes_context=True)
def query_with(context, **kwargs):
    """
    Current query string with `kwargs` replaced, e.g. for pager links:
        <a href="?{% query_with page=3 %}">3</a>
    """
    params = context['request'].GET.copy()
    for key, value in kwargs.items():
        if value is None:
            params.pop(key, None)
        else:
            params[key] = value
    return params.urlencode()
