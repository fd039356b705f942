"""
Applies filter definitions to product listings.

A filter definition names the filter fields shown next to a listing. For
each field, FilterService reads the visitor's selection from the request
parameters, narrows the listing and records what the template needs to draw
the filter (current selection and the values still available).
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from .models import Category, FilterDefinition

logger = logging.getLogger(__name__)

FILTER_SELECT = 'select'
FILTER_MULTISELECT = 'multiselect'
FILTER_RANGE = 'range'
FILTER_CATEGORY = 'category'

# Request parameter carrying the category a listing is pinned to.
CATEGORY_PARAM = 'parentCategoryIds'


@dataclass
class FilterState:
    """One rendered filter: its config, the active selection and the options."""

    type: str
    field: str
    label: str
    current: object = None
    values: list = field(default_factory=list)


def _param_list(params, name):
    """Multi-valued request parameter as a list, for QueryDicts and dicts alike."""
    if hasattr(params, 'getlist'):
        return [v for v in params.getlist(name) if v != '']
    value = params.get(name)
    if value in (None, ''):
        return []
    return list(value) if isinstance(value, (list, tuple)) else [value]


def _parse_decimal(value):
    if value in (None, ''):
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        logger.debug('Ignoring non-numeric range bound %r', value)
        return None


class FilterService:
    """Turns (filter definition, request params) into listing conditions."""

    def setup_product_list(self, filter_definition, listing, params):
        """
        Narrow `listing` in place according to `filter_definition` and the
        visitor's selection in `params`. Returns a FilterState per filter.

        Ordering and fixed conditions are applied before the visitor's
        filters; pagination is left to the caller.
        """
        if filter_definition.order_by:
            listing.set_order_key(filter_definition.order_by)

        for name, value in (filter_definition.conditions or {}).items():
            values = value if isinstance(value, (list, tuple)) else [value]
            listing.add_field_condition(name, values)

        # The category a listing is pinned to always applies, whether or not
        # the definition offers a category filter.
        if params.get(CATEGORY_PARAM):
            pinned = self._pinned_category(params)
            if pinned is None:
                # Pinned to a category that does not exist: nothing matches
                listing.restrict_to_ids([])
            else:
                listing.restrict_to_category(pinned)

        states = []
        for config in filter_definition.filters or []:
            handler = getattr(self, f'_apply_{config.get("type")}', None)
            if handler is None or not config.get('field'):
                logger.warning(
                    'Filter definition %r: skipping unsupported filter %r',
                    filter_definition.name, config,
                )
                continue
            states.append(handler(config, listing, params))
        return states

    def _state(self, config, current=None):
        return FilterState(
            type=config['type'],
            field=config['field'],
            label=config.get('label') or config['field'],
            current=current,
        )

    def _pinned_category(self, params):
        category_id = params.get(CATEGORY_PARAM)
        if not category_id:
            return None
        if isinstance(category_id, Category):
            return category_id
        try:
            return Category.objects.filter(pk=int(category_id)).first()
        except (TypeError, ValueError):
            return None

    def _apply_select(self, config, listing, params):
        state = self._state(config)
        state.values = listing.group_by_values(config['field'])
        selected = _param_list(params, config['field'])
        current = selected[0] if selected else config.get('preselect')
        if current not in (None, ''):
            listing.add_field_condition(config['field'], [current])
        state.current = current
        return state

    def _apply_multiselect(self, config, listing, params):
        state = self._state(config)
        state.values = listing.group_by_values(config['field'])
        current = _param_list(params, config['field']) or list(config.get('preselect') or [])
        if current:
            listing.add_field_condition(config['field'], current)
        state.current = current
        return state

    def _apply_range(self, config, listing, params):
        name = config['field']
        minimum = _parse_decimal(params.get(f'{name}_min'))
        maximum = _parse_decimal(params.get(f'{name}_max'))
        if minimum is not None or maximum is not None:
            listing.add_range_condition(name, minimum, maximum)
        return self._state(config, current={'min': minimum, 'max': maximum})

    def _apply_category(self, config, listing, params):
        state = self._state(config)
        pinned = self._pinned_category(params)
        parent = pinned.pk if pinned else None
        state.values = list(Category.objects.filter(parent_id=parent))

        selected = _param_list(params, config['field'])
        if selected:
            category = Category.objects.filter(slug=selected[0]).first()
            if category is not None:
                listing.restrict_to_category(category)
                state.current = category
        return state


def resolve_filter_definition(request, category, fallback, explicit=None):
    """
    Pick the filter definition for a listing or search page.

    Precedence: an explicit definition (passed by the view's URLconf or as a
    `filterdefinition` id in the query string) wins over the category's
    stored one, which wins over `fallback`. Unknown ids fall through.
    """
    if isinstance(explicit, FilterDefinition):
        return explicit

    requested = request.GET.get('filterdefinition')
    if requested:
        try:
            found = FilterDefinition.objects.filter(pk=int(requested)).first()
        except (TypeError, ValueError):
            found = None
        if found is not None:
            return found

    if category is not None and category.filter_definition_id:
        return category.filter_definition

    return fallback
