"""Exceptions raised by the products app."""


class IndexBackendError(Exception):
    """An index backend could not be reached or answered with garbage."""
