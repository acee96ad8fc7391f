"""
Error taxonomy for ProviderSearch.

Errors raised by the search core. A query that legitimately matches nothing
is not an error; it is reported through the response status instead.
"""


class SearchError(Exception):
    """Base class for all search errors."""

    user_message = "Search failed"


class InvalidRequest(SearchError):
    """Malformed or contradictory parameters supplied by the calling layer."""

    user_message = "Invalid search request"

    def __init__(self, message: str, parameter: str = None):
        super().__init__(message)
        self.parameter = parameter


class StoreUnavailable(SearchError):
    """The entity or category store could not be reached."""

    user_message = "Search temporarily unavailable"

    def __init__(self, message: str, collection: str = None):
        super().__init__(message)
        self.collection = collection
