# relive_search/domain/exceptions.py


class SearchError(Exception):
    """Base class for errors raised inside the search subsystem."""


class StoreQueryError(SearchError):
    """The persistent store failed to answer a query."""


class HistorySerializationError(SearchError):
    """The search history blob could not be decoded or encoded."""


class ServiceNotReadyError(SearchError):
    """A dependency was requested before the service finished wiring."""
