"""
Typed exception hierarchy for the wiki page store.

Storage failures, protocol failures and transport failures are kept apart so
callers can tell a bad request from a broken backend.
"""


class WikiError(Exception):
    """
    Base exception for all wiki errors.
    """

    pass


class ConfigError(WikiError):
    """
    Raised when the configuration or the statement resource is invalid.
    """

    pass


class StorageError(WikiError):
    """
    Raised when the relational backend fails.

    The message is the backend's error text. The backend exception, when
    there is one, is chained as ``__cause__``.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PageNotFoundError(StorageError):
    """
    Raised when an operation needs an existing page and there is none.
    """

    def __init__(self, page_id: str):
        super().__init__(f"Page {page_id} not found")
        self.page_id = page_id


class ProtocolError(WikiError):
    """
    Raised when a request is rejected before reaching the page store.
    """

    def __init__(self, failure_code: int, message: str):
        super().__init__(message)
        self.failure_code = failure_code
        self.message = message


class NoActionSpecifiedError(ProtocolError):
    """
    Raised when a request carries no action header.
    """

    pass


class BadActionError(ProtocolError):
    """
    Raised when the action header names no known operation, or its body is malformed.
    """

    pass


class TransportError(WikiError):
    """
    Raised when a request could not be delivered or answered.
    """

    def __init__(self, failure_code: int, message: str):
        super().__init__(message)
        self.failure_code = failure_code
        self.message = message
