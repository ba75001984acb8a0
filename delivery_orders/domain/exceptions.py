class OrderServiceError(Exception):
    """Base class for errors raised by the order service."""


class ValidationError(OrderServiceError):
    """A required field is missing, empty or has the wrong shape (HTTP 400)."""


class NotFoundError(OrderServiceError):
    """No document matches the given identifier (HTTP 404)."""


class UpstreamError(OrderServiceError):
    """The database or messaging API call failed (HTTP 500)."""
