"""Exceptions raised by Product Helper.

Cancellation is deliberately absent: an interrupted chat turn is reported as
a status by the chat session, not raised as an error.
"""


class ProductHelperError(Exception):
    """Base class for all Product Helper errors."""


class ConfigurationError(ProductHelperError):
    """Missing credentials or an absent/empty context cache."""


class UserInputError(ProductHelperError):
    """Input rejected before any network call."""

    def __init__(self, message: str, field: str | None = None):
        self.message = message
        self.field = field
        super().__init__(message)


class UpstreamServiceError(ProductHelperError):
    """A non-2xx response from Shortcut, GitHub or the completion service.

    ``status`` is None when the request never got a response (timeout, refused
    connection).
    """

    def __init__(
        self,
        service: str,
        status: int | None,
        body: str = "",
        method: str | None = None,
        path: str | None = None,
    ):
        self.service = service
        self.status = status
        self.body = body
        self.method = method
        self.path = path
        where = f" {method} {path}" if method and path else ""
        outcome = "unreachable" if status is None else str(status)
        super().__init__(f"{service} API{where} → {outcome}: {body}")
