"""Errors raised by payment gateway adapters."""


class GatewayError(Exception):
    """The provider rejected a request, failed, or answered with something unusable.

    ``message`` is safe to show to the client: it is the provider's own
    message when one was returned.
    """

    def __init__(self, message: str, status_code: int | None = None, error_code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code


class GatewayConfigurationError(GatewayError):
    """Required provider credentials or settings are missing."""
