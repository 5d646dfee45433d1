"""Exceptions shared by the external API clients."""


class ExternalAPIError(Exception):
    """Raised when an external API call fails after retries."""

    def __init__(self, service: str, error: str, retry_count: int = 0):
        self.service = service
        self.error = error
        self.retry_count = retry_count
        super().__init__(f"{service} API failed: {error} (retries: {retry_count})")
