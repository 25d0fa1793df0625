"""Application error types."""


class ConfigurationError(RuntimeError):
    """Required connection settings are missing."""


class SupabaseError(Exception):
    """A Supabase request failed at the transport level or returned an error."""

    def __init__(
        self, message: str, status_code: int | None = None, code: str | None = None
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class PortfolioFetchError(Exception):
    """Holdings could not be fetched from the remote store."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(Exception):
    """The caller could not be authenticated."""
