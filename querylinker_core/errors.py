"""Error kinds shared by the services and mapped to HTTP responses by the API."""


class QueryLinkerError(Exception):
    """Base class for errors raised by QueryLinker services."""


class ConfigurationMissing(QueryLinkerError):
    """A required credential or provider setting is absent."""


class AuthenticationFailed(QueryLinkerError):
    """An authorization code or identity token could not be verified."""


class EmbeddingProviderError(QueryLinkerError):
    """The remote embedding provider failed. Callers may retry."""

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable


class InvalidSearchRequest(QueryLinkerError):
    """A search request that cannot be dispatched (empty query, unknown system)."""


class AccountConflict(QueryLinkerError):
    """An identity cannot be attached to the account that owns its e-mail address."""
