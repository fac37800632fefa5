"""Error taxonomy surfaced to HTTP clients.

Each error carries an HTTP status code and a message key from the language
catalog, so the API layer can render ``{"error": <localized text>}``.
"""

from typing import Optional


class MarketplaceError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    default_key = "SERVER_ERROR"

    def __init__(self, message_key: Optional[str] = None, detail: Optional[str] = None):
        self.message_key = message_key or self.default_key
        self.detail = detail
        super().__init__(detail or self.message_key)


class ConfigurationError(MarketplaceError):
    """Missing credentials or configuration. Fails fast, never retried."""

    default_key = "AI_NOT_CONFIGURED"


class ValidationError(MarketplaceError):
    status_code = 400
    default_key = "INVALID_DATA"


class AuthError(MarketplaceError):
    status_code = 401
    default_key = "UNAUTHORIZED"


class ForbiddenError(MarketplaceError):
    status_code = 403
    default_key = "FORBIDDEN"


class NotFoundError(MarketplaceError):
    status_code = 404
    default_key = "NOT_FOUND"


class PersistenceError(MarketplaceError):
    """The database rejected or failed a query."""

    default_key = "SERVER_ERROR"


class UpstreamEmptyResponse(MarketplaceError):
    """The AI model returned no text."""

    default_key = "AI_EMPTY_RESPONSE"


class MalformedResponse(MarketplaceError):
    """The AI model returned text that is not valid JSON for the schema."""

    default_key = "AI_MALFORMED_RESPONSE"
