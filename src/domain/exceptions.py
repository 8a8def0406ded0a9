"""
domain.exceptions - Custom exception hierarchy for the nutrition assistant.

All domain-level errors inherit from DomainError so callers can catch
broad or specific exceptions as needed. Each class carries the HTTP
status an adapter should answer with.
"""


class DomainError(Exception):
    """Base exception for all domain-level errors."""
    status_code = 400

    def __init__(self, message: str = "", *, status_code: int | None = None):
        super().__init__(message or self.__class__.__doc__ or self.__class__.__name__)
        if status_code is not None:
            self.status_code = status_code

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else ""


# ---------------------------------------------------------------------------
# Input errors
# ---------------------------------------------------------------------------

class InvalidInputError(DomainError):
    """Request content is empty or malformed."""


class ProfileNotFoundError(DomainError):
    """User settings were not found."""
    status_code = 404


class MessageNotFoundError(DomainError):
    """Message was not found in this chat."""
    status_code = 404


class LimitExceededError(DomainError):
    """Daily request limit reached."""
    status_code = 403

    def __init__(self, message: str = "", *, limit_type: str = "daily_requests"):
        super().__init__(message)
        self.limit_type = limit_type


class AuthenticationError(DomainError):
    """Raised when the bearer token is missing, invalid or expired."""
    status_code = 401


# ---------------------------------------------------------------------------
# Favorite flow
# ---------------------------------------------------------------------------

class InvalidFavoriteError(DomainError):
    """Message cannot be added to favorites."""


class FavoriteParseError(DomainError):
    """Stored reply could not be turned into a dish or a plan."""
    status_code = 422


class RecipeGenerationError(DomainError):
    """Model reply did not contain a usable recipe."""
    status_code = 422


# ---------------------------------------------------------------------------
# Model gateway
# ---------------------------------------------------------------------------

class ModelGatewayError(DomainError):
    """The language model request failed."""
    status_code = 502


class UnconfiguredError(ModelGatewayError):
    """Model API key is not configured."""
    status_code = 500


class RateLimitedError(ModelGatewayError):
    """Too many requests to the model API. Try again later."""
    status_code = 429


class UpstreamUnavailableError(ModelGatewayError):
    """Model API is temporarily unavailable."""
    status_code = 503


class UnauthorizedError(ModelGatewayError):
    """Model API rejected the credentials."""
    status_code = 401


class EndpointNotFoundError(ModelGatewayError):
    """Model API endpoint not found. Check the endpoint and model name."""
    status_code = 404


class MalformedRequestError(ModelGatewayError):
    """Model API rejected the request format."""
    status_code = 422


class EmptyResponseError(ModelGatewayError):
    """Model returned an empty response."""
    status_code = 500


class UpstreamErrorMessage(ModelGatewayError):
    """Model answered with an error message instead of content."""
    status_code = 500


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class RepositoryError(DomainError):
    """Raised when a database operation fails."""
    status_code = 500
