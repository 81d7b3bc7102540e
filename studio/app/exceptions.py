"""Custom exceptions for the studio application."""


class StudioException(Exception):
    """Base class for studio exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code for consistent HTTP response handling.
    """
    status_code: int = 500

    def __init__(self, message: str = "Studio error"):
        self.message = message
        super().__init__(message)


class RateLimitConfigError(StudioException, ValueError):
    """Raised when the rate limit configuration is invalid.

    Covers malformed limit tables, unknown rate limit classes and
    non-positive costs. Raised at setup time, never per request.
    """
    status_code = 500


class InvalidInputError(StudioException):
    """Raised when a generation operation receives unusable input.

    Maps to HTTP 400 Bad Request.
    """
    status_code = 400


class GenerationError(StudioException):
    """Raised when an AI provider call fails or returns unusable output.

    Maps to HTTP 502 Bad Gateway.
    """
    status_code = 502

    def __init__(self, message: str = "Generation failed", provider: str | None = None):
        self.provider = provider
        super().__init__(message)


class AssetNotFoundError(StudioException):
    """Raised when an asset id does not exist.

    Maps to HTTP 404 Not Found.
    """
    status_code = 404

    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        super().__init__(f"Asset not found: {asset_id}")
