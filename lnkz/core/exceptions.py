"""
Custom Exceptions

Every failure the shorten and redirect paths can produce has its own type.
Each exception carries two messages:
- the exception text, with diagnostic context (slug, client id, cause) for logs
- ``public_message``, a generic sentence that is safe to return to clients
"""

from typing import Optional


class ShortenerError(Exception):
    """Base exception for the link service."""

    public_message = "Request failed"

    def __init__(self, message: str, public_message: Optional[str] = None):
        if public_message is not None:
            self.public_message = public_message
        super().__init__(message)

    @property
    def kind(self) -> str:
        return type(self).__name__


class InvalidInputError(ShortenerError):
    """Raised when a submitted URL or requested short code is rejected."""

    public_message = "Invalid URL format"

    def __init__(self, value: str, reason: str, public_message: Optional[str] = None):
        self.value = value
        self.reason = reason
        super().__init__(f"{reason}: {value!r}", public_message)


class RateLimitedError(ShortenerError):
    """Raised when a client exhausted its requests for the current window."""

    public_message = "Rate limit exceeded. Please try again later."

    def __init__(self, client_id: str, retry_after: int):
        self.client_id = client_id
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded for client {client_id}")


class QuotaExceededError(ShortenerError):
    """Raised when a client IP already owns the maximum number of links."""

    public_message = "Link quota exceeded for this address"

    def __init__(self, client_id: str, count: int, limit: int):
        self.client_id = client_id
        self.count = count
        self.limit = limit
        super().__init__(f"Client {client_id} owns {count} links (limit {limit})")


class SlugConflictError(ShortenerError):
    """Raised by the store when an insert hits the unique slug constraint."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Slug '{slug}' already exists")


class SlugTakenError(ShortenerError):
    """Raised when a caller-requested short code is already in use."""

    public_message = "Short code is already taken"

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Requested slug '{slug}' is already taken")


class CodeSpaceExhaustedError(ShortenerError):
    """Raised when every generated candidate collided."""

    public_message = "Failed to shorten URL"

    def __init__(self, attempts: int, last_slug: Optional[str] = None):
        self.attempts = attempts
        self.last_slug = last_slug
        super().__init__(
            f"No free short code after {attempts} attempts (last tried '{last_slug}')"
        )


class StoreError(ShortenerError):
    """Raised when a store call fails or exceeds its timeout."""

    public_message = "Failed to shorten URL"

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Store error: {message}")


class LinkNotFoundError(ShortenerError):
    """Raised when no link exists for a slug."""

    public_message = "Not Found"

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Slug '{slug}' not found")
