"""Newsletter synchronization exceptions module."""


class NewsletterError(Exception):
    """Base exception for all newsletter synchronization exceptions."""


class NewsletterInvalidBackendError(NewsletterError):
    """Exception raised when the backend is invalid."""


class ValidationError(NewsletterError, ValueError):
    """Exception raised when an email address is empty or malformed."""


class RemoteApiError(NewsletterError):
    """Exception raised when the remote service answers with a non-success status."""

    def __init__(self, message, status_code=None, body=None):
        """Keep the HTTP status and the raw body for the logs."""
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RemoteConnectionError(NewsletterError):
    """Exception raised when the request could not reach the remote service."""


class RateLimitExceeded(NewsletterError):
    """Exception raised when the local rate limit refuses an outbound call."""

    def __init__(self, key, max_attempts, decay_seconds):
        """Describe the exhausted window."""
        super().__init__(f"Rate limit exceeded for {key!r}: {max_attempts} calls per {decay_seconds}s")
        self.key = key
        self.max_attempts = max_attempts
        self.decay_seconds = decay_seconds


class SubscriberLockedError(NewsletterError):
    """Exception raised when another worker holds the lock on an email."""


class EmailChangeError(NewsletterError):
    """
    Exception raised when an email change is left half done.

    The record of the old address has been removed or demoted but no record
    could be synced under the new address.
    """

    def __init__(self, old_email, new_email):
        """Keep both addresses for operators."""
        super().__init__(
            f"Email change from {old_email!r} to {new_email!r} failed after the old address was released"
        )
        self.old_email = old_email
        self.new_email = new_email


# Failures expected when the remote service misbehaves.
TRANSIENT_ERRORS = (
    RemoteApiError,
    RemoteConnectionError,
    RateLimitExceeded,
    SubscriberLockedError,
)
