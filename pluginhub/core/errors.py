"""Error classification system for pluginhub.

Defines the exception hierarchy raised by the sources, the installer and the
HTTP layer, and classifies errors into categories with actionable suggestions
for whoever presents them to the user.
"""

import errno
from dataclasses import dataclass
from enum import Enum
from typing import Optional
import structlog

log = structlog.get_logger()


class HubError(Exception):
    """Base class for all pluginhub errors."""


class NetworkError(HubError):
    """A request could not be completed (connection failure, timeout)."""


class RateLimitError(NetworkError):
    """The GitHub API refused the request because of its rate limit."""

    def __init__(self, message: str = "Request failed, status 403 (Rate Limit Exceeded)"):
        super().__init__(message)


class UpstreamError(HubError):
    """A source API answered with a non-success status."""

    def __init__(self, message: str, status: Optional[int] = None, url: str = ""):
        super().__init__(message)
        self.status = status
        self.url = url


class MalformedResponseError(HubError):
    """A source API answered with a body we cannot interpret."""


class ReleaseAssetError(HubError):
    """The latest release of a repository lacks required assets."""


class InstallError(HubError):
    """A plugin could not be written to any installation target."""


class ErrorCategory(Enum):
    """Categories of errors for handling decisions."""

    TRANSIENT = "transient"   # Network, timeout - try again later
    RATE_LIMIT = "rate_limit" # GitHub quota exhausted
    UPSTREAM = "upstream"     # Missing or malformed data from a source
    LOCAL_IO = "local_io"     # Vault directories not writable
    FATAL = "fatal"


@dataclass
class ClassifiedError:
    """A classified error with handling metadata."""

    category: ErrorCategory
    message: str
    retryable: bool
    suggestion: Optional[str] = None
    original_exception: Optional[Exception] = None

    def __str__(self) -> str:
        """Human-readable error representation."""
        parts = [self.message]
        if self.suggestion:
            parts.append(f"Suggestion: {self.suggestion}")
        return " | ".join(parts)


# OSError errno values that indicate the filesystem may recover on its own
TRANSIENT_ERRNO = {
    errno.EAGAIN,
    errno.EBUSY,
    errno.EINTR,
    errno.ETIMEDOUT,
}

ERROR_SUGGESTIONS = {
    "permission denied": "Check vault folder permissions or remove it from the target list",
    "no space left": "Free up disk space on the device",
    "read-only file system": "The vault is on a read-only volume",
    "timed out": "The server took too long to answer - try again later",
    "connection": "Check your network connection",
    "manifest.json": "The plugin author has not published a usable release",
    "main.js": "The plugin author has not published a usable release",
}


def classify_error(error: Exception, context: str = "") -> ClassifiedError:
    """Classify an exception for presentation.

    Args:
        error: The exception to classify
        context: Optional context about where the error occurred

    Returns:
        ClassifiedError with category, retryability, and suggestions
    """
    error_msg = str(error).lower()

    if isinstance(error, RateLimitError):
        return ClassifiedError(
            category=ErrorCategory.RATE_LIMIT,
            message="GitHub API Rate Limit Exceeded.",
            retryable=True,
            suggestion="Please wait a moment before searching again, or configure a GitHub token",
            original_exception=error,
        )

    if isinstance(error, NetworkError):
        return ClassifiedError(
            category=ErrorCategory.TRANSIENT,
            message=str(error),
            retryable=True,
            suggestion=_get_suggestion(error_msg) or "Try again later",
            original_exception=error,
        )

    if isinstance(error, (UpstreamError, MalformedResponseError, ReleaseAssetError)):
        return ClassifiedError(
            category=ErrorCategory.UPSTREAM,
            message=str(error),
            retryable=False,
            suggestion=_get_suggestion(error_msg),
            original_exception=error,
        )

    if isinstance(error, InstallError):
        cause = error.__cause__
        return ClassifiedError(
            category=ErrorCategory.LOCAL_IO,
            message=str(error),
            retryable=isinstance(cause, OSError) and cause.errno in TRANSIENT_ERRNO,
            suggestion=_get_suggestion(error_msg),
            original_exception=error,
        )

    if isinstance(error, OSError):
        return ClassifiedError(
            category=ErrorCategory.LOCAL_IO,
            message=str(error),
            retryable=error.errno in TRANSIENT_ERRNO,
            suggestion=_get_suggestion(error_msg),
            original_exception=error,
        )

    log.debug("unclassified_error", error_type=type(error).__name__, context=context)
    return ClassifiedError(
        category=ErrorCategory.FATAL,
        message=str(error) or type(error).__name__,
        retryable=False,
        original_exception=error,
    )


def _get_suggestion(error_msg: str) -> Optional[str]:
    """Get a suggestion based on error message content."""
    for pattern, suggestion in ERROR_SUGGESTIONS.items():
        if pattern in error_msg:
            return suggestion
    return None
