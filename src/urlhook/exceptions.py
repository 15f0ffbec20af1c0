"""urlhook exception hierarchy.

Provides structured exceptions for error handling throughout the codebase.
All exceptions inherit from URLHookError for easy catching.
"""

from __future__ import annotations


class URLHookError(Exception):
    """Base exception for all urlhook errors.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code for results and API responses.
    """

    code: str = "urlhook_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }


class ValidationError(URLHookError):
    """Invalid input provided.

    Raised for disallowed target URLs and for delivery settings that
    fail validation on save or import.

    Attributes:
        field: The field that failed validation.
        message: Description of the validation failure.
    """

    code: str = "validation_error"

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.reason = message
        super().__init__(f"{field}: {message}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "field": self.field,
                "message": self.message,
            }
        }


class NotFoundError(URLHookError):
    """Resource not found.

    Attributes:
        resource_type: Type of resource (e.g., "tab", "job").
        resource_id: ID of the missing resource.
    """

    code: str = "not_found"

    def __init__(self, resource_type: str, resource_id: str) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} not found: {resource_id}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "resource_type": self.resource_type,
                "resource_id": self.resource_id,
                "message": self.message,
            }
        }


class StorageError(URLHookError):
    """Storage operation failed.

    Raised when the persisted state file cannot be read or written.
    """

    code: str = "storage_error"


class ConfigurationError(URLHookError):
    """Configuration error.

    Raised when required configuration is missing or invalid.
    """

    code: str = "configuration_error"


class NoWebhookConfiguredError(ConfigurationError):
    """No destination webhook is configured.

    Terminal: no network call is attempted.
    """

    code: str = "no_webhook_configured"

    def __init__(self, message: str = "No webhook configured") -> None:
        super().__init__(message)


class DuplicateSuppressedError(URLHookError):
    """The same request was sent within the dedupe window.

    Terminal for the current call, but the caller may force-send.
    """

    code: str = "duplicate_suppressed"

    def __init__(self, ttl_ms: int = 60_000) -> None:
        self.ttl_ms = ttl_ms
        super().__init__(f"URL already sent in last {ttl_ms // 1000}s (duplicate blocked)")


class QueueFullError(URLHookError):
    """The retry queue is at capacity.

    Attributes:
        max_size: Queue capacity that was exceeded.
    """

    code: str = "capacity_error"

    def __init__(self, max_size: int = 50) -> None:
        self.max_size = max_size
        super().__init__(
            f"Queue is full ({max_size} items max). "
            "Please clear queue or wait for retries to complete."
        )
