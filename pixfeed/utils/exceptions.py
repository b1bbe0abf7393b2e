"""
PixFeed Custom Exceptions
=========================

Custom exception hierarchy for PixFeed with error codes, context information,
and user-friendly error messages.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"

    # Feed ingestion errors (F001-F099)
    FEED_FETCH_TIMEOUT = "F002"
    FEED_PARSE_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"
    FEED_ACCESS_DENIED = "F005"
    FEED_NOT_FOUND = "F006"

    # Markup extraction errors (X001-X099)
    EXTRACTION_PARSE_ERROR = "X001"
    EXTRACTION_NO_STRUCTURE = "X002"

    # Resource fetch errors (R001-R099)
    RESOURCE_TRANSPORT = "R001"
    RESOURCE_READ = "R002"
    RESOURCE_UNKNOWN_TYPE = "R003"
    RESOURCE_WRITE = "R004"
    RESOURCE_UNSAFE_NAME = "R005"

    # Storage / retention errors (S001-S099)
    STORAGE_LIST_FAILED = "S001"
    STORAGE_DELETE_FAILED = "S002"
    SYSTEM_PERMISSION_DENIED = "S003"
    SYSTEM_DISK_FULL = "S004"
    SYSTEM_MEMORY_ERROR = "S005"


class PixFeedError(Exception):
    """Base exception for all PixFeed errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: bool = False,
    ):
        """Initialize PixFeed error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            user_message: User-friendly error message
            recoverable: Whether the error is recoverable
        """
        super().__init__(message)
        self.error_code = error_code
        self.context = context or {}
        self.user_message = user_message or message
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        """String representation with error code."""
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


def _passthrough(kwargs: Dict[str, Any]) -> Dict[str, Any]:
    return {
        k: v
        for k, v in kwargs.items()
        if k not in ["context", "error_code", "user_message", "recoverable"]
    }


class ConfigurationError(PixFeedError):
    """Configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        """Initialize configuration error.

        Args:
            message: Error message
            config_key: Configuration key that caused the error
            **kwargs: Additional arguments for PixFeedError
        """
        context = kwargs.get("context", {})
        if config_key:
            context["config_key"] = config_key

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONFIG_INVALID),
            context=context,
            user_message=kwargs.get("user_message", f"Configuration error: {message}"),
            recoverable=kwargs.get("recoverable", False),
            **_passthrough(kwargs),
        )


class FeedError(PixFeedError):
    """Feed ingestion and parsing errors."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        """Initialize feed error.

        Args:
            message: Error message
            feed_url: Feed URL that caused the error
            **kwargs: Additional arguments for PixFeedError
        """
        context = kwargs.get("context", {})
        if feed_url:
            context["feed_url"] = feed_url

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.FEED_NETWORK_ERROR),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Feed processing failed: {message}"
            ),
            recoverable=kwargs.get("recoverable", True),
            **_passthrough(kwargs),
        )


class FeedFetchError(FeedError):
    """RSS feed fetching errors."""

    pass


class ExtractionError(PixFeedError):
    """Markup fragment could not be parsed into the expected structure."""

    def __init__(self, message: str, link: Optional[str] = None, **kwargs):
        """Initialize extraction error.

        Args:
            message: Error message
            link: Feed entry link the fragment came from
            **kwargs: Additional arguments for PixFeedError
        """
        context = kwargs.get("context", {})
        if link:
            context["link"] = link

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.EXTRACTION_PARSE_ERROR),
            context=context,
            user_message=kwargs.get("user_message", "Couldn't parse entry markup"),
            recoverable=kwargs.get("recoverable", True),
            **_passthrough(kwargs),
        )


class FetchError(PixFeedError):
    """Remote resource download, classification or write errors."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        content_type: Optional[str] = None,
        **kwargs,
    ):
        """Initialize fetch error.

        Args:
            message: Error message
            url: Resource URL being fetched
            content_type: Sniffed content type, when classification failed
            **kwargs: Additional arguments for PixFeedError
        """
        context = kwargs.get("context", {})
        if url:
            context["url"] = url
        if content_type:
            context["content_type"] = content_type

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.RESOURCE_TRANSPORT),
            context=context,
            user_message=kwargs.get("user_message", "Couldn't store image"),
            recoverable=kwargs.get("recoverable", True),
            **_passthrough(kwargs),
        )

    @property
    def content_type(self) -> Optional[str]:
        return self.context.get("content_type")


class StorageError(PixFeedError):
    """Storage directory errors."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        """Initialize storage error.

        Args:
            message: Error message
            path: Filesystem path involved
            **kwargs: Additional arguments for PixFeedError
        """
        context = kwargs.get("context", {})
        if path:
            context["path"] = path

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.STORAGE_LIST_FAILED),
            context=context,
            user_message=kwargs.get("user_message", "Storage operation failed"),
            recoverable=kwargs.get("recoverable", True),
            **_passthrough(kwargs),
        )


class SweepListError(StorageError):
    """Storage directory could not be listed; aborts a single sweep."""

    pass


class DeleteError(StorageError):
    """A single entry could not be removed during a sweep."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.STORAGE_DELETE_FAILED)
        super().__init__(message, path=path, **kwargs)


# Exception handling utilities


def handle_exception(
    exception: Exception,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> PixFeedError:
    """Convert generic exceptions to PixFeed exceptions with proper logging.

    Args:
        exception: Original exception
        logger: Logger instance for error logging
        operation: Operation that was being performed
        context: Additional context information

    Returns:
        PixFeed exception with proper categorization
    """
    context = context or {}
    context["operation"] = operation
    context["original_exception_type"] = type(exception).__name__

    if isinstance(exception, PixFeedError):
        logger.error(f"Operation '{operation}' failed", extra=exception.to_dict())
        return exception

    elif isinstance(exception, (ConnectionError, TimeoutError)):
        error = PixFeedError(
            message=f"Network error during {operation}: {str(exception)}",
            error_code=ErrorCode.FEED_NETWORK_ERROR,
            context=context,
            user_message="Network connection failed",
            recoverable=True,
        )

    elif isinstance(exception, PermissionError):
        error = PixFeedError(
            message=f"Permission denied during {operation}: {str(exception)}",
            error_code=ErrorCode.SYSTEM_PERMISSION_DENIED,
            context=context,
            user_message="Access denied",
            recoverable=False,
        )

    elif isinstance(exception, MemoryError):
        error = PixFeedError(
            message=f"Memory exhausted during {operation}: {str(exception)}",
            error_code=ErrorCode.SYSTEM_MEMORY_ERROR,
            context=context,
            user_message="System resources exhausted",
            recoverable=True,
        )

    else:
        error = PixFeedError(
            message=f"Unexpected error during {operation}: {str(exception)}",
            context=context,
            user_message="An unexpected error occurred",
            recoverable=True,
        )

    logger.error(f"Operation '{operation}' failed", extra=error.to_dict())
    return error


def get_user_friendly_message(exception: Exception) -> str:
    """Get user-friendly error message for any exception."""
    if isinstance(exception, PixFeedError):
        return exception.user_message

    return "An unexpected error occurred. Please try again later."
