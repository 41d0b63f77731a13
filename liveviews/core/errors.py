"""
Custom error classes with structured logging.

All errors carry correlation context and structured data for observability.

Taxonomy:
- UsageError: programmer errors (update before send, next() called twice,
  handler id from a superseded render). Never swallowed.
- PersistenceError / ConnectorError: transient I/O failures, propagated to
  the caller of the triggering operation without retries.
- ConfigurationError: the runtime was wired incorrectly.
"""

import logging
from typing import Optional, Dict, Any

from liveviews.common.logging import get_logger
from liveviews.common.logging.correlation import get_correlation_id, get_user_id, get_view_id

logger = get_logger(__name__)


class LiveViewsError(Exception):
    """
    Base error class for all liveviews errors.

    Logs itself with correlation context when constructed.
    """

    log_level = logging.ERROR

    def __init__(
        self,
        message: str,
        data: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        """
        Initialize error with structured context.

        Args:
            message: Human-readable error message
            data: Structured data for observability
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.data = data or {}
        self.cause = cause

        self.correlation_id = get_correlation_id()
        self.user_id = get_user_id()
        self.view_id = get_view_id()

        self._log_error()

    def _log_error(self):
        log_data = {
            "error_type": self.__class__.__name__,
            "correlation_id": self.correlation_id,
            "user_id": self.user_id,
            "view_id": self.view_id,
            **self.data,
        }

        if self.cause:
            log_data["cause"] = str(self.cause)

        logger.log(
            self.log_level,
            self.message,
            extra={"structured_data": log_data},
            exc_info=self.cause if self.cause is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "data": self.data,
            "correlation_id": self.correlation_id,
            "user_id": self.user_id,
            "view_id": self.view_id,
            "cause": str(self.cause) if self.cause else None,
        }


# Usage errors
class UsageError(LiveViewsError):
    """Programmer error in code using the runtime."""
    pass


class ViewNotSentError(UsageError):
    """State update requested for a view that has not been sent yet."""
    pass


class ViewNotBoundError(UsageError):
    """View used before it was bound to a runtime."""
    pass


class ContinuationReusedError(UsageError):
    """Middleware continuation called more than once in the same frame."""
    pass


class HandlerNotFoundError(UsageError):
    """Control id does not belong to the view's current render."""
    pass


class ViewRegistrationError(UsageError):
    """View class registered twice or without a usable view_type_id."""
    pass


# Configuration errors
class ConfigurationError(LiveViewsError):
    """Runtime constructed with missing or invalid collaborators."""
    pass


# Persistence errors
class PersistenceError(LiveViewsError):
    """Error talking to the durable state store."""
    pass


class StateNotFoundError(PersistenceError):
    """No persisted record for the content id."""
    log_level = logging.DEBUG


class StoreUnavailableError(PersistenceError):
    """State store backend unreachable or failing."""
    pass


# Transport errors
class ConnectorError(LiveViewsError):
    """Error delivering content through the connector."""
    pass
