"""
Standardized exception hierarchy for the LifeScore engine
Provides rich context, consistent logging, and user-friendly error messages
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

import httpx
import psycopg

logger = logging.getLogger(__name__)


class LifeScoreError(Exception):
    """
    Base exception for all LifeScore engine errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging
    - HTTP status hint for the boundary layer

    Example:
        raise LifeScoreError(
            message="Failed to apply mission reward",
            user_id="user-1",
            operation="complete_mission",
            context={"mission_id": "m-42"}
        )
    """

    status_code: int = 500
    log_level: int = logging.ERROR

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "An error occurred. Please try again."
        self.timestamp = datetime.now(timezone.utc)

        # Auto-log on creation
        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # Avoid conflict with logging's 'message' field
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,  # Avoid conflict with logging's 'context'
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.log(
                self.log_level,
                f"{self.__class__.__name__}: {self.message}",
                extra=log_data,
                exc_info=self.cause
            )
        else:
            logger.log(self.log_level, f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for API responses"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Domain Errors (user-visible outcomes)
# ==========================================

class ValidationError(LifeScoreError):
    """
    Raised when input is malformed or out of range

    Examples:
    - Unknown LifeScore change reason
    - Negative coin amount
    - Negative walk minutes in scenario inputs

    Example:
        raise ValidationError(
            message="Amount must be non-negative",
            field="amount",
            value=-5,
            user_id="user-1"
        )
    """

    status_code = 400
    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=message,
            user_message=f"Invalid {field}: {message}" if field else message,
            context={"field": field, "value": value, **(kwargs.pop("context", None) or {})},
            **kwargs
        )


class NotFoundError(LifeScoreError):
    """Unknown user, mission, reward or achievement"""

    status_code = 404
    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(
            message=message,
            user_message=f"{record_type or 'Record'} not found.",
            context={"record_type": record_type, "record_id": record_id, **(kwargs.pop("context", None) or {})},
            **kwargs
        )


class ConflictError(LifeScoreError):
    """
    Illegal state transition

    Examples:
    - Starting a mission while another one is active
    - Completing a mission that is not active
    - Redeeming a badge that is already held
    """

    status_code = 409
    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        current_state: Optional[str] = None,
        **kwargs
    ):
        self.current_state = current_state
        context = kwargs.pop("context", None) or {}
        context.setdefault("current_state", current_state)
        super().__init__(
            message=message,
            user_message=kwargs.pop("user_message", message),
            context=context,
            **kwargs
        )


class InsufficientBalanceError(LifeScoreError):
    """Coin cost exceeds the user's balance"""

    status_code = 402
    log_level = logging.WARNING

    def __init__(
        self,
        message: str = "Insufficient coins",
        balance: int = 0,
        required: int = 0,
        **kwargs
    ):
        self.balance = balance
        self.required = required
        super().__init__(
            message=message,
            user_message=f"Not enough coins: you have {balance}, this needs {required}.",
            context={"balance": balance, "required": required, **(kwargs.pop("context", None) or {})},
            **kwargs
        )


class RateLimitExceeded(LifeScoreError):
    """Caller exceeded the sliding-window limit for an entry point"""

    status_code = 429
    log_level = logging.WARNING

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        key: Optional[str] = None,
        retry_after: float = 0.0,
        **kwargs
    ):
        self.key = key
        self.retry_after = retry_after
        super().__init__(
            message=message,
            user_message=f"Too many requests. Try again in {max(1, round(retry_after))} seconds.",
            context={"key": key, "retry_after": retry_after, **(kwargs.pop("context", None) or {})},
            **kwargs
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["retry_after"] = self.retry_after
        return data


# ==========================================
# External Provider Errors
# ==========================================

class ExternalProviderError(LifeScoreError):
    """
    Text completion provider failed or timed out

    Always recovered locally by the deterministic fallback; never surfaced
    as the failure of a whole operation.
    """

    status_code = 502
    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs
    ):
        self.provider = provider
        self.provider_status_code = status_code
        super().__init__(
            message=message,
            user_message=f"We're having trouble connecting to {provider or 'an external service'}.",
            context={"provider": provider, "status_code": status_code, **(kwargs.pop("context", None) or {})},
            **kwargs
        )


# ==========================================
# Database Errors
# ==========================================

class DatabaseError(LifeScoreError):
    """
    Base class for database-related errors
    """
    pass


class ConnectionError(DatabaseError):
    """Database connection failed"""

    def __init__(self, message: str = "Database connection failed", **kwargs):
        super().__init__(
            message=message,
            user_message="We're having trouble connecting to the database. Please try again in a moment.",
            **kwargs
        )


class QueryError(DatabaseError):
    """Database query execution failed"""

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        **kwargs
    ):
        self.query = query
        context = {"query": query, **(kwargs.pop("context", None) or {})}
        super().__init__(
            message=message,
            user_message="We encountered an issue saving your data. Please try again.",
            context=context,
            **kwargs
        )


class DuplicateRecordError(DatabaseError):
    """A uniqueness constraint rejected the write"""

    status_code = 409
    log_level = logging.INFO

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        key: Optional[Any] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.key = key
        super().__init__(
            message=message,
            user_message=f"{record_type or 'Record'} already exists.",
            context={"record_type": record_type, "key": str(key) if key is not None else None, **(kwargs.pop("context", None) or {})},
            **kwargs
        )


# ==========================================
# Configuration Errors
# ==========================================

class ConfigurationError(LifeScoreError):
    """System configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        super().__init__(
            message=message,
            user_message="The system is not properly configured. Please contact support.",
            context={"config_key": config_key, **(kwargs.pop("context", None) or {})},
            **kwargs
        )


# ==========================================
# Helper Functions
# ==========================================

def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> LifeScoreError:
    """
    Wrap external exceptions (psycopg, httpx, openai) into our exception hierarchy

    Args:
        error: Original exception
        operation: What operation was being performed
        user_id: User ID if applicable
        context: Additional context

    Returns:
        Appropriate LifeScoreError subclass

    Example:
        try:
            await cur.execute(query)
        except psycopg.Error as e:
            raise wrap_external_exception(
                e,
                operation="insert_user_mission",
                user_id="user-1",
                context={"mission_id": "m-42"}
            )
    """
    # Database errors
    if isinstance(error, psycopg.errors.UniqueViolation):
        return DuplicateRecordError(
            message=f"Uniqueness constraint violated: {str(error)}",
            user_id=user_id,
            operation=operation,
            cause=error
        )
    elif isinstance(error, psycopg.OperationalError):
        return ConnectionError(
            message=f"Database connection failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )
    elif isinstance(error, psycopg.Error):
        return QueryError(
            message=f"Database query failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )

    # HTTP / provider errors
    elif isinstance(error, httpx.TimeoutException):
        return ExternalProviderError(
            message=f"Provider request timed out: {str(error)}",
            user_id=user_id,
            operation=operation,
            cause=error
        )
    elif isinstance(error, httpx.HTTPStatusError):
        return ExternalProviderError(
            message=f"Provider returned error: {error.response.status_code}",
            status_code=error.response.status_code,
            user_id=user_id,
            operation=operation,
            cause=error
        )

    # Generic fallback
    else:
        return LifeScoreError(
            message=f"{operation} failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )
