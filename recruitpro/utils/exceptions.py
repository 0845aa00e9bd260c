"""
Error types raised across RecruitPro and their HTTP mapping.

Each error carries a stable ``kind`` (the class name), an ``error_code``
and a ``details`` dict of whatever context the raiser passed as keyword
arguments. The API layer turns them into the JSON error body via
``map_to_http_exception``.
"""
import asyncio
import functools
import inspect
import time
from random import uniform
from typing import Any, Dict, Optional

from fastapi import HTTPException
from pymongo.errors import PyMongoError


class RecruitProError(Exception):
    """Base class; keyword context lands in ``details`` (None values dropped)"""

    error_code = "RECRUITPRO_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        **context: Any
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.details = dict(details or {})
        self.details.update({k: v for k, v in context.items() if v is not None})

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "kind": self.kind,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }
        if self.cause is not None:
            data["cause"] = str(self.cause)
        return data


class ValidationError(RecruitProError):
    """Malformed request or missing required field"""

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        invalid = None if value is None else str(value)
        super().__init__(message, field=field, invalid_value=invalid, **kwargs)


class DuplicateApplication(RecruitProError):
    """Same email already applied for the same role"""

    error_code = "DUPLICATE_APPLICATION"
    status_code = 409

    def __init__(self, email: str, role_id: str, existing_id: str = None, **kwargs):
        super().__init__(
            "You have already applied for this position. Please check your email "
            "for application status or contact us for updates.",
            email=email,
            role_id=role_id,
            existing_application_id=existing_id,
            **kwargs
        )


class NotFoundError(RecruitProError):
    error_code = "NOT_FOUND"
    status_code = 404


class DatabaseError(RecruitProError):
    error_code = "DATABASE_ERROR"
    status_code = 500


class ExtractionFailure(RecruitProError):
    """Resume document yielded no usable text"""

    error_code = "EXTRACTION_FAILURE"
    status_code = 422


class ScoringFailure(RecruitProError):
    """Scoring model timed out, errored or returned malformed output"""

    error_code = "SCORING_FAILURE"
    status_code = 502


class NotificationFailure(RecruitProError):
    """Email could not be rendered or delivered"""

    error_code = "NOTIFICATION_FAILURE"
    status_code = 502


class ConfigurationError(RecruitProError):
    error_code = "CONFIGURATION_ERROR"
    status_code = 400


def map_to_http_exception(exc: RecruitProError) -> HTTPException:
    """HTTPException whose detail is the body merged into the error response"""
    return HTTPException(
        status_code=exc.status_code,
        detail={"kind": exc.kind, "message": exc.message, "error": exc.to_dict()},
    )


class ExceptionContext:
    """
    Wraps a storage operation: debug-logs it, and re-raises driver
    errors as DatabaseError. RecruitProError passes through untouched.
    """

    def __init__(self, operation: str, logger=None, collection: str = None, **context):
        self.operation = operation
        self.logger = logger
        self.collection = collection
        self.context = context

    def _log(self, level: str, message: str, **extra):
        if self.logger:
            getattr(self.logger, level)(message, extra={**self.context, **extra})

    def __enter__(self):
        self._log("debug", f"{self.operation} started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self._log("debug", f"{self.operation} done")
            return False

        self._log("error", f"{self.operation} failed: {exc_val}", exception_type=exc_type.__name__)
        if isinstance(exc_val, PyMongoError):
            raise DatabaseError(
                f"Database error in {self.operation}: {exc_val}",
                details=self.context,
                cause=exc_val,
                operation=self.operation,
                collection=self.collection,
            ) from exc_val
        return False


def retry_with_logging(
    max_attempts: int = 3,
    backoff_factor: float = 1.0,
    exceptions: tuple = (Exception,),
    logger=None
):
    """Retry on ``exceptions`` with jittered exponential backoff; sync or async"""

    def delay(attempt: int) -> float:
        return backoff_factor * (2 ** attempt) + uniform(0, 1)

    def give_up(func, attempt: int, error: Exception) -> bool:
        last = attempt == max_attempts - 1
        if logger:
            logger.warning(f"{func.__name__} attempt {attempt + 1}/{max_attempts} failed: {error}")
            if last:
                logger.error(f"{func.__name__} gave up after {max_attempts} attempts")
        return last

    def decorator(func):
        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                for attempt in range(max_attempts):
                    try:
                        return await func(*args, **kwargs)
                    except exceptions as e:
                        if give_up(func, attempt, e):
                            raise
                        await asyncio.sleep(delay(attempt))
            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            for attempt in range(max_attempts):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if give_up(func, attempt, e):
                        raise
                    time.sleep(delay(attempt))
        return sync_wrapper

    return decorator
