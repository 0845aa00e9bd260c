"""
API middleware: error bodies, request logging and timing.

Every error leaves the API as the same JSON shape::

    {"success": false, "kind": ..., "message": ..., "request_id": ...,
     "status_code": ..., "timestamp": ...}

with the request id echoed in ``X-Request-ID``.
"""
import time
import uuid
from datetime import datetime
from typing import Any, Dict

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from recruitpro.utils.exceptions import RecruitProError, map_to_http_exception
from recruitpro.utils.logging_config import get_logger

logger = get_logger(__name__)

# Liveness checks hit these constantly
QUIET_PATHS = ["/", "/health"]

INTERNAL_ERROR = {
    "kind": "InternalError",
    "message": "An unexpected error occurred. Please try again later.",
}


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def _where(request: Request) -> str:
    return f"{request.method} {request.url.path}"


def create_error_response(request_id: str, status_code: int, detail: Any) -> JSONResponse:
    """JSON error body; a non-dict detail becomes the message"""
    body: Dict[str, Any] = detail if isinstance(detail, dict) else {"message": str(detail)}
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "timestamp": datetime.utcnow().isoformat(),
            "request_id": request_id,
            "status_code": status_code,
            **body,
        },
        headers={"X-Request-ID": request_id},
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Body schema violations are reported as a 400 ValidationError naming the first bad field"""
    request_id = _request_id(request)
    errors = exc.errors()
    logger.warning(
        f"Rejected request body for {_where(request)}",
        extra={"request_id": request_id, "validation_errors": errors},
    )

    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    reason = first.get("msg", "Request data validation failed")
    return create_error_response(request_id, 400, {
        "kind": "ValidationError",
        "message": f"{field}: {reason}" if field else reason,
        "validation_errors": [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in errors
        ],
    })


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Assigns the request id and turns anything raised below it into an error body"""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        context = {"request_id": request_id, "method": request.method, "path": request.url.path}

        try:
            response = await call_next(request)
        except RecruitProError as exc:
            http_exc = map_to_http_exception(exc)
            level = "warning" if http_exc.status_code < 500 else "error"
            getattr(logger, level)(
                f"{exc.kind} in {_where(request)}: {exc.message}",
                extra={**context, "error_code": exc.error_code, "details": exc.details},
            )
            return create_error_response(request_id, http_exc.status_code, http_exc.detail)
        except HTTPException as exc:
            logger.warning(f"HTTP {exc.status_code} in {_where(request)}: {exc.detail}", extra=context)
            return create_error_response(request_id, exc.status_code, exc.detail)
        except Exception as exc:
            logger.error(
                f"Unhandled {type(exc).__name__} in {_where(request)}: {exc}",
                extra=context,
                exc_info=True,
            )
            return create_error_response(request_id, 500, INTERNAL_ERROR)

        response.headers["X-Request-ID"] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One line per request and response; health checks at debug level"""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        request_id = _request_id(request)
        log = logger.debug if request.url.path in QUIET_PATHS else logger.info

        log(
            f"-> {_where(request)}",
            extra={
                "request_id": request_id,
                "query_params": dict(request.query_params),
                "client_ip": request.client.host if request.client else "unknown",
            },
        )
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"x  {_where(request)} after {time.perf_counter() - started:.3f}s: {exc}",
                extra={"request_id": request_id},
            )
            raise

        log(
            f"<- {_where(request)} {response.status_code} in {time.perf_counter() - started:.3f}s",
            extra={"request_id": request_id, "status_code": response.status_code},
        )
        return response


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Adds X-Processing-Time and warns about requests slower than the threshold"""

    def __init__(self, app, slow_request_threshold: float = 2.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        if elapsed > self.slow_request_threshold:
            logger.warning(
                f"Slow request: {_where(request)} took {elapsed:.3f}s",
                extra={"request_id": _request_id(request), "threshold": self.slow_request_threshold},
            )
        response.headers["X-Processing-Time"] = f"{elapsed:.3f}"
        return response
