"""
Logging setup and request observability.

Loggers across the app pass structured context through 'extra='. The
formatter below appends that context to each line as key=value pairs.
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("arbi_pos.http")

_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {key: value for key, value in vars(record).items() if key not in _RESERVED}
        if not context:
            return line
        return line + " | " + " ".join(f"{key}={value}" for key, value in sorted(context.items()))


def configure_logging(level: str = "INFO"):
    """Attach one context-aware handler to the 'arbi_pos' logger tree."""
    root = logging.getLogger("arbi_pos")
    root.setLevel(level.upper())
    if any(isinstance(handler.formatter, ContextFormatter) for handler in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(ContextFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000

        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Process-Time"] = f"{duration_ms:.2f}"

        log_data = {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
        }
        session = getattr(request.app.state, "printer_session", None)
        if session is not None and "/printer" in request.url.path:
            log_data["printer_state"] = session.state.value

        if response.status_code >= 500:
            logger.error("Request failed", extra=log_data)
        elif response.status_code >= 400:
            logger.warning("Request rejected", extra=log_data)
        else:
            logger.info("Request served", extra=log_data)

        return response
