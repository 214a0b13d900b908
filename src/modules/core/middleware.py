import uuid
from contextvars import ContextVar
from typing import Callable

import structlog
from django.http import HttpRequest, HttpResponse

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

logger = structlog.get_logger(__name__)

CLIENT_HEADER = "HTTP_X_CLIENT_APP"


class CorrelationIdMiddleware:
    """Tag every request with a correlation ID and the calling client app.

    Reads ``X-Request-ID`` (generating a UUID4 when absent) and the optional
    ``X-Client-App`` header (``courier``, ``buyer``, ...).  Both are bound
    into structlog's context so every log line emitted while serving the
    request carries them, and the ID is echoed back in ``X-Request-ID``.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        cid = request.META.get("HTTP_X_REQUEST_ID") or str(uuid.uuid4())
        correlation_id_var.set(cid)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            correlation_id=cid,
            client_app=request.META.get(CLIENT_HEADER, "unknown"),
        )

        logger.info(
            "request_started",
            method=request.method,
            path=request.path,
        )

        response = self.get_response(request)

        logger.info(
            "request_finished",
            method=request.method,
            path=request.path,
            status_code=response.status_code,
        )

        response["X-Request-ID"] = cid
        return response
