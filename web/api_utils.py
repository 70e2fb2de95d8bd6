"""Shared API response helpers."""

from __future__ import annotations

import json
from enum import StrEnum
from typing import Any

from fastapi import status
from fastapi.responses import JSONResponse

from core.errors import (
    FallbackExhausted,
    JobTrackingError,
    RemoteError,
    TransportError,
    ValidationError,
)
from web.schemas import ErrorResponse


class ErrorCode(StrEnum):
    """Stable error codes exposed by the API."""

    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"
    INTERNAL_ERROR = "internal_error"
    INVALID_DATE_RANGE = "invalid_date_range"
    INVALID_JOB_ID = "invalid_job_id"
    INVALID_SCHEME_IDS = "invalid_scheme_ids"
    UNKNOWN_BOOKMARK = "unknown_bookmark"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    UPSTREAM_REJECTED = "upstream_rejected"
    TRACKING_FAILED = "tracking_failed"


_VALIDATION_CODES: dict[str | None, ErrorCode] = {
    "start_date": ErrorCode.INVALID_DATE_RANGE,
    "end_date": ErrorCode.INVALID_DATE_RANGE,
    "job_id": ErrorCode.INVALID_JOB_ID,
    "scheme_ids": ErrorCode.INVALID_SCHEME_IDS,
    "bookmark_id": ErrorCode.UNKNOWN_BOOKMARK,
}


def error_response(
    message: str,
    status_code: int,
    code: ErrorCode | str = ErrorCode.BAD_REQUEST,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Construye un payload de error estable con ``code`` y ``details`` opcionales.

    Args:
        message:     Descripción legible del error.
        status_code: Código HTTP. Debe ser 4xx o 5xx.
        code:        Código de error de máquina (``ErrorCode``).
        details:     Campos adicionales opcionales para debugging.
    """
    if not (400 <= status_code < 600):
        raise ValueError(
            f"error_response requiere un status 4xx/5xx, recibido: {status_code}"
        )
    payload = ErrorResponse(error=message, code=str(code), details=details).model_dump(
        exclude_none=True
    )
    return JSONResponse(content=payload, status_code=status_code)


def not_found_response(
    message: str, code: ErrorCode | str = ErrorCode.NOT_FOUND
) -> JSONResponse:
    """Atajo para 404."""
    return error_response(message, status.HTTP_404_NOT_FOUND, code=code)


def tracking_error_response(exc: JobTrackingError) -> JSONResponse:
    """Traduce un error del core a una respuesta HTTP con código estable."""
    if isinstance(exc, ValidationError):
        code = _VALIDATION_CODES.get(exc.field, ErrorCode.BAD_REQUEST)
        http_status = (
            status.HTTP_404_NOT_FOUND
            if code == ErrorCode.UNKNOWN_BOOKMARK
            else status.HTTP_400_BAD_REQUEST
        )
        details = {"field": exc.field} if exc.field else None
        return error_response(str(exc), http_status, code=code, details=details)

    if isinstance(exc, TransportError):
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            return not_found_response(str(exc))
        details = {"status_code": exc.status_code} if exc.status_code else None
        return error_response(
            str(exc),
            status.HTTP_502_BAD_GATEWAY,
            code=ErrorCode.UPSTREAM_UNAVAILABLE,
            details=details,
        )

    if isinstance(exc, RemoteError):
        details = {"upstream_code": exc.code} if exc.code else None
        return error_response(
            str(exc),
            status.HTTP_502_BAD_GATEWAY,
            code=ErrorCode.UPSTREAM_REJECTED,
            details=details,
        )

    if isinstance(exc, FallbackExhausted):
        return error_response(
            str(exc), status.HTTP_502_BAD_GATEWAY, code=ErrorCode.TRACKING_FAILED
        )

    return error_response(
        str(exc), status.HTTP_500_INTERNAL_SERVER_ERROR, code=ErrorCode.INTERNAL_ERROR
    )


def sse_event(event: str, payload: dict[str, Any]) -> str:
    """Serializa un frame Server-Sent Event con payload JSON compacto.

    Args:
        event:   Nombre del evento. No puede contener ``\\n`` ni ``\\r``.
        payload: Datos serializables a JSON.

    Raises:
        ValueError:  Si ``event`` contiene caracteres de nueva línea.
        TypeError:   Si ``payload`` contiene valores no serializables.
    """
    if not event or "\n" in event or "\r" in event:
        raise ValueError(
            f"sse_event: el nombre de evento no puede contener saltos de línea: {event!r}"
        )
    try:
        data = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise TypeError(
            f"sse_event: payload para evento {event!r} no es JSON-serializable: {exc}"
        ) from exc
    return f"event: {event}\ndata: {data}\n\n"


def sse_comment(text: str = "") -> str:
    """Emite un comentario SSE, útil como keepalive/heartbeat."""
    safe = text.replace("\n", " ").replace("\r", " ")
    return f": {safe}\n\n"
