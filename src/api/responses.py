"""JSON response envelope shared by every endpoint."""

import logging
from typing import Any

from fastapi.responses import JSONResponse

from src.api.models import FetchResult
from src.exceptions import SafeFetchError, map_error_to_status
from src.http.models import Failure, RequestOutcome

logger = logging.getLogger(__name__)


def success(message: str, data: Any = None) -> dict[str, Any]:
    return {"success": True, "message": message, "data": data}


def error(message: str, status: int, identifier: str) -> dict[str, Any]:
    return {"success": False, "message": message, "status": status, "error": identifier}


def success_response(data: Any, message: str = "Request successful") -> JSONResponse:
    return JSONResponse(status_code=200, content=success(message, data))


def error_response(err: SafeFetchError) -> JSONResponse:
    """Log ``err`` and render it with the status its class maps to."""
    status = map_error_to_status(err)
    logger.error(
        "request_error",
        extra={"identifier": err.identifier, "status": status, "detail": err.message},
    )
    return JSONResponse(
        status_code=status,
        content=error(err.message, status, err.identifier),
    )


def handle_outcome(outcome: RequestOutcome) -> JSONResponse:
    """Render a client outcome: Success -> 200 envelope, Failure -> mapped error."""
    if isinstance(outcome, Failure):
        return error_response(outcome.to_error())
    result = FetchResult(
        status=outcome.status,
        headers=outcome.headers,
        body=outcome.text,
    )
    return success_response(result.model_dump())
