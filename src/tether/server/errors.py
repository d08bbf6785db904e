"""Wire error envelope.

Failed calls return a non-2xx status with a JSON body of the form
``{"code": ..., "message": ..., "details": [...]}``. Validation problems found
by Check and Invoke are not errors; they travel in the response ``failures``.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from tether.core.errors import HTTP_STATUS, StatusCode, TetherError

logger = structlog.get_logger()


def error_envelope(
    code: StatusCode, message: str, details: list[dict[str, Any]] | None = None
) -> dict[str, Any]:
    return {"code": code.value, "message": message, "details": details or []}


async def tether_error_handler(request: Request, exc: TetherError) -> JSONResponse:
    return JSONResponse(
        status_code=HTTP_STATUS[exc.code],
        content=error_envelope(exc.code, exc.message, exc.wire_details()),
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    violations = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "description": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    logger.warning("rpc_bad_request", path=request.url.path, violations=len(violations))
    return JSONResponse(
        status_code=HTTP_STATUS[StatusCode.INVALID_ARGUMENT],
        content=error_envelope(
            StatusCode.INVALID_ARGUMENT,
            "request message is malformed",
            [{"@type": "BadRequest", "fieldViolations": violations}],
        ),
    )
