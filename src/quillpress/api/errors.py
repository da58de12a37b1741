"""
Map engine errors to HTTP responses.

Body shape: {"error": {"kind": ..., "message": ...}}, plus "field" when the
error names one.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from quillpress.domain.errors import EngineError

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    "validation": 400,
    "authorization": 403,
    "not_found": 404,
    "conflict": 409,
    "dependency": 503,
}


async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, 500)
    if status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content={"error": exc.to_dict()})


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    content: dict = {"kind": "validation", "message": first.get("msg", "Invalid request")}
    if loc:
        content["field"] = ".".join(loc)
    return JSONResponse(status_code=400, content={"error": content})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EngineError, engine_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
