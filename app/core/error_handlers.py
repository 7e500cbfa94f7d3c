"""
Maps exceptions to the `{"success": false, "errors": [...]}` envelope.

Every error entry carries `msg`; domain errors add `code` and, when present,
`details` (validation issues, conflicting ids). The request id is echoed so a
client report can be matched to the logs.
"""
import logging
from typing import Any, Dict, List, Union

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import AbsenceValidationError, AppException, PersistenceError
from app.core.logging import request_id_var

logger = logging.getLogger(__name__)


def _envelope(status_code: int, errors: List[Dict[str, Any]]) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "errors": errors}
    request_id = request_id_var.get()
    if request_id:
        content["request_id"] = request_id
    return JSONResponse(status_code=status_code, content=content)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        field = error["loc"][-1] if len(error["loc"]) > 0 else "unknown"
        errors.append({"field": str(field), "msg": error["msg"]})
    logger.warning("Malformed request", extra={"path": request.url.path, "errors": errors})
    return _envelope(status.HTTP_422_UNPROCESSABLE_ENTITY, errors)


async def app_exception_handler(request: Request, exc: AppException):
    if isinstance(exc, PersistenceError) and exc.status_code >= 500:
        logger.error(f"Storage failure: {exc.message}", extra={"code": exc.error_code, "path": request.url.path})
    elif isinstance(exc, AbsenceValidationError):
        logger.info(
            "Absence request refused",
            extra={"codes": [issue.code for issue in exc.issues], "path": request.url.path}
        )
    else:
        logger.warning(f"AppException: {exc.message}", extra={"code": exc.error_code})

    error: Dict[str, Any] = {"msg": exc.message, "code": exc.error_code}
    if exc.details:
        error["details"] = exc.details
    return _envelope(exc.status_code, [error])


async def http_exception_handler(request: Request, exc: Union[HTTPException, StarletteHTTPException]):
    return _envelope(
        exc.status_code,
        [{"msg": exc.detail if isinstance(exc.detail, str) else "Request failed"}]
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled server error", extra={"path": request.url.path})
    return _envelope(500, [{"msg": "An unexpected server error occurred."}])


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
