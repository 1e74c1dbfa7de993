"""Global error handlers ensuring request_id is included in JSON responses."""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from devradar.api.request_id import get_request_id
from devradar.domain.developers.exceptions import DevRadarError, NotFound, ValidationError

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
    _HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - older Starlette builds
    _HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


def status_for(exc: DevRadarError) -> int:
    if isinstance(exc, ValidationError):
        return _HTTP_422
    if isinstance(exc, NotFound):
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_400_BAD_REQUEST


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        payload = {"detail": exc.detail, "request_id": get_request_id(request)}
        return JSONResponse(status_code=exc.status_code, content=payload)

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        payload = {
            "detail": "validation_error",
            "errors": jsonable_errors(exc),
            "request_id": get_request_id(request),
        }
        return JSONResponse(status_code=_HTTP_422, content=payload)

    @app.exception_handler(DevRadarError)
    async def domain_exc_handler(request: Request, exc: DevRadarError):  # type: ignore[override]
        payload = {"detail": exc.reason, "request_id": get_request_id(request)}
        return JSONResponse(status_code=status_for(exc), content=payload)


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    errors: list[dict] = []
    for error in exc.errors():
        errors.append({"loc": list(error.get("loc", ())), "msg": str(error.get("msg", "")), "type": error.get("type")})
    return errors
