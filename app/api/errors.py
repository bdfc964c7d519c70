"""Maps failures to the JSON error body ``{"error": {code, message, details?}}``."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config.settings import Settings
from app.logging.logger import Log
from app.relay.exceptions import ErrorKind, RelayError


def error_body(code: str, message: str, details: str | None = None) -> dict[str, object]:
    error: dict[str, object] = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return {"error": error}


def register_error_handlers(app: FastAPI, settings: Settings) -> None:
    def details(text: str) -> str | None:
        return None if settings.is_production else text

    @app.exception_handler(RelayError)
    async def handle_relay_error(request: Request, exc: RelayError) -> JSONResponse:
        kind = exc.kind
        Log.error(f"{request.method} {request.url.path} failed ({kind.code}): {exc}")
        return JSONResponse(
            status_code=kind.status,
            content=error_body(kind.code, kind.message, details(str(exc))),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == ErrorKind.METHOD_NOT_ALLOWED.status:
            kind = ErrorKind.METHOD_NOT_ALLOWED
            body = error_body(kind.code, kind.message, details(f"Got {request.method}"))
        else:
            body = error_body("http_error", str(exc.detail))
        Log.warning(f"{request.method} {request.url.path} -> {exc.status_code}")
        return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        kind = ErrorKind.UNKNOWN
        Log.exception(f"{request.method} {request.url.path} crashed: {exc}")
        return JSONResponse(
            status_code=kind.status,
            content=error_body(kind.code, kind.message, details(str(exc))),
        )
