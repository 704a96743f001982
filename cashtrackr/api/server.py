from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cashtrackr import __version__
from cashtrackr.config import Config, check_production_config, load_config
from cashtrackr.db import init_db
from cashtrackr.emails.mailer import Mailer, build_mailer
from cashtrackr.errors import ValidationFailed

from .auth_routes import router as auth_router
from .budget_routes import router as budget_router
from .limiter import FixedWindowLimiter
from .validation import from_request_validation


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationFailed)
    async def _validation_failed(_request: Request, exc: ValidationFailed) -> JSONResponse:
        return JSONResponse(status_code=400, content={"errors": exc.errors})

    @app.exception_handler(RequestValidationError)
    async def _request_validation(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"errors": from_request_validation(exc.errors())})

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        # Never leak internals to clients.
        _debug(f"Unhandled error on {request.method} {request.url.path}: {type(exc).__name__}: {exc}")
        return JSONResponse(status_code=500, content={"error": "Error interno del servidor"})


def create_app(cfg: Optional[Config] = None, *, mailer: Optional[Mailer] = None) -> FastAPI:
    """Build the API.

    `mailer` defaults to SMTP (or stdout in development). Tests pass a recording mailer
    to read the codes that would have been emailed.
    """
    cfg = cfg or load_config()
    check_production_config(cfg)

    app = FastAPI(title="CashTrackr API", version=__version__)
    app.state.cfg = cfg
    app.state.mailer = mailer if mailer is not None else build_mailer(cfg)
    app.state.limiter = FixedWindowLimiter(cfg.AUTH_RATE_LIMIT_MAX, cfg.AUTH_RATE_LIMIT_WINDOW_SECONDS)

    # CORS is mainly needed for local development (Next.js on :3000 -> API on :4000).
    cors_origins = [o.strip() for o in (cfg.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    _install_error_handlers(app)

    @app.on_event("startup")
    def _on_startup() -> None:
        # Ensure schema exists.
        init_db(cfg.DB_DSN)
        _debug(f"CashTrackr API {__version__} ready (env={cfg.APP_ENV})")

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"status": "ok"}

    app.include_router(auth_router, prefix="/api")
    app.include_router(budget_router, prefix="/api")
    return app
