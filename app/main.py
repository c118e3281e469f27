from contextlib import asynccontextmanager
import logging
import os

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app.api import account_routes, auth_routes, vocab_routes
from app.api.middleware import register_middleware
from app.config import DEFAULT_SECRET_KEY, Settings, get_settings
from app.db.session import Database
from app.logging_config import configure_logging
from app.services.auth_service import AuthService
from app.services.catalog_service import CatalogService
from app.services.email_service import SMTPMailer

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, mailer=None, clock=None) -> FastAPI:
    """Build the application with its database, mail and service handles."""
    settings = settings or get_settings()
    if settings.secret_key == DEFAULT_SECRET_KEY:
        logger.warning("SECRET_KEY is not set; session tokens are signed with the default key")
    database = Database(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database.create_all()
        logger.info("LexiLearn backend started")
        yield
        database.dispose()

    app = FastAPI(title="LexiLearn backend", lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.auth_service = AuthService(settings, mailer or SMTPMailer(settings), clock=clock)
    app.state.catalog_service = CatalogService()

    app.include_router(auth_routes.router, prefix="/user", tags=["user"])
    app.include_router(vocab_routes.router, prefix="/vocab", tags=["vocab"])
    app.include_router(account_routes.router, prefix="/account", tags=["account"])

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"[Request] Invalid body for {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"[Request] Unhandled error for {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    register_middleware(app, settings)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Static files sit behind every route
    if settings.static_dir.is_dir():
        app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
    else:
        logger.info(f"Static directory not found, skipping: {settings.static_dir}")

    return app


settings = get_settings()
configure_logging(settings.log_level)
app = create_app(settings)

if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 3000))
    uvicorn.run(app, host="0.0.0.0", port=port)
