"""
Request pipeline: access log, timed structured log, bearer-token gate.

Paths under the configured public prefixes and existing static assets are
served without a token; everything else needs `Authorization: Bearer <jwt>`.
"""
from pathlib import Path
from typing import Optional
import logging
import time

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.config import Settings
from app.services.errors import Unauthorized

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("app.access")


def extract_bearer_token(header: Optional[str]) -> Optional[str]:
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def is_public_path(path: str, prefixes) -> bool:
    return any(path == prefix or path.startswith(prefix + "/") for prefix in prefixes)


def is_static_asset(static_dir: Path, path: str) -> bool:
    if not static_dir.is_dir():
        return False
    root = static_dir.resolve()
    candidate = (root / path.lstrip("/")).resolve()
    if candidate != root and root not in candidate.parents:
        return False
    if candidate.is_dir():
        candidate = candidate / "index.html"
    return candidate.is_file()


def _unauthorized(detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": detail},
        headers={"WWW-Authenticate": "Bearer"},
    )


def register_middleware(app: FastAPI, settings: Settings) -> None:
    """Install the pipeline; the last middleware registered runs first."""

    @app.middleware("http")
    async def require_token(request: Request, call_next):
        path = request.url.path
        if is_public_path(path, settings.public_prefixes):
            return await call_next(request)
        if request.method in ("GET", "HEAD") and is_static_asset(settings.static_dir, path):
            return await call_next(request)

        token = extract_bearer_token(request.headers.get("authorization"))
        if not token:
            logger.warning(f"[Auth] Missing bearer token: {request.method} {path}")
            return _unauthorized("Not authenticated")
        try:
            request.state.user = request.app.state.auth_service.decode_token(token)
        except Unauthorized as e:
            logger.warning(f"[Auth] Rejected token: {request.method} {path} - {e.detail}")
            return _unauthorized(e.detail)
        return await call_next(request)

    @app.middleware("http")
    async def timed_log(request: Request, call_next):
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            logger.info(
                f"{request.method} {request.url.path} - {duration_ms}ms",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "duration_ms": duration_ms,
                },
            )

    @app.middleware("http")
    async def access_log(request: Request, call_next):
        client = request.client.host if request.client else "-"
        access_logger.info(f"<-- {request.method} {request.url.path} from {client}")
        response = await call_next(request)
        access_logger.info(f"--> {request.method} {request.url.path} {response.status_code}")
        return response
