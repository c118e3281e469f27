from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.api.middleware import extract_bearer_token
from app.services.auth_service import AuthService
from app.services.catalog_service import CatalogService
from app.services.errors import Unauthorized


def get_db(request: Request):
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_catalog_service(request: Request) -> CatalogService:
    return request.app.state.catalog_service


def get_current_user(request: Request) -> dict:
    """Claims set by the token middleware on protected paths."""
    claims = getattr(request.state, "user", None)
    if not claims:
        raise Unauthorized()
    return claims


def get_optional_user(request: Request, auth: AuthService = Depends(get_auth_service)) -> Optional[dict]:
    """Claims from a bearer token on a public path; None when absent or invalid."""
    token = extract_bearer_token(request.headers.get("authorization"))
    if not token:
        return None
    try:
        return auth.decode_token(token)
    except Unauthorized:
        return None
