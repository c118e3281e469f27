from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_auth_service, get_catalog_service, get_current_user, get_db
from app.schemas.user_scheme import UserRead
from app.schemas.vocab_scheme import DownloadHistoryItem
from app.services.auth_service import AuthService
from app.services.catalog_service import CatalogService

router = APIRouter()


@router.get("/me", response_model=UserRead)
def read_current_user(
    claims: dict = Depends(get_current_user),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    return auth.get_user(db, claims.get("id"))


@router.get("/downloads", response_model=list[DownloadHistoryItem])
def read_download_history(
    claims: dict = Depends(get_current_user),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    catalog: CatalogService = Depends(get_catalog_service),
):
    user = auth.get_user(db, claims.get("id"))
    return catalog.list_downloads(db, user.id)
