from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_catalog_service, get_db, get_optional_user
from app.schemas.vocab_scheme import VocabDownloadRead, VocabListRead
from app.services.catalog_service import CatalogService

router = APIRouter()


# All vocab list metadata
@router.get("/", response_model=list[VocabListRead])
def list_vocabs(
    db: Session = Depends(get_db),
    catalog: CatalogService = Depends(get_catalog_service),
):
    return catalog.list_vocabs(db)


# Download link for one vocab list; recorded when the caller sends a token
@router.get("/{vocab_id}", response_model=VocabDownloadRead)
def download_vocab(
    vocab_id: str,
    db: Session = Depends(get_db),
    catalog: CatalogService = Depends(get_catalog_service),
    user: Optional[dict] = Depends(get_optional_user),
):
    user_id = user.get("id") if user else None
    return catalog.download_vocab(db, vocab_id, user_id=user_id)
