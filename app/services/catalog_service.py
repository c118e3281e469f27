import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.transactions import atomic_transaction
from app.models import User, UserVocabDownload, VocabList
from app.services.errors import InternalError, NotFound

logger = logging.getLogger(__name__)


@atomic_transaction
def record_download(db: Session, user_id: int, vocab_list_id: int) -> None:
    """Insert or refresh the (user, vocab list) download history row."""
    now = datetime.now(timezone.utc)
    row = db.get(UserVocabDownload, (user_id, vocab_list_id))
    if row is None:
        db.add(UserVocabDownload(user_id=user_id, vocab_list_id=vocab_list_id, downloaded_at=now))
    else:
        row.downloaded_at = now


class CatalogService:
    """Read access to the vocab catalog plus per-user download history."""

    def list_vocabs(self, db: Session) -> list[VocabList]:
        logger.info("[Catalog] Listing all vocab lists")
        try:
            return db.query(VocabList).order_by(VocabList.id).all()
        except SQLAlchemyError as e:
            logger.exception(f"[Catalog] Failed to list vocab lists: {e}")
            raise InternalError()

    def download_vocab(self, db: Session, vocab_id, user_id: int | None = None) -> dict:
        logger.info(f"[Catalog] Download request, id={vocab_id}")
        try:
            pk = int(vocab_id)
            if not 0 < pk < 2**63:
                raise ValueError(pk)
        except (TypeError, ValueError):
            logger.warning(f"[Catalog] Vocab list does not exist, id={vocab_id}")
            raise NotFound("Vocab list not found")

        try:
            vocab = db.get(VocabList, pk)
            if vocab is None:
                logger.warning(f"[Catalog] Vocab list does not exist, id={vocab_id}")
                raise NotFound("Vocab list not found")
            result = {"jsonUrl": vocab.json_url, "name": vocab.name}
            vocab_pk = vocab.id
        except SQLAlchemyError as e:
            logger.exception(f"[Catalog] Failed to load vocab list id={vocab_id}: {e}")
            raise InternalError()

        if user_id is not None:
            # History is best effort; the download itself already succeeded
            try:
                if db.get(User, user_id) is not None:
                    record_download(db, user_id, vocab_pk)
                    logger.info(f"[Catalog] Download recorded, id={vocab_id}, user_id={user_id}")
            except SQLAlchemyError as e:
                db.rollback()
                logger.exception(f"[Catalog] Failed to record download id={vocab_id}, user_id={user_id}: {e}")

        return result

    def list_downloads(self, db: Session, user_id: int) -> list[dict]:
        try:
            rows = (
                db.query(UserVocabDownload, VocabList)
                .join(VocabList, UserVocabDownload.vocab_list_id == VocabList.id)
                .filter(UserVocabDownload.user_id == user_id)
                .order_by(UserVocabDownload.downloaded_at.desc())
                .all()
            )
        except SQLAlchemyError as e:
            logger.exception(f"[Catalog] Failed to load download history for user_id={user_id}: {e}")
            raise InternalError()
        return [
            {
                "vocabListId": vocab.id,
                "name": vocab.name,
                "version": vocab.version,
                "downloadedAt": download.downloaded_at,
            }
            for download, vocab in rows
        ]
