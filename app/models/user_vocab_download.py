from sqlalchemy import Column, DateTime, ForeignKey, Integer, func
from sqlalchemy.orm import relationship

from .base import Base


class UserVocabDownload(Base):
    """Download history: which user fetched which vocab list, and when."""

    __tablename__ = "user_vocab_downloads"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    vocab_list_id = Column(Integer, ForeignKey("vocab_lists.id", ondelete="CASCADE"), primary_key=True)
    downloaded_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="downloads")
    vocab_list = relationship("VocabList", back_populates="downloads")
