from sqlalchemy import Column, DateTime, Integer, String, func
from sqlalchemy.orm import relationship

from .base import Base


class VocabList(Base):
    __tablename__ = "vocab_lists"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    json_url = Column(String(500), nullable=False)
    version = Column(String(20), nullable=False, default="1.0")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    downloads = relationship("UserVocabDownload", back_populates="vocab_list", passive_deletes=True)
