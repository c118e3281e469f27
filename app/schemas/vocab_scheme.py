from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class VocabListRead(BaseModel):
    id: int
    name: str
    json_url: str = Field(..., serialization_alias="jsonUrl")
    version: str
    created_at: Optional[datetime] = Field(None, serialization_alias="createdAt")
    updated_at: Optional[datetime] = Field(None, serialization_alias="updatedAt")

    model_config = ConfigDict(from_attributes=True)


class VocabDownloadRead(BaseModel):
    json_url: str = Field(..., alias="jsonUrl")
    name: str

    model_config = ConfigDict(populate_by_name=True)


class DownloadHistoryItem(BaseModel):
    vocab_list_id: int = Field(..., alias="vocabListId")
    name: str
    version: str
    downloaded_at: datetime = Field(..., alias="downloadedAt")

    model_config = ConfigDict(populate_by_name=True)
