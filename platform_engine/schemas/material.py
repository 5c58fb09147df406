"""Pydantic schemas for materials."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UploadedFile(BaseModel):
    """Загруженный файл: сырые байты + то, что прислал клиент."""
    buffer: bytes = Field(..., description="Raw file content")
    originalname: Optional[str] = None
    mimetype: Optional[str] = None


class MaterialPatch(BaseModel):
    """
    Изменяемые поля материала. Update — полная замена:
    не переданные release_at/description сбрасываются в null.
    """
    model_config = ConfigDict(extra="ignore")

    filename: Optional[str] = None
    description: Optional[str] = None
    release_at: Optional[datetime] = None


class MaterialOut(BaseModel):
    """Material metadata (no file data)."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    competition_id: str
    filename: str
    description: Optional[str] = None
    release_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class MaterialDownload(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    filename: str
    data_file: bytes
