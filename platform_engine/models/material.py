# platform_engine/models/material.py
from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import String, Text, DateTime, ForeignKey, LargeBinary
from sqlalchemy.orm import Mapped, mapped_column, validates

from platform_engine.config import settings
from platform_engine.errors import StoreValidationError
from platform_engine.models.base import Base
from platform_engine.utils.dates import now_utc, parse_dt, to_utc


class Material(Base):
    """Файл соревнования. release_at=None — виден всегда, в будущем — скрыт до этой даты."""

    __tablename__ = "materials"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    competition_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("competitions.id"), nullable=False, index=True
    )

    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    release_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # BLOB; списки и карточка его не грузят (load_only), только download
    data_file: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now_utc, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False
    )

    # ---- валидаторы на уровне стора ----

    @validates("competition_id")
    def _v_competition_id(self, key, value):
        if not isinstance(value, str) or not value:
            raise StoreValidationError(f"{key}: must be a non-empty string")
        return value

    @validates("filename")
    def _v_filename(self, key, value):
        if not isinstance(value, str) or not value.strip():
            raise StoreValidationError(f"{key}: must be a non-empty string")
        if len(value) > settings.MATERIAL_FILENAME_MAX_LEN:
            raise StoreValidationError(
                f"{key}: longer than {settings.MATERIAL_FILENAME_MAX_LEN} characters"
            )
        return value

    @validates("description")
    def _v_description(self, key, value):
        if value is None:
            return None
        if not isinstance(value, str):
            raise StoreValidationError(f"{key}: must be a string")
        if len(value) > settings.MATERIAL_DESCRIPTION_MAX_LEN:
            raise StoreValidationError(
                f"{key}: longer than {settings.MATERIAL_DESCRIPTION_MAX_LEN} characters"
            )
        return value

    @validates("release_at")
    def _v_release_at(self, key, value):
        if value is None:
            return None
        if isinstance(value, datetime):
            return to_utc(value)
        if isinstance(value, str):
            try:
                return parse_dt(value)
            except ValueError:
                raise StoreValidationError(f"{key}: invalid timestamp {value!r}") from None
        raise StoreValidationError(f"{key}: invalid timestamp {value!r}")

    @validates("data_file")
    def _v_data_file(self, key, value):
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise StoreValidationError(f"{key}: must be bytes")
        value = bytes(value)
        limit = settings.MATERIAL_MAX_BYTES
        if limit and len(value) > limit:
            raise StoreValidationError(f"{key}: larger than {limit} bytes")
        return value

    def __repr__(self) -> str:
        # только уже загруженные поля: при load_only lazy-load в async упадёт
        d = self.__dict__
        return (
            f"<Material id={d.get('id')} competition={d.get('competition_id')} "
            f"filename={d.get('filename')!r} release_at={d.get('release_at')}>"
        )
