# platform_engine/services/material_service.py
from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Callable, Optional

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from platform_engine.db import TransactionRunner
from platform_engine.errors import (
    MaterialNotFoundError,
    MaterialValidationError,
    StoreValidationError,
    WrongParameterError,
)
from platform_engine.models.material import Material
from platform_engine.repositories.material_repo import (
    DOWNLOAD_FIELDS,
    PUBLIC_FIELDS,
    MaterialRepo,
    by_key,
    release_filter,
)
from platform_engine.schemas.material import MaterialDownload, MaterialOut
from platform_engine.utils.dates import now_utc

logger = logging.getLogger(__name__)

# клиент не может их менять никогда
_PROTECTED_FIELDS = {"id", "competition_id", "created_at", "updated_at", "data_file"}


def _require_id(value: Any, name: str) -> None:
    if not isinstance(value, str) or len(value) <= 0:
        raise WrongParameterError(name)


def _file_buffer(file: Any) -> Optional[bytes]:
    if file is None:
        return None
    if isinstance(file, Mapping):
        buf = file.get("buffer")
    else:
        buf = getattr(file, "buffer", None)
    if isinstance(buf, (bytes, bytearray, memoryview)):
        return bytes(buf)
    return None


def _patch_values(patch: Any) -> Optional[dict[str, Any]]:
    if isinstance(patch, BaseModel):
        return patch.model_dump(exclude_unset=True)
    if isinstance(patch, Mapping):
        return dict(patch)
    return None


class MaterialsService:
    """
    CRUD материалов соревнования.
      - list/get/download — чтение без транзакции
      - update/remove — проверка существования и запись в одной транзакции
    Скрытые (release_at в будущем) видны только с include_hidden=True.
    """

    def __init__(
        self,
        repo: MaterialRepo,
        tx: TransactionRunner,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self.repo = repo
        self.tx = tx
        self.clock = clock

    async def list_materials(self, competition_id: str, include_hidden: bool = False) -> list[MaterialOut]:
        _require_id(competition_id, "competition_id")

        logger.debug(
            "list_materials(): competition_id=%s include_hidden=%s",
            competition_id, include_hidden,
            extra={"competition_id": competition_id},
        )

        where = [Material.competition_id == competition_id]
        if not include_hidden:
            where.append(release_filter(self.clock()))

        items = await self.repo.find_many(
            where,
            order_by=[Material.filename.asc()],
            fields=PUBLIC_FIELDS,
        )
        return [MaterialOut.model_validate(m) for m in items]

    async def get_material(self, competition_id: str, material_id: str) -> MaterialOut:
        """Карточка по id. Фильтр по release_at тут не применяется."""
        _require_id(competition_id, "competition_id")
        _require_id(material_id, "material_id")

        logger.debug(
            "get_material(): competition_id=%s material_id=%s",
            competition_id, material_id,
            extra={"competition_id": competition_id, "material_id": material_id},
        )

        material = await self.repo.find_one(by_key(competition_id, material_id), fields=PUBLIC_FIELDS)
        if material is None:
            raise MaterialNotFoundError(material_id)
        return MaterialOut.model_validate(material)

    async def get_material_download(
        self,
        competition_id: str,
        material_id: str,
        include_hidden: bool = False,
    ) -> MaterialDownload:
        _require_id(competition_id, "competition_id")
        _require_id(material_id, "material_id")

        logger.debug(
            "get_material_download(): competition_id=%s material_id=%s include_hidden=%s",
            competition_id, material_id, include_hidden,
            extra={"competition_id": competition_id, "material_id": material_id},
        )

        where = by_key(competition_id, material_id)
        if not include_hidden:
            where.append(release_filter(self.clock()))

        material = await self.repo.find_one(where, fields=DOWNLOAD_FIELDS)
        # скрытый == отсутствующий
        if material is None:
            raise MaterialNotFoundError(material_id)
        return MaterialDownload.model_validate(material)

    async def create_material(self, competition_id: str, filename: str, file: Any) -> MaterialOut:
        _require_id(competition_id, "competition_id")
        if not isinstance(filename, str) or len(filename) <= 0:
            raise WrongParameterError("filename")
        data = _file_buffer(file)
        if data is None:
            raise WrongParameterError("file")

        logger.debug(
            "create_material(): competition_id=%s filename=%s file.length=%d",
            competition_id, filename, len(data),
            extra={"competition_id": competition_id},
        )

        try:
            material = await self.repo.create({
                "filename": filename,
                "competition_id": competition_id,
                "data_file": data,
            })
        except StoreValidationError as e:
            raise MaterialValidationError(str(e)) from e

        logger.info(
            "material created: id=%s bytes=%d", material.id, len(data),
            extra={"competition_id": competition_id, "material_id": material.id},
        )
        return MaterialOut.model_validate(material)

    async def update_material(self, competition_id: str, material_id: str, patch: Any) -> MaterialOut:
        """
        Полная замена изменяемых полей: нет release_at/description в patch —
        значит сбросить в null, а не оставить как было.
        """
        _require_id(competition_id, "competition_id")
        _require_id(material_id, "material_id")
        raw = _patch_values(patch)
        if raw is None:
            raise WrongParameterError("patch")

        logger.debug(
            "update_material(): competition_id=%s material_id=%s",
            competition_id, material_id,
            extra={"competition_id": competition_id, "material_id": material_id},
        )

        async def unit(session: AsyncSession) -> MaterialOut:
            material = await self.repo.find_one(
                by_key(competition_id, material_id),
                fields=(Material.id, Material.data_file),
                tx=session,
                lock=True,
            )
            if material is None:
                raise MaterialNotFoundError(material_id)

            values = {k: v for k, v in raw.items() if k not in _PROTECTED_FIELDS}
            if not raw.get("release_at"):
                values["release_at"] = None
            if not raw.get("description"):
                values["description"] = None

            try:
                material = await self.repo.update(material, values, session)
            except StoreValidationError as e:
                raise MaterialValidationError(str(e)) from e
            return MaterialOut.model_validate(material)

        return await self.tx.run(unit)

    async def remove_material(self, competition_id: str, material_id: str) -> None:
        _require_id(competition_id, "competition_id")
        _require_id(material_id, "material_id")

        logger.debug(
            "remove_material(): competition_id=%s material_id=%s",
            competition_id, material_id,
            extra={"competition_id": competition_id, "material_id": material_id},
        )

        async def unit(session: AsyncSession) -> None:
            material = await self.repo.find_one(
                by_key(competition_id, material_id),
                fields=(Material.id,),
                tx=session,
                lock=True,
            )
            if material is None:
                raise MaterialNotFoundError(material_id)
            await self.repo.delete(material, session)

        await self.tx.run(unit)
        logger.info(
            "material removed: id=%s", material_id,
            extra={"competition_id": competition_id, "material_id": material_id},
        )
