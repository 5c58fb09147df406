from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Mapping, Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import load_only
from sqlalchemy.sql.elements import ColumnElement

from platform_engine.errors import StoreValidationError
from platform_engine.models.material import Material

# всё, кроме BLOB
PUBLIC_FIELDS = (
    Material.id,
    Material.competition_id,
    Material.filename,
    Material.description,
    Material.release_at,
    Material.created_at,
    Material.updated_at,
)
DOWNLOAD_FIELDS = (Material.id, Material.filename, Material.data_file)

# что вообще можно менять через update
MUTABLE_FIELDS = ("filename", "description", "release_at")


def release_filter(now: datetime) -> ColumnElement[bool]:
    """Видимость: release_at не задан или уже наступил (<= now)."""
    return or_(Material.release_at.is_(None), Material.release_at <= now)


def by_key(competition_id: str, material_id: str) -> list[ColumnElement[bool]]:
    return [Material.competition_id == competition_id, Material.id == material_id]


class MaterialRepo:
    """
    Стор материалов поверх async SQLAlchemy.
    Без tx каждый вызов открывает свою короткую сессию;
    с tx работает в переданной сессии (транзакцией управляет TransactionRunner).
    """

    def __init__(self, sessions: async_sessionmaker[AsyncSession]) -> None:
        self.sessions = sessions

    @asynccontextmanager
    async def _write_scope(self, tx: Optional[AsyncSession]) -> AsyncIterator[AsyncSession]:
        if tx is not None:
            yield tx
            return
        async with self.sessions() as s:
            async with s.begin():
                yield s

    async def find_many(
        self,
        where: Sequence[ColumnElement[bool]],
        order_by: Sequence[Any] = (),
        fields: Optional[Sequence[Any]] = None,
    ) -> list[Material]:
        q = select(Material).where(*where).order_by(*order_by)
        if fields:
            q = q.options(load_only(*fields))
        async with self.sessions() as s:
            res = await s.execute(q)
            return list(res.scalars().all())

    async def find_one(
        self,
        where: Sequence[ColumnElement[bool]],
        fields: Optional[Sequence[Any]] = None,
        tx: Optional[AsyncSession] = None,
        lock: bool = False,
    ) -> Optional[Material]:
        q = select(Material).where(*where).limit(1)
        if fields:
            q = q.options(load_only(*fields))
        if lock:
            # SELECT ... FOR UPDATE: конкурент ждёт commit и потом не найдёт строку
            q = q.with_for_update()

        if tx is not None:
            res = await tx.execute(q)
            return res.scalar_one_or_none()

        async with self.sessions() as s:
            res = await s.execute(q)
            return res.scalar_one_or_none()

    async def create(self, values: Mapping[str, Any], tx: Optional[AsyncSession] = None) -> Material:
        async with self._write_scope(tx) as s:
            material = Material(**values)
            s.add(material)
            try:
                await s.flush()
            except (IntegrityError, DataError) as e:
                raise StoreValidationError(str(e.orig)) from e
            await s.refresh(material)
            return material

    async def update(self, record: Material, values: Mapping[str, Any], tx: AsyncSession) -> Material:
        for key, value in values.items():
            if key in MUTABLE_FIELDS:
                setattr(record, key, value)
        try:
            await tx.flush()
        except (IntegrityError, DataError) as e:
            raise StoreValidationError(str(e.orig)) from e
        # load_only из find_one переживает обычный refresh: колонки называем явно
        await tx.refresh(record, attribute_names=[c.key for c in PUBLIC_FIELDS])
        return record

    async def delete(self, record: Material, tx: AsyncSession) -> None:
        await tx.delete(record)
        await tx.flush()
