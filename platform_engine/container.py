# platform_engine/container.py
from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from platform_engine.config import settings
from platform_engine.db import TransactionRunner, get_engine, get_sessionmaker, state
from platform_engine.models import Base  # через models/__init__: все таблицы в metadata

from platform_engine.repositories.material_repo import MaterialRepo
from platform_engine.services.material_service import MaterialsService

logger = logging.getLogger(__name__)


async def init_db(engine: Optional[AsyncEngine] = None) -> None:
    """
    Dev-инициализация БД: создаём таблицы, если их нет.
    В проде схемой владеют миграции.
    """
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def build_services(sessions: Optional[async_sessionmaker[AsyncSession]] = None) -> dict[str, Any]:
    """
    Единая сборка сервисов и репозиториев. Возвращаем словарь.
    """
    sessions = sessions or get_sessionmaker()

    # repos
    materials_repo = MaterialRepo(sessions)

    # services
    materials_svc = MaterialsService(materials_repo, TransactionRunner(sessions))

    return {
        "materials": materials_svc,
        "repos": {
            "materials": materials_repo,
        },
    }


async def startup() -> dict[str, Any]:
    if settings.INIT_DB_ON_START:
        await init_db()
        logger.info("DB init done (create_all enabled by ENV)")
    else:
        logger.info("DB init skipped (schema is managed by migrations)")
    return build_services()


async def dispose() -> None:
    if state.engine is not None:
        await state.engine.dispose()
        state.engine = None
        state.session_factory = None
