# platform_engine/db.py
from __future__ import annotations

import logging
from typing import AsyncGenerator, Awaitable, Callable, Optional, TypeVar

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from platform_engine.config import settings
from platform_engine.models.base import Base  # реэкспорт для container/тестов

logger = logging.getLogger(__name__)

T = TypeVar("T")


# === 1. Движок ===
def _enable_sqlite_fk(dbapi_connection, connection_record) -> None:
    # SQLite по умолчанию не проверяет внешние ключи
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(url: Optional[str] = None, *, echo: Optional[bool] = None) -> AsyncEngine:
    """
    Создаёт async-движок. Пример DSN: postgresql+asyncpg://app:app@db:5432/app
    sqlite:// автоматически переводится на aiosqlite (локалка и тесты).
    """
    url = url or settings.DATABASE_URL
    echo = settings.SQL_ECHO if echo is None else echo

    if url.startswith("sqlite"):
        if url.startswith("sqlite://"):
            url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        engine = create_async_engine(
            url,
            echo=echo,
            poolclass=NullPool,
            connect_args={"check_same_thread": False},
        )
        event.listen(engine.sync_engine, "connect", _enable_sqlite_fk)
        return engine

    return create_async_engine(
        url,
        echo=echo,
        pool_pre_ping=settings.DB_POOL_PRE_PING,
    )


# === 2. Сессии ===
def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


class _DBState:
    def __init__(self) -> None:
        self.engine: Optional[AsyncEngine] = None  # создаётся лениво, при первом обращении
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None


state = _DBState()


def get_engine() -> AsyncEngine:
    if state.engine is None:
        logger.info("db engine init: %s", settings.DATABASE_URL.split("@")[-1])
        state.engine = make_engine()
        state.session_factory = make_sessionmaker(state.engine)
    return state.engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    get_engine()
    if state.session_factory is None:
        raise RuntimeError("Async session factory not initialized")
    return state.session_factory


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Асинхронная сессия SQLAlchemy (депенденси для внешнего слоя)."""
    async with get_sessionmaker()() as session:
        yield session


# === 3. Транзакции ===
class TransactionRunner:
    """
    Выполняет unit of work в одной транзакции:
      - commit, если функция вернулась нормально
      - rollback на любое исключение (исключение летит дальше)
    Сессия и есть хэндл транзакции: её надо передавать во все вызовы стора.
    """

    def __init__(self, sessions: async_sessionmaker[AsyncSession]) -> None:
        self.sessions = sessions

    async def run(self, unit_of_work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async with self.sessions() as session:
            try:
                async with session.begin():
                    return await unit_of_work(session)
            except Exception as e:
                logger.debug("transaction rolled back: %s", type(e).__name__)
                raise


__all__ = [
    "Base",
    "make_engine",
    "make_sessionmaker",
    "get_engine",
    "get_sessionmaker",
    "get_session",
    "TransactionRunner",
]
