from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from platform_engine.container import init_db
from platform_engine.db import TransactionRunner, make_engine, make_sessionmaker
from platform_engine.models import Competition
from platform_engine.repositories.material_repo import MaterialRepo
from platform_engine.schemas.material import UploadedFile
from platform_engine.services.material_service import MaterialsService
from platform_engine.utils.dates import UTC

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
PAST = NOW - timedelta(days=30)
FUTURE = NOW + timedelta(days=30)


class FrozenClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture()
async def engine(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'materials.sqlite'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture()
def sessions(engine):
    return make_sessionmaker(engine)


@pytest.fixture()
def clock():
    return FrozenClock(NOW)


@pytest.fixture()
def repo(sessions):
    return MaterialRepo(sessions)


@pytest.fixture()
def service(repo, sessions, clock):
    return MaterialsService(repo, TransactionRunner(sessions), clock=clock)


async def _add_competition(sessions, name: str) -> str:
    async with sessions() as s, s.begin():
        c = Competition(name=name)
        s.add(c)
    return c.id


@pytest.fixture()
async def competition_id(sessions):
    return await _add_competition(sessions, "Spring Cup")


@pytest.fixture()
async def other_competition_id(sessions):
    return await _add_competition(sessions, "Autumn Cup")


def upload(data: bytes = b"%PDF-1.4 test", name: str = "rules.pdf") -> UploadedFile:
    return UploadedFile(buffer=data, originalname=name, mimetype="application/pdf")
