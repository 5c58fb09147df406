# platform_engine/models/competition.py
from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from platform_engine.models.base import Base
from platform_engine.utils.dates import now_utc


class Competition(Base):
    __tablename__ = "competitions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now_utc, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Competition id={self.id} name={self.name!r}>"
