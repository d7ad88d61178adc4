from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Text, DateTime, func
from challist.db import Base, JSONDoc
from challist.models.level import _utcnow


class Pack(Base):
    __tablename__ = "packs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[str] = mapped_column(Text(), nullable=False, default="")
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)
    bonus_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Ordered Level.id references; dangling ids are tolerated and filtered on read
    level_ids: Mapped[list] = mapped_column(JSONDoc, nullable=False, default=list)
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
