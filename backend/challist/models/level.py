from __future__ import annotations
from datetime import datetime, timezone
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Text, DateTime, func
from challist.db import Base, JSONDoc


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Level(Base):
    """
    One ranked level of the challenge list.

    `id` is the external level id (stable); `placement` is the 1-indexed rank and
    the only sort key. Placement is NOT unique at the table level:
    a partially applied shift must stay representable so the auditor can see it.
    Points are never stored, see services.scoring.
    """
    __tablename__ = "levels"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    placement: Mapped[int] = mapped_column(Integer, index=True, nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    creator: Mapped[str] = mapped_column(String(120), nullable=False)
    verifier: Mapped[str] = mapped_column(String(120), nullable=False)
    video_ref: Mapped[str | None] = mapped_column(String(32), nullable=True)  # 11-char YouTube id

    difficulty: Mapped[str] = mapped_column(String(32), nullable=False)
    gamemode: Mapped[str] = mapped_column(String(32), nullable=False)
    decoration_style: Mapped[str] = mapped_column(String(32), nullable=False)
    extra_tags: Mapped[list] = mapped_column(JSONDoc, nullable=False, default=list)

    description: Mapped[str | None] = mapped_column(Text(), nullable=True)
    enjoyment_ratings: Mapped[list] = mapped_column(JSONDoc, nullable=False, default=list)

    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
