from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Boolean, DateTime, Text
from challist.db import Base, JSONDoc
from challist.models.level import _utcnow


class UserActivity(Base):
    """
    Per-user record keyed by the identity provider's user id.

    completed_levels: [{"level_id", "video_ref", "completed_at", "is_verifier"}]
    completed_packs:  [{"pack_id", "completed_at"}]
    Both are JSON lists rewritten as a whole on every change (single-row atomic).
    """
    __tablename__ = "user_activity"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str | None] = mapped_column(String(120), nullable=True, index=True)
    avatar: Mapped[str | None] = mapped_column(Text(), nullable=True)
    online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_online: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=_utcnow)

    completed_levels: Mapped[list] = mapped_column(JSONDoc, nullable=False, default=list)
    completed_packs: Mapped[list] = mapped_column(JSONDoc, nullable=False, default=list)
