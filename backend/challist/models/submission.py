from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, DateTime, func
from challist.db import Base, JSONDoc
from challist.models.level import _utcnow


def _new_id() -> str:
    return str(uuid.uuid4())


class Submission(Base):
    __tablename__ = "submissions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)

    type: Mapped[str] = mapped_column(String(16), nullable=False)          # 'level' | 'completion'
    submitter_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    submitter_name: Mapped[str] = mapped_column(String(120), nullable=False)

    status: Mapped[str] = mapped_column(String(16), index=True, nullable=False, default="pending")  # 'pending'|'approved'|'declined'

    # Validated LevelSubmission / CompletionSubmission dump
    payload: Mapped[dict] = mapped_column(JSONDoc, nullable=False, default=dict)

    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
