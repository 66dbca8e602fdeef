from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from schoolgen.core.database import Base


class KVEntry(Base):
  __tablename__ = "kv_entries"
  __table_args__ = (Index("ix_kv_entries_expires_at", "expires_at"),)

  key: Mapped[str] = mapped_column(String, primary_key=True)
  value: Mapped[str] = mapped_column(Text, nullable=False)
  # NULL means the entry never expires (archived jobs).
  expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
