import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from notesync.database import Base


class ShareLink(Base):
    __tablename__ = "share_links"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    note_id: Mapped[str] = mapped_column(ForeignKey("notes.id"), index=True, nullable=False)
    url: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    permissions: Mapped[str] = mapped_column(String(16), default="view", nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(default=None, nullable=True)
    access_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
