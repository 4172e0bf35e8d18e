"""
Get Yummy Backend - Image SQLAlchemy Model
==========================================

Metadata for an uploaded image. The bytes live on disk under
settings.upload_root; `path` is relative to that root so the table stays
portable between environments.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from getyummy.database import Base
from getyummy.utils.clock import utcnow


class Image(Base):
    __tablename__ = "images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Format: <unix-millis>-<random>.<ext>, e.g. 1718900000000-a1b2c3d4e5f6.png
    filename: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    path: Mapped[str] = mapped_column(String(500), nullable=False)
    content_type: Mapped[str] = mapped_column(String(100), nullable=False)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Uploader; kept when the account is deleted so recipes keep their pictures
    uploaded_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<Image(id={self.id}, filename='{self.filename}')>"
