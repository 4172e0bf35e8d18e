"""
Get Yummy Backend - User SQLAlchemy Model
=========================================

What:  ORM model for the `users` table.
Who:   AuthService (register, login, password reset), UserService
       (profile, admin promotion) and every ownership check.

Lifecycle:
    1. Created at registration (status='active', is_admin=False)
    2. Mutated on profile update, admin promotion or password reset
    3. Deleted explicitly; tokens, recipes and favorites go with it
"""

from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import Boolean, DateTime, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from getyummy.database import Base
from getyummy.utils.clock import utcnow

if TYPE_CHECKING:
    from getyummy.models.favorite import Favorite
    from getyummy.models.recipe import Recipe
    from getyummy.models.token import PasswordResetToken, RefreshToken


class User(Base):
    """A registered account. `password_hash` is a bcrypt hash and never leaves the service layer."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Unique login identifier; stored as submitted (lower-cased by the service)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)

    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    is_admin: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    # Values: 'active' (the only status the API assigns today)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="active",
        server_default=text("'active'"),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    # ── Owned rows ────────────────────────────────────────────────────────
    # ORM cascades mirror the ON DELETE CASCADE foreign keys
    recipes: Mapped[List["Recipe"]] = relationship(
        back_populates="owner", cascade="all, delete-orphan"
    )
    refresh_tokens: Mapped[List["RefreshToken"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    password_reset_tokens: Mapped[List["PasswordResetToken"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    favorites: Mapped[List["Favorite"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', is_admin={self.is_admin})>"
