"""
Get Yummy Backend - Recipe SQLAlchemy Models
============================================

What:  `recipes` and its three owned child tables: `ingredients`, `steps`,
       `tags`.
How:   Children are mapped with `cascade="all, delete-orphan"`; removing a
       child from its collection deletes the row on flush. RecipeService
       relies on that when it applies a reconciliation plan.

Invariants:
    - recipes.name is globally unique (unique index)
    - ingredients and steps are ordered by `position`, the index in the
      most recently submitted list
    - only the owner or an admin may mutate or delete a recipe (service layer)
"""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from getyummy.database import Base
from getyummy.utils.clock import utcnow

if TYPE_CHECKING:
    from getyummy.models.favorite import Favorite
    from getyummy.models.user import User


class Recipe(Base):
    __tablename__ = "recipes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)

    # Free-form date string chosen by the author (e.g. "2025-03-14")
    date: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # ── Timings ───────────────────────────────────────────────────────────
    # Value/unit pairs, e.g. (20, "min"); units are free text from the UI
    preparation_time_value: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    preparation_time_unit: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    baking_time_value: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    baking_time_unit: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    resting_time_value: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    resting_time_unit: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    thermostat: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    number_of_persons: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    link: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    owner_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    owner: Mapped["User"] = relationship(back_populates="recipes")

    # Ingredients and steps come back in the order of the last submitted list
    ingredients: Mapped[List["Ingredient"]] = relationship(
        back_populates="recipe", cascade="all, delete-orphan", order_by="Ingredient.position"
    )
    steps: Mapped[List["Step"]] = relationship(
        back_populates="recipe", cascade="all, delete-orphan", order_by="Step.position"
    )
    tags: Mapped[List["Tag"]] = relationship(
        back_populates="recipe", cascade="all, delete-orphan", order_by="Tag.id"
    )
    favorites: Mapped[List["Favorite"]] = relationship(
        back_populates="recipe", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Recipe(id={self.id}, name='{self.name}', owner_id={self.owner_id})>"


class Ingredient(Base):
    __tablename__ = "ingredients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    unit: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    # Quantity as typed ("200", "1/2", "a pinch")
    value: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    # Index in the submitted list, rewritten on every update
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    recipe_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )

    recipe: Mapped[Recipe] = relationship(back_populates="ingredients")


class Step(Base):
    __tablename__ = "steps"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    recipe_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )

    recipe: Mapped[Recipe] = relationship(back_populates="steps")


class Tag(Base):
    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    value: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    recipe_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )

    recipe: Mapped[Recipe] = relationship(back_populates="tags")
