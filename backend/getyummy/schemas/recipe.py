"""
Get Yummy Backend - Recipe Schemas
==================================

What:  The recipe document accepted by POST/PUT /recipes and the shapes
       returned by every recipe read.

Child items (ingredients, steps, tags) may carry an `id`:
    - on create, ids are ignored
    - on update, an item with an id updates that stored row, an item
      without one is created, and stored rows whose id is not resubmitted
      are deleted. Clients always send the complete child lists.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class IngredientIn(BaseModel):
    id: Optional[int] = None
    name: str = Field(min_length=1, max_length=200)
    unit: Optional[str] = Field(default=None, max_length=50)
    value: Optional[str] = Field(default=None, max_length=50)

    @field_validator("value", mode="before")
    @classmethod
    def coerce_value(cls, v: Any) -> Any:
        """The UI sends quantities as numbers or strings; they are stored as typed."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class StepIn(BaseModel):
    id: Optional[int] = None
    description: str = Field(min_length=1)
    image: Optional[str] = Field(default=None, max_length=500)


class TagIn(BaseModel):
    id: Optional[int] = None
    value: str = Field(min_length=1, max_length=50)


class RecipeWrite(BaseModel):
    """Complete recipe document for create (POST) and full replacement (PUT)."""
    name: str = Field(min_length=1, max_length=200, json_schema_extra={"example": "Tarte Tatin"})
    date: Optional[str] = Field(default=None, max_length=50)
    image: Optional[str] = Field(default=None, max_length=500)
    preparation_time_value: Optional[int] = Field(default=None, ge=0)
    preparation_time_unit: Optional[str] = Field(default=None, max_length=20)
    baking_time_value: Optional[int] = Field(default=None, ge=0)
    baking_time_unit: Optional[str] = Field(default=None, max_length=20)
    thermostat: Optional[str] = Field(default=None, max_length=20)
    resting_time_value: Optional[int] = Field(default=None, ge=0)
    resting_time_unit: Optional[str] = Field(default=None, max_length=20)
    number_of_persons: Optional[int] = Field(default=None, ge=1)
    link: Optional[str] = Field(default=None, max_length=500)
    ingredients: List[IngredientIn] = Field(default_factory=list)
    steps: List[StepIn] = Field(default_factory=list)
    tags: List[TagIn] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Recipe name must not be blank")
        return v


# Scalar columns copied verbatim from RecipeWrite onto the Recipe row
RECIPE_SCALAR_FIELDS = (
    "name",
    "date",
    "image",
    "preparation_time_value",
    "preparation_time_unit",
    "baking_time_value",
    "baking_time_unit",
    "thermostat",
    "resting_time_value",
    "resting_time_unit",
    "number_of_persons",
    "link",
)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class IngredientOut(BaseModel):
    id: int
    name: str
    unit: Optional[str] = None
    value: Optional[str] = None
    position: int = 0

    model_config = {"from_attributes": True}


class StepOut(BaseModel):
    id: int
    description: str
    image: Optional[str] = None
    position: int = 0

    model_config = {"from_attributes": True}


class TagOut(BaseModel):
    id: int
    value: str

    model_config = {"from_attributes": True}


class OwnerSummary(BaseModel):
    id: int
    name: str
    email: str

    model_config = {"from_attributes": True}


class RecipeResponse(BaseModel):
    id: int
    name: str
    date: Optional[str] = None
    image: Optional[str] = None
    preparation_time_value: Optional[int] = None
    preparation_time_unit: Optional[str] = None
    baking_time_value: Optional[int] = None
    baking_time_unit: Optional[str] = None
    thermostat: Optional[str] = None
    resting_time_value: Optional[int] = None
    resting_time_unit: Optional[str] = None
    number_of_persons: Optional[int] = None
    link: Optional[str] = None
    owner_id: int
    owner: OwnerSummary
    created_at: datetime
    ingredients: List[IngredientOut] = Field(default_factory=list)
    steps: List[StepOut] = Field(default_factory=list)
    tags: List[TagOut] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class RecipeDetailResponse(RecipeResponse):
    """Single-recipe read; `can_edit` reflects the (possibly anonymous) viewer."""
    can_edit: bool = False
