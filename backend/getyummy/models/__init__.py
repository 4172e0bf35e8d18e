"""
Get Yummy Backend - ORM Models
==============================

Importing this package registers every table on `Base.metadata`, which
Alembic autogenerate and the test suite's `create_all` rely on.
"""

from getyummy.models.user import User
from getyummy.models.token import PasswordResetToken, RefreshToken
from getyummy.models.recipe import Ingredient, Recipe, Step, Tag
from getyummy.models.favorite import Favorite
from getyummy.models.image import Image

__all__ = [
    "User",
    "RefreshToken",
    "PasswordResetToken",
    "Recipe",
    "Ingredient",
    "Step",
    "Tag",
    "Favorite",
    "Image",
]
