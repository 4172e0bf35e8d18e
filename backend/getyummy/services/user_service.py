"""
Get Yummy Backend - User Service
================================

Profile reads and edits, account deletion and admin promotion. Deleting a
user cascades to their recipes, favorites and stored tokens.
"""

import logging
from typing import List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from getyummy.exceptions import ConflictError, ForbiddenError, NotFoundError, UnauthorizedError
from getyummy.models.user import User
from getyummy.schemas.user import UserUpdate
from getyummy.services.token_codec import AccessClaims

logger = logging.getLogger(__name__)


class UserService:

    async def list_users(self, db: AsyncSession) -> List[User]:
        result = await db.execute(select(User).order_by(User.id))
        return list(result.scalars().all())

    async def get_user(self, db: AsyncSession, user_id: int) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return user

    async def ensure_account_exists(self, db: AsyncSession, user_id: int) -> None:
        """
        For writes that reference the caller by id. An access token outlives
        account deletion by up to its TTL, so the claims alone are not proof.

        Raises:
            UnauthorizedError: the account behind the token was deleted
        """
        if await db.get(User, user_id) is None:
            logger.info("Write rejected: account %s no longer exists", user_id)
            raise UnauthorizedError("This account no longer exists")

    async def update_user(self, db: AsyncSession, user_id: int, payload: UserUpdate, actor: AccessClaims) -> User:
        """
        Raises:
            ForbiddenError: actor is neither the user nor an admin
            NotFoundError:  no such user
            ConflictError:  the new email belongs to another account
        """
        self._ensure_self_or_admin(user_id, actor)
        user = await self.get_user(db, user_id)

        if payload.email is not None and payload.email != user.email:
            taken = await db.execute(
                select(func.count(User.id)).where(User.email == payload.email, User.id != user.id)
            )
            if taken.scalar():
                raise ConflictError("This email address is already registered")
            user.email = payload.email
        if payload.name is not None:
            user.name = payload.name.strip()

        await db.flush()
        logger.info("User %s updated by user %s", user.id, actor.user_id)
        return user

    async def delete_user(self, db: AsyncSession, user_id: int, actor: AccessClaims) -> None:
        self._ensure_self_or_admin(user_id, actor)
        user = await self.get_user(db, user_id)
        await db.delete(user)
        await db.flush()
        logger.info("User %s deleted by user %s", user_id, actor.user_id)

    async def set_admin(self, db: AsyncSession, user_id: int, is_admin: bool = True) -> User:
        user = await self.get_user(db, user_id)
        user.is_admin = is_admin
        await db.flush()
        logger.info("User %s admin flag set to %s", user_id, is_admin)
        return user

    @staticmethod
    def _ensure_self_or_admin(user_id: int, actor: AccessClaims) -> None:
        if actor.user_id != user_id and not actor.is_admin:
            raise ForbiddenError("You can only manage your own account")


user_service = UserService()
