"""
Get Yummy Backend - Authentication Service
==========================================

What:  Account registration, login/logout, access-token refresh, password
       reset, and refresh-token housekeeping.
How:   Composes the TokenCodec (stateless JWTs) with the credential store
       (`refresh_tokens`, `password_reset_tokens`). All writes go through the
       request session and commit together in get_db_session.
Who:   /auth routes, the lenient auth dependency, and the CLI.

Session lifecycle:
    Anonymous
      └─ login ─────────▶ Authenticated(access, refresh)   row: revoked=False
                            ├─ refresh ──▶ Authenticated(access', refresh)
                            └─ logout ───▶ Anonymous         row: revoked=True

    A refresh token is honoured iff its stored row exists for the same user,
    is not revoked and has not expired. Refresh tokens are not rotated.

Failure semantics:
    register        → ConflictError when the email is taken
    login           → UnauthorizedError for unknown email OR wrong password
    refresh         → UnauthorizedError (missing, invalid, revoked, expired)
    logout          → never fails; revocation is best effort
    forgot-password → NotFoundError for unknown email, MailDeliveryError on SMTP failure
    reset-password  → ValidationError for a weak password or bad/expired token
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Tuple

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from getyummy.config import Settings
from getyummy.database import is_unique_violation
from getyummy.exceptions import (
    ConflictError,
    InvalidTokenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from getyummy.models.token import PasswordResetToken, RefreshToken
from getyummy.models.user import User
from getyummy.schemas.auth import RegisterRequest, TokenStatsResponse
from getyummy.services.mail_service import MailService, render_password_reset_email
from getyummy.services.passwords import (
    ensure_password_policy,
    hash_password_async,
    verify_password_async,
)
from getyummy.services.token_codec import AccessClaims, TokenCodec
from getyummy.utils.clock import as_utc, utcnow

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_RESET_TOKEN = "Invalid or expired reset token"


@dataclass
class LoginResult:
    user: User
    access_token: str
    refresh_token: str


class AuthService:
    """
    Built once by create_app() from Settings, the codec and the mailer, and
    shared by every request (it holds no per-request state).
    """

    def __init__(self, settings: Settings, codec: TokenCodec, mailer: MailService):
        self.settings = settings
        self.codec = codec
        self.mailer = mailer

    # ══════════════════════════════════════════════════════════════════════
    # Accounts
    # ══════════════════════════════════════════════════════════════════════

    async def register(self, db: AsyncSession, payload: RegisterRequest) -> User:
        existing = await self._get_user_by_email(db, payload.email)
        if existing is not None:
            raise ConflictError("This email address is already registered")

        user = User(
            name=payload.name,
            email=payload.email,
            password_hash=await hash_password_async(payload.password, self.settings.bcrypt_rounds),
            status="active",
            is_admin=False,
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError as e:
            if not is_unique_violation(e):
                raise
            # Lost a race with a concurrent registration for the same email
            raise ConflictError("This email address is already registered")

        logger.info("User registered: id=%s", user.id)
        return user

    async def login(self, db: AsyncSession, email: str, password: str) -> LoginResult:
        """
        Verify credentials and open a new session.

        Every login stores its own refresh-token row; earlier sessions of the
        same user stay valid.
        """
        user = await self._get_user_by_email(db, email)
        if user is None or not await verify_password_async(password, user.password_hash):
            logger.info("Failed login attempt")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        now = utcnow()
        token_id = secrets.token_hex(32)
        db.add(
            RefreshToken(
                token_id=token_id,
                user_id=user.id,
                expires_at=now + self.codec.refresh_ttl,
                is_revoked=False,
            )
        )
        await db.flush()

        logger.info("User %s logged in", user.id)
        return LoginResult(
            user=user,
            access_token=self.codec.issue_access(user.id, user.email, user.is_admin, now=now),
            refresh_token=self.codec.issue_refresh(user.id, token_id, now=now),
        )

    # ══════════════════════════════════════════════════════════════════════
    # Refresh / Logout
    # ══════════════════════════════════════════════════════════════════════

    async def refresh(self, db: AsyncSession, refresh_token: Optional[str]) -> Tuple[AccessClaims, str]:
        """
        Mint a new access token from a refresh token.

        Returns:
            (claims, access_token) for the owning user

        Raises:
            UnauthorizedError: token missing, undecodable, or without a live stored row
        """
        if not refresh_token:
            raise UnauthorizedError("Refresh token required")

        claims = self.codec.verify_refresh(refresh_token)
        stored = await self._find_live_refresh_token(db, claims.user_id, claims.token_id)
        if stored is None:
            raise UnauthorizedError("Refresh token has been revoked or has expired")

        user = stored.user
        access_claims = AccessClaims(user_id=user.id, email=user.email, is_admin=user.is_admin)
        access_token = self.codec.issue_access(user.id, user.email, user.is_admin)
        logger.debug("Access token refreshed for user %s", user.id)
        return access_claims, access_token

    async def try_refresh(
        self, db: AsyncSession, refresh_token: Optional[str]
    ) -> Optional[Tuple[AccessClaims, str]]:
        """Same as refresh(), but None instead of an error. Used by the lenient auth policy."""
        try:
            return await self.refresh(db, refresh_token)
        except UnauthorizedError as e:
            logger.debug("Silent refresh declined: %s", e.message)
            return None

    async def logout(self, db: AsyncSession, refresh_token: Optional[str]) -> bool:
        """
        Revoke the stored row behind a refresh token, if there is one.

        Returns:
            True when a row was revoked. Missing or undecodable tokens return
            False; logout itself never fails.
        """
        if not refresh_token:
            return False
        try:
            claims = self.codec.verify_refresh(refresh_token)
        except InvalidTokenError:
            logger.debug("Logout with an undecodable refresh token; nothing to revoke")
            return False

        result = await db.execute(
            update(RefreshToken)
            .where(
                RefreshToken.token_id == claims.token_id,
                RefreshToken.user_id == claims.user_id,
                RefreshToken.is_revoked.is_(False),
            )
            .values(is_revoked=True)
            .execution_options(synchronize_session="fetch")
        )
        revoked = (result.rowcount or 0) > 0
        if revoked:
            logger.info("Refresh token revoked for user %s", claims.user_id)
        return revoked

    # ══════════════════════════════════════════════════════════════════════
    # Password Reset
    # ══════════════════════════════════════════════════════════════════════

    async def request_password_reset(self, db: AsyncSession, email: str) -> None:
        """
        Replace the user's reset token with a fresh one and email the link.

        The old token is deleted and the new one inserted in the request
        transaction; the unique constraint on user_id rejects a concurrent
        second insert.
        """
        user = await self._get_user_by_email(db, email)
        if user is None:
            raise NotFoundError(resource="user")

        token = secrets.token_hex(32)
        ttl = timedelta(minutes=self.settings.password_reset_ttl_minutes)

        await db.execute(delete(PasswordResetToken).where(PasswordResetToken.user_id == user.id))
        db.add(PasswordResetToken(token=token, user_id=user.id, expires_at=utcnow() + ttl))
        try:
            await db.flush()
        except IntegrityError as e:
            if not is_unique_violation(e):
                raise
            raise ConflictError("A password reset is already being processed for this account")

        reset_link = f"{self.settings.frontend_url.rstrip('/')}/reset-password?token={token}"
        html = render_password_reset_email(
            user_name=user.name,
            user_email=user.email,
            reset_link=reset_link,
            ttl_minutes=self.settings.password_reset_ttl_minutes,
        )
        await self.mailer.send(to=user.email, subject="Reset your Get Yummy password", html=html)
        logger.info("Password reset requested for user %s", user.id)

    async def reset_password(self, db: AsyncSession, token: str, new_password: str) -> None:
        """
        Consume a reset token and store the new password hash.

        The policy is checked before the token is looked up, so a weak
        password never burns a valid token.
        """
        ensure_password_policy(new_password)

        result = await db.execute(
            select(PasswordResetToken)
            .options(selectinload(PasswordResetToken.user))
            .where(PasswordResetToken.token == token)
        )
        stored = result.scalar_one_or_none()
        if stored is None:
            raise ValidationError(INVALID_RESET_TOKEN, field="token")

        if as_utc(stored.expires_at) <= utcnow():
            # Discard the stale token even though the request fails
            await db.delete(stored)
            await db.commit()
            raise ValidationError(INVALID_RESET_TOKEN, field="token")

        user = stored.user
        user.password_hash = await hash_password_async(new_password, self.settings.bcrypt_rounds)
        await db.delete(stored)
        await db.flush()
        logger.info("Password reset completed for user %s", user.id)

    # ══════════════════════════════════════════════════════════════════════
    # Credential Store Maintenance
    # ══════════════════════════════════════════════════════════════════════

    async def cleanup_tokens(self, db: AsyncSession) -> int:
        """Delete refresh-token rows that are expired or revoked. Returns the count."""
        result = await db.execute(
            delete(RefreshToken).where(
                or_(RefreshToken.expires_at < utcnow(), RefreshToken.is_revoked.is_(True))
            )
        )
        deleted = result.rowcount or 0
        logger.info("Cleaned up %d expired/revoked refresh tokens", deleted)
        return deleted

    async def get_token_stats(self, db: AsyncSession) -> TokenStatsResponse:
        """Counts as of now; expired-and-revoked rows land in both of those buckets."""
        now = utcnow()

        async def count(*conditions) -> int:
            query = select(func.count(RefreshToken.id))
            if conditions:
                query = query.where(*conditions)
            return (await db.execute(query)).scalar() or 0

        return TokenStatsResponse(
            total=await count(),
            active=await count(RefreshToken.expires_at > now, RefreshToken.is_revoked.is_(False)),
            expired=await count(RefreshToken.expires_at < now),
            revoked=await count(RefreshToken.is_revoked.is_(True)),
        )

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _get_user_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    async def _find_live_refresh_token(
        self, db: AsyncSession, user_id: int, token_id: str
    ) -> Optional[RefreshToken]:
        result = await db.execute(
            select(RefreshToken)
            .options(selectinload(RefreshToken.user))
            .where(
                RefreshToken.token_id == token_id,
                RefreshToken.user_id == user_id,
                RefreshToken.is_revoked.is_(False),
                RefreshToken.expires_at > utcnow(),
            )
        )
        return result.scalar_one_or_none()
