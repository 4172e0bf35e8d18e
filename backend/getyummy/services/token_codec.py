"""
Get Yummy Backend - JWT Token Codec
===================================

What:  Signs and verifies the two JWT kinds used by the API.
How:   PyJWT, HS256 by default. Each kind has its own secret and lifetime
       and carries a `type` claim; verification checks both, so an access
       token never passes as a refresh token (or the reverse) even when an
       operator configures the same secret twice.
Who:   AuthService (login, refresh) and the auth dependencies.

Claims:
    access:   sub=<user id>, email, is_admin, type="access",  iat, exp
    refresh:  sub=<user id>, jti=<token id>,  type="refresh", iat, exp

The refresh `jti` is the opaque id stored in `refresh_tokens.token_id`;
the signed token itself is never persisted.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import jwt

from getyummy.config import Settings
from getyummy.exceptions import InvalidTokenError
from getyummy.utils.clock import utcnow

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


@dataclass(frozen=True)
class AccessClaims:
    user_id: int
    email: str
    is_admin: bool


@dataclass(frozen=True)
class RefreshClaims:
    user_id: int
    token_id: str


class TokenCodec:
    """
    Stateless signer/verifier built once from Settings at app startup.

    `now` parameters exist so callers (and tests) can issue tokens relative
    to a fixed instant; verification always uses the current time.
    """

    def __init__(self, settings: Settings):
        self._access_secret = settings.jwt_access_secret
        self._refresh_secret = settings.jwt_refresh_secret
        self._algorithm = settings.jwt_algorithm
        self.access_ttl = timedelta(minutes=settings.access_token_ttl_minutes)
        self.refresh_ttl = timedelta(days=settings.refresh_token_ttl_days)

    # ── Issue ─────────────────────────────────────────────────────────────

    def issue_access(
        self,
        user_id: int,
        email: str,
        is_admin: bool,
        now: Optional[datetime] = None,
    ) -> str:
        issued = now or utcnow()
        payload = {
            "sub": str(user_id),
            "email": email,
            "is_admin": bool(is_admin),
            "type": ACCESS_TOKEN_TYPE,
            "iat": issued,
            "exp": issued + self.access_ttl,
        }
        return jwt.encode(payload, self._access_secret, algorithm=self._algorithm)

    def issue_refresh(
        self,
        user_id: int,
        token_id: str,
        now: Optional[datetime] = None,
    ) -> str:
        issued = now or utcnow()
        payload = {
            "sub": str(user_id),
            "jti": token_id,
            "type": REFRESH_TOKEN_TYPE,
            "iat": issued,
            "exp": issued + self.refresh_ttl,
        }
        return jwt.encode(payload, self._refresh_secret, algorithm=self._algorithm)

    # ── Verify ────────────────────────────────────────────────────────────

    def verify_access(self, token: str) -> AccessClaims:
        """
        Decode an access token.

        Raises:
            InvalidTokenError: bad signature, expired, malformed, or not an access token
        """
        payload = self._decode(token, self._access_secret, ACCESS_TOKEN_TYPE, ("sub", "email"))
        try:
            return AccessClaims(
                user_id=int(payload["sub"]),
                email=str(payload["email"]),
                is_admin=bool(payload.get("is_admin", False)),
            )
        except (TypeError, ValueError):
            raise InvalidTokenError()

    def verify_refresh(self, token: str) -> RefreshClaims:
        """
        Decode a refresh token. Does not consult the credential store.

        Raises:
            InvalidTokenError: bad signature, expired, malformed, or not a refresh token
        """
        payload = self._decode(token, self._refresh_secret, REFRESH_TOKEN_TYPE, ("sub", "jti"))
        try:
            return RefreshClaims(user_id=int(payload["sub"]), token_id=str(payload["jti"]))
        except (TypeError, ValueError):
            raise InvalidTokenError()

    def _decode(
        self,
        token: str,
        secret: str,
        expected_type: str,
        required: tuple,
    ) -> Dict[str, Any]:
        if not token:
            raise InvalidTokenError("Token is missing")
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat", *required]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidTokenError("Token has expired")
        except jwt.PyJWTError as e:
            logger.debug("Rejected %s token: %s", expected_type, type(e).__name__)
            raise InvalidTokenError()

        if payload.get("type") != expected_type:
            raise InvalidTokenError()
        return payload
