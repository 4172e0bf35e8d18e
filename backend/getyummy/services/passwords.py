"""
Get Yummy Backend - Password Hashing & Policy
=============================================

What:  bcrypt hashing (random salt per hash) and the strength policy applied
       when a password is reset.
How:   bcrypt is CPU-bound, so the async helpers run it in Starlette's
       threadpool instead of on the event loop.

Policy (reset only):
    - at least 8 characters
    - at least one uppercase letter, one lowercase letter, one digit
    - at least one symbol from SPECIAL_CHARACTERS
"""

import logging
import re
from typing import List

import bcrypt
from starlette.concurrency import run_in_threadpool

from getyummy.exceptions import ValidationError

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
SPECIAL_CHARACTERS = '!@#$%^&*(),.?":{}|<>'

_POLICY_RULES = (
    (re.compile(r"[A-Z]"), "one uppercase letter"),
    (re.compile(r"[a-z]"), "one lowercase letter"),
    (re.compile(r"[0-9]"), "one digit"),
    (re.compile("[" + re.escape(SPECIAL_CHARACTERS) + "]"), f"one special character ({SPECIAL_CHARACTERS})"),
)


def hash_password(password: str, rounds: int = 10) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison; a malformed stored hash counts as a mismatch."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


async def hash_password_async(password: str, rounds: int = 10) -> str:
    return await run_in_threadpool(hash_password, password, rounds)


async def verify_password_async(password: str, password_hash: str) -> bool:
    return await run_in_threadpool(verify_password, password, password_hash)


def password_policy_violations(password: str) -> List[str]:
    """Returns the unmet requirements, empty when the password is acceptable."""
    missing = []
    if len(password) < MIN_PASSWORD_LENGTH:
        missing.append(f"at least {MIN_PASSWORD_LENGTH} characters")
    for pattern, description in _POLICY_RULES:
        if not pattern.search(password):
            missing.append(description)
    return missing


def ensure_password_policy(password: str) -> None:
    """
    Raises:
        ValidationError: listing every unmet requirement
    """
    missing = password_policy_violations(password)
    if missing:
        raise ValidationError(
            message="Password must contain " + ", ".join(missing) + ".",
            field="newPassword",
            context={"missing": missing},
        )
