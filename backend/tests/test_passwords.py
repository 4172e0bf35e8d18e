"""
Get Yummy Backend - Password Hashing & Policy Tests
===================================================
"""

import pytest

from getyummy.exceptions import ValidationError
from getyummy.services.passwords import (
    ensure_password_policy,
    hash_password,
    hash_password_async,
    password_policy_violations,
    verify_password,
    verify_password_async,
)


class TestHashing:

    def test_hash_verifies(self):
        hashed = hash_password("Sup3r$ecret", rounds=4)
        assert hashed != "Sup3r$ecret"
        assert verify_password("Sup3r$ecret", hashed)

    def test_wrong_password_fails(self):
        hashed = hash_password("Sup3r$ecret", rounds=4)
        assert not verify_password("sup3r$ecret", hashed)

    def test_salted(self):
        assert hash_password("same", rounds=4) != hash_password("same", rounds=4)

    def test_malformed_hash_is_a_mismatch(self):
        assert verify_password("anything", "not-a-bcrypt-hash") is False

    @pytest.mark.asyncio
    async def test_async_helpers(self):
        hashed = await hash_password_async("Sup3r$ecret", 4)
        assert await verify_password_async("Sup3r$ecret", hashed)


class TestPolicy:

    def test_strong_password_accepted(self):
        assert password_policy_violations("Str0ng!pass") == []
        ensure_password_policy("Str0ng!pass")

    @pytest.mark.parametrize(
        "password, missing",
        [
            ("Sh0rt!", "at least 8 characters"),
            ("nouppercase1!", "one uppercase letter"),
            ("NOLOWERCASE1!", "one lowercase letter"),
            ("NoDigitsHere!", "one digit"),
            ("NoSymbols123", "one special character"),
        ],
    )
    def test_each_rule(self, password, missing):
        violations = password_policy_violations(password)
        assert len(violations) == 1
        assert violations[0].startswith(missing)

    def test_all_violations_reported(self):
        with pytest.raises(ValidationError) as exc_info:
            ensure_password_policy("abc")
        assert exc_info.value.field == "newPassword"
        assert len(exc_info.value.context["missing"]) == 4
