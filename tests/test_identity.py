"""Tests for the in-memory identity provider."""

import pytest

from budget_tracker.services.identity import InMemoryIdentityProvider


class TestInMemoryIdentity:
    """Tests for register/login/logout and observer notification."""

    def test_observer_gets_current_user_immediately(self):
        provider = InMemoryIdentityProvider()
        seen = []
        provider.on_auth_state_change(seen.append)
        assert seen == [None]

    @pytest.mark.asyncio
    async def test_register_signs_in(self):
        provider = InMemoryIdentityProvider()
        seen = []
        provider.on_auth_state_change(seen.append)

        result = await provider.register("Alice@Example.com", "secret1", "Alice")

        assert result.success
        assert result.user.email == "alice@example.com"
        assert result.user.display_name == "Alice"
        assert seen[-1] == result.user

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email,password,error", [
        ("not-an-email", "secret1", "Invalid email address"),
        ("a@b.c", "12345", "Password should be at least 6 characters"),
    ])
    async def test_register_rejects_bad_input(self, email, password, error):
        provider = InMemoryIdentityProvider()
        result = await provider.register(email, password)
        assert not result.success
        assert result.error == error
        assert provider.current_user is None

    @pytest.mark.asyncio
    async def test_duplicate_email(self):
        provider = InMemoryIdentityProvider()
        await provider.register("a@b.c", "secret1")
        result = await provider.register("A@B.C", "secret2")
        assert result.error == "Email already in use"

    @pytest.mark.asyncio
    async def test_login_and_logout(self):
        provider = InMemoryIdentityProvider()
        registered = await provider.register("a@b.c", "secret1")
        await provider.logout()
        assert provider.current_user is None

        bad = await provider.login("a@b.c", "wrong-password")
        good = await provider.login("a@b.c", "secret1")

        assert not bad.success
        assert good.user == registered.user
        assert provider.current_user == registered.user

    @pytest.mark.asyncio
    async def test_passwords_are_salted_per_account(self):
        provider = InMemoryIdentityProvider()
        await provider.register("a@b.c", "secret1")
        await provider.register("d@e.f", "secret1")

        _, salt_a, hash_a = provider._accounts["a@b.c"]
        _, salt_b, hash_b = provider._accounts["d@e.f"]

        assert salt_a != salt_b
        assert hash_a != hash_b
        assert b"secret1" not in hash_a

    @pytest.mark.asyncio
    async def test_unsubscribed_observer_is_not_called(self):
        provider = InMemoryIdentityProvider()
        seen = []
        stop = provider.on_auth_state_change(seen.append)
        stop()

        await provider.register("a@b.c", "secret1")

        assert seen == [None]
