"""Tests for accounts, sessions and admin operations."""

import pytest

from weatherdesk.core.config import settings
from weatherdesk.services.accounts import (
    AccountNotFoundError,
    AccountValidationError,
    DuplicateAccountError,
    InvalidCredentialsError,
    NotAuthenticatedError,
    PermissionDeniedError,
    accounts,
)
from weatherdesk.services.admin import admin_service
from weatherdesk.services.session import sessions
from weatherdesk.services.storage import storage


@pytest.mark.asyncio
async def test_default_admin_created_when_empty(mock_redis):
    admin = await accounts.initialize_default_admin()

    assert admin is not None
    assert admin.is_admin is True
    assert admin.email == settings.default_admin_email
    assert admin.preferences.dark_mode is True
    assert await accounts.initialize_default_admin() is None
    assert len(await accounts.all()) == 1


@pytest.mark.asyncio
async def test_default_admin_skipped_when_users_exist(mock_redis):
    await accounts.register("Alice", "alice@example.com", "secret1")

    assert await accounts.initialize_default_admin() is None
    assert await accounts.find_by_email(settings.default_admin_email) is None


@pytest.mark.asyncio
async def test_register_normalizes_and_stores(mock_redis):
    user = await accounts.register("  Alice  ", "Alice@Example.COM ", "secret1")

    assert user.name == "Alice"
    assert user.email == "alice@example.com"
    assert user.is_admin is False
    assert user.preferences.dark_mode is False
    stored = await accounts.find_by_email("ALICE@example.com")
    assert stored is not None
    assert stored.id == user.id


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "name, email, password, message",
    [
        ("A", "a@example.com", "secret1", "at least 2 characters"),
        ("x" * 51, "a@example.com", "secret1", "must not exceed 50"),
        ("Alice", "not-an-email", "secret1", "valid email"),
        ("Alice", "alice@example.com", "short", "at least 6 characters"),
    ],
)
async def test_register_validation(mock_redis, name, email, password, message):
    with pytest.raises(AccountValidationError, match=message):
        await accounts.register(name, email, password)


@pytest.mark.asyncio
async def test_register_duplicate_email(mock_redis):
    await accounts.register("Alice", "alice@example.com", "secret1")

    with pytest.raises(DuplicateAccountError):
        await accounts.register("Other", "ALICE@example.com", "secret2")


@pytest.mark.asyncio
async def test_login_creates_session(mock_redis):
    user = await accounts.register("Alice", "alice@example.com", "secret1")

    session = await sessions.login("alice@example.com", "secret1")

    assert session.user_id == user.id
    assert await sessions.is_logged_in() is True
    assert (await sessions.current_user()).id == user.id
    assert await storage.get(settings.session_key) is not None


@pytest.mark.asyncio
@pytest.mark.parametrize("email, password", [("alice@example.com", "wrong!"), ("bob@example.com", "secret1")])
async def test_login_rejects_bad_credentials(mock_redis, email, password):
    await accounts.register("Alice", "alice@example.com", "secret1")

    with pytest.raises(InvalidCredentialsError, match="Invalid email or password"):
        await sessions.login(email, password)
    assert await sessions.is_logged_in() is False


@pytest.mark.asyncio
async def test_login_requires_both_fields(mock_redis):
    with pytest.raises(AccountValidationError):
        await sessions.login("", "secret1")


@pytest.mark.asyncio
async def test_logout_clears_session(mock_redis):
    await accounts.register("Alice", "alice@example.com", "secret1")
    await sessions.login("alice@example.com", "secret1")

    await sessions.logout()

    assert await sessions.current_session() is None
    with pytest.raises(NotAuthenticatedError):
        await sessions.require_user()


@pytest.mark.asyncio
async def test_admin_operations(mock_redis):
    admin = await accounts.initialize_default_admin()
    alice = await accounts.register("Alice", "alice@example.com", "secret1")
    await sessions.login(settings.default_admin_email, settings.default_admin_password)

    assert {u.id for u in await admin_service.list_users()} == {admin.id, alice.id}

    toggled = await admin_service.toggle_admin(alice.id)
    assert toggled.is_admin is True
    assert (await accounts.get(alice.id)).is_admin is True

    deleted = await admin_service.delete_user(alice.id)
    assert deleted.id == alice.id
    assert await accounts.get(alice.id) is None


@pytest.mark.asyncio
async def test_admin_cannot_target_self(mock_redis):
    admin = await accounts.initialize_default_admin()
    await sessions.login(settings.default_admin_email, settings.default_admin_password)

    with pytest.raises(PermissionDeniedError, match="delete your own"):
        await admin_service.delete_user(admin.id)
    with pytest.raises(PermissionDeniedError, match="own admin status"):
        await admin_service.toggle_admin(admin.id)


@pytest.mark.asyncio
async def test_admin_unknown_user(mock_redis):
    await accounts.initialize_default_admin()
    await sessions.login(settings.default_admin_email, settings.default_admin_password)

    with pytest.raises(AccountNotFoundError):
        await admin_service.delete_user("missing")
    with pytest.raises(AccountNotFoundError):
        await admin_service.toggle_admin("missing")


@pytest.mark.asyncio
async def test_non_admin_is_denied(mock_redis):
    await accounts.initialize_default_admin()
    await accounts.register("Alice", "alice@example.com", "secret1")
    await sessions.login("alice@example.com", "secret1")

    with pytest.raises(PermissionDeniedError):
        await admin_service.list_users()
