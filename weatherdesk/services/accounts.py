"""User accounts stored as a JSON list in the key-value store."""

import re
import uuid
from datetime import datetime, timezone

from pydantic import ValidationError

from weatherdesk.core.config import settings
from weatherdesk.core.logging import get_logger
from weatherdesk.models.account import Preferences, User
from weatherdesk.services.storage import KeyValueStore, storage

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class AccountError(Exception):
    """Account operation failed; the message is shown to the user."""

    pass


class AccountValidationError(AccountError):
    """Registration or login input is malformed."""

    pass


class DuplicateAccountError(AccountError):
    """An account with this email already exists."""

    pass


class InvalidCredentialsError(AccountError):
    """Email or password did not match."""

    pass


class NotAuthenticatedError(AccountError):
    """No active session."""

    pass


class PermissionDeniedError(AccountError):
    """The active user may not perform this operation."""

    pass


class AccountNotFoundError(AccountError):
    """No user with the given id."""

    pass


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email or ""))


def validate_name(name: str) -> str:
    """Return the trimmed name or raise if it is too short or too long."""
    trimmed = (name or "").strip()
    if len(trimmed) < 2:
        raise AccountValidationError("Name must be at least 2 characters long")
    if len(trimmed) > 50:
        raise AccountValidationError("Name must not exceed 50 characters")
    return trimmed


def validate_password(password: str) -> None:
    if len(password or "") < settings.min_password_length:
        raise AccountValidationError(
            f"Password must be at least {settings.min_password_length} characters long"
        )


class AccountStore:
    """CRUD over the stored user list."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def all(self) -> list[User]:
        """Return every stored user; malformed records are skipped."""
        raw_users = await self.store.get_json(settings.users_key) or []
        users = []
        for raw in raw_users:
            try:
                users.append(User.model_validate(raw))
            except ValidationError as e:
                logger.warning("user_record_invalid", error=str(e))
        return users

    async def save_all(self, users: list[User]) -> None:
        await self.store.set_json(
            settings.users_key, [user.model_dump(mode="json") for user in users]
        )

    async def get(self, user_id: str) -> User | None:
        for user in await self.all():
            if user.id == user_id:
                return user
        return None

    async def find_by_email(self, email: str) -> User | None:
        """Find a user by email, ignoring case."""
        needle = (email or "").strip().lower()
        for user in await self.all():
            if user.email.lower() == needle:
                return user
        return None

    async def update(self, updated: User) -> bool:
        """Replace the stored record with the same id.

        Returns:
            False if no such user exists
        """
        users = await self.all()
        for index, user in enumerate(users):
            if user.id == updated.id:
                users[index] = updated
                await self.save_all(users)
                return True
        return False

    async def initialize_default_admin(self) -> User | None:
        """Create the configured admin account when the store has no users."""
        users = await self.all()
        if users:
            return None

        admin = User(
            id=f"admin-{uuid.uuid4().hex}",
            name=settings.default_admin_name,
            email=settings.default_admin_email.lower(),
            password=settings.default_admin_password,
            created_at=datetime.now(timezone.utc),
            is_admin=True,
            preferences=Preferences(dark_mode=True),
        )
        await self.save_all([admin])
        logger.info("default_admin_created", email=admin.email)
        return admin

    async def register(self, name: str, email: str, password: str) -> User:
        """Create a regular (non-admin) account.

        Raises:
            AccountValidationError: If name, email or password is invalid
            DuplicateAccountError: If the email is already registered
        """
        clean_name = validate_name(name)
        if not is_valid_email(email):
            raise AccountValidationError("Please enter a valid email address")
        validate_password(password)

        if await self.find_by_email(email):
            raise DuplicateAccountError("An account with this email already exists")

        user = User(
            id=uuid.uuid4().hex,
            name=clean_name,
            email=email.strip().lower(),
            password=password,
            created_at=datetime.now(timezone.utc),
            is_admin=False,
            preferences=Preferences(dark_mode=False),
        )

        users = await self.all()
        users.append(user)
        await self.save_all(users)

        logger.info("user_registered", user_id=user.id)
        return user

    async def delete(self, user_id: str) -> User:
        """Remove a user record.

        Raises:
            AccountNotFoundError: If no user has this id
        """
        users = await self.all()
        for index, user in enumerate(users):
            if user.id == user_id:
                del users[index]
                await self.save_all(users)
                logger.info("user_deleted", user_id=user_id)
                return user
        raise AccountNotFoundError("User not found")

    async def set_admin(self, user_id: str, is_admin: bool) -> User:
        user = await self.get(user_id)
        if user is None:
            raise AccountNotFoundError("User not found")
        user.is_admin = is_admin
        await self.update(user)
        logger.info("user_admin_changed", user_id=user_id, is_admin=is_admin)
        return user


# Global account store instance
accounts = AccountStore(storage)
