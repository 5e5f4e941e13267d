"""Single active-session record kept in the key-value store."""

from datetime import datetime, timezone

from pydantic import ValidationError

from weatherdesk.core.config import settings
from weatherdesk.core.logging import get_logger
from weatherdesk.models.account import Session, User
from weatherdesk.services.accounts import (
    AccountStore,
    AccountValidationError,
    InvalidCredentialsError,
    NotAuthenticatedError,
    accounts,
    is_valid_email,
)
from weatherdesk.services.storage import KeyValueStore, storage

logger = get_logger(__name__)


class SessionTracker:
    """Login, logout and lookup of the current user."""

    def __init__(self, store: KeyValueStore, account_store: AccountStore):
        self.store = store
        self.accounts = account_store

    async def login(self, email: str, password: str) -> Session:
        """Authenticate and replace the active session.

        Raises:
            AccountValidationError: If a field is missing or the email is malformed
            InvalidCredentialsError: If the email is unknown or the password is wrong
        """
        if not email or not password:
            raise AccountValidationError("Please enter both email and password")
        if not is_valid_email(email):
            raise AccountValidationError("Please enter a valid email address")

        user = await self.accounts.find_by_email(email)
        if user is None or user.password != password:
            logger.info("login_failed", email=email)
            raise InvalidCredentialsError("Invalid email or password")

        session = Session(
            user_id=user.id,
            name=user.name,
            email=user.email,
            login_time=datetime.now(timezone.utc),
        )
        await self.store.set_json(settings.session_key, session.model_dump(mode="json"))
        logger.info("login_succeeded", user_id=user.id)
        return session

    async def logout(self) -> None:
        await self.store.remove(settings.session_key)
        logger.info("logged_out")

    async def current_session(self) -> Session | None:
        raw = await self.store.get_json(settings.session_key)
        if raw is None:
            return None
        try:
            return Session.model_validate(raw)
        except ValidationError as e:
            logger.warning("session_record_invalid", error=str(e))
            return None

    async def is_logged_in(self) -> bool:
        return await self.current_session() is not None

    async def current_user(self) -> User | None:
        """Return the logged-in user, or None if the session's user is gone."""
        session = await self.current_session()
        if session is None:
            return None
        return await self.accounts.get(session.user_id)

    async def require_user(self) -> User:
        user = await self.current_user()
        if user is None:
            raise NotAuthenticatedError("Please log in to continue")
        return user

    async def is_admin(self) -> bool:
        user = await self.current_user()
        return user is not None and user.is_admin


# Global session tracker instance
sessions = SessionTracker(storage, accounts)
