"""Admin-only account management, checked against the active session."""

from weatherdesk.core.logging import get_logger
from weatherdesk.models.account import User
from weatherdesk.services.accounts import (
    AccountNotFoundError,
    AccountStore,
    PermissionDeniedError,
    accounts,
)
from weatherdesk.services.session import SessionTracker, sessions

logger = get_logger(__name__)


class AdminService:
    """User listing, deletion and admin toggling for admin sessions."""

    def __init__(self, account_store: AccountStore, session_tracker: SessionTracker):
        self.accounts = account_store
        self.sessions = session_tracker

    async def _require_admin(self) -> User:
        user = await self.sessions.current_user()
        if user is None or not user.is_admin:
            logger.warning("admin_access_denied", user_id=user.id if user else None)
            raise PermissionDeniedError("Unauthorized: Admin access required")
        return user

    async def list_users(self) -> list[User]:
        await self._require_admin()
        return await self.accounts.all()

    async def delete_user(self, user_id: str) -> User:
        """Delete another user's account.

        Raises:
            PermissionDeniedError: If not admin, or if deleting oneself
            AccountNotFoundError: If no user has this id
        """
        admin = await self._require_admin()
        if admin.id == user_id:
            raise PermissionDeniedError("Cannot delete your own account")
        return await self.accounts.delete(user_id)

    async def toggle_admin(self, user_id: str) -> User:
        """Flip another user's admin flag and return the updated record."""
        admin = await self._require_admin()
        if admin.id == user_id:
            raise PermissionDeniedError("Cannot modify your own admin status")

        target = await self.accounts.get(user_id)
        if target is None:
            raise AccountNotFoundError("User not found")
        return await self.accounts.set_admin(user_id, not target.is_admin)


# Global admin service instance
admin_service = AdminService(accounts, sessions)
