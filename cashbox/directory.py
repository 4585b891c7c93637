"""
User Directory

Login and user management. Credentials are compared in plain text; there
is no hashing, lockout or rate limiting. Usernames are unique: the
directory checks the loaded list, and the storage backend enforces it
again at write time.
"""

from typing import Iterable, Optional

import structlog

from cashbox import messages
from cashbox.models.ledger import User, UserDraft, UserPatch, new_id
from cashbox.models.results import FailureReason, OperationResult
from cashbox.repository import LedgerRepository

logger = structlog.get_logger(__name__)


def authenticate(username: str, password: str, users: Iterable[User]) -> Optional[User]:
    """First user matching both fields exactly, or None."""
    return next(
        (u for u in users if u.username == username and u.password == password),
        None,
    )


class UserDirectory:
    """User operations over the repository."""

    def __init__(self, repository: LedgerRepository):
        self._repository = repository

    @property
    def users(self) -> list[User]:
        return self._repository.users

    def _username_taken(self, username: str, exclude_id: Optional[str] = None) -> bool:
        return any(
            u.username == username and u.id != exclude_id
            for u in self._repository.users
        )

    def login(self, username: str, password: str) -> OperationResult[User]:
        user = authenticate(username, password, self._repository.users)
        if user is None:
            logger.info("login_failed", username=username)
            return OperationResult.fail(FailureReason.AUTH_FAILURE, messages.INVALID_CREDENTIALS)
        logger.info("login_succeeded", user_id=user.id, role=user.role.value)
        return OperationResult.success(user)

    async def create_user(self, draft: UserDraft) -> OperationResult[User]:
        if self._username_taken(draft.username):
            return OperationResult.fail(FailureReason.DUPLICATE, messages.USERNAME_TAKEN)

        user = User(id=new_id(), **draft.model_dump())
        result = await self._repository.add_user(user)
        if result.ok:
            logger.info("user_created", user_id=user.id, role=user.role.value)
        return result

    async def update_user(self, user_id: str, patch: UserPatch) -> OperationResult[User]:
        current = self._repository.find_user(user_id)
        if current is None:
            return OperationResult.fail(FailureReason.NOT_FOUND, messages.USER_NOT_FOUND)
        if patch.username is not None and self._username_taken(patch.username, exclude_id=user_id):
            return OperationResult.fail(FailureReason.DUPLICATE, messages.USERNAME_TAKEN)

        updated = patch.apply_to(current)
        result = await self._repository.replace_user(updated)
        if result.ok:
            logger.info(
                "user_updated",
                user_id=user_id,
                fields=sorted(patch.model_dump(exclude_unset=True, exclude_none=True)),
            )
        return result

    async def delete_user(self, user_id: str, acting_user: User) -> OperationResult[User]:
        """
        Remove a user. Nobody may delete the account they are logged in with.

        The user's past transactions keep their ``user_name`` snapshot.
        """
        if user_id == acting_user.id:
            return OperationResult.fail(FailureReason.PERMISSION_DENIED, messages.SELF_DELETE)

        result = await self._repository.remove_user(user_id)
        if result.ok:
            logger.info("user_deleted", user_id=user_id, by=acting_user.id)
        return result
