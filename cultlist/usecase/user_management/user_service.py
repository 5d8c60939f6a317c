"""
User management service - use case layer
"""
from typing import Optional
from uuid import UUID

from ...domain.entity.password_policy import PasswordPolicy
from ...domain.entity.user_entity import UserEntity
from ...domain.exception.user_exceptions import (
    UserAlreadyExistsError,
    UserNotFoundError,
    UserValidationError,
)
from ...port.dto.user_dto import CreateUserDTO, UpdateUserDTO, UserListDTO, UserSearchCriteria
from ...port.password_hasher import PasswordHasher
from ...port.user_repository import UserRepository
from .validation import ensure_email, ensure_password, ensure_username


def parse_user_id(user_id: str) -> UUID:
    """文字列のユーザーIDをUUIDに変換する（不正な形式はバリデーションエラー）"""
    try:
        return UUID(str(user_id))
    except ValueError:
        raise UserValidationError("Wrong id format")


class UserService:
    """Service for user profile operations"""

    def __init__(
        self,
        user_repository: UserRepository,
        password_hasher: PasswordHasher,
        password_policy: Optional[PasswordPolicy] = None,
    ):
        self._user_repository = user_repository
        self._password_hasher = password_hasher
        self._password_policy = password_policy or PasswordPolicy()

    async def create(
        self,
        username: str,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> UserEntity:
        """Validate and store a new user; the password is hashed before storage"""
        username = ensure_username(username)
        ensure_email(email)
        ensure_password(password, self._password_policy)

        if await self._user_repository.get_by_username(username):
            raise UserAlreadyExistsError(f"Username '{username}' is already taken", "username")
        if await self._user_repository.get_by_email(email):
            raise UserAlreadyExistsError(f"Email '{email}' is already registered", "email")

        return await self._user_repository.create(
            CreateUserDTO(
                username=username,
                email=email,
                password_hash=await self._password_hasher.hash(password),
                first_name=first_name,
                last_name=last_name,
                bio=bio,
            )
        )

    async def get_by_id(self, user_id: str) -> UserEntity:
        user = await self._user_repository.get_by_id(parse_user_id(user_id))
        if not user:
            raise UserNotFoundError(f"User not found: {user_id}")
        return user

    async def get_by_email(self, email: str) -> UserEntity:
        user = await self._user_repository.get_by_email(email)
        if not user:
            raise UserNotFoundError(f"User not found: {email}")
        return user

    async def check_username_exists(self, username: str) -> bool:
        return await self._user_repository.get_by_username(username) is not None

    async def list(
        self,
        search: Optional[str] = None,
        limit: Optional[int] = 20,
        offset: int = 0,
        page: Optional[int] = None,
    ) -> UserListDTO:
        """
        Paginated, searchable user listing

        page is 1-based and, when given, takes precedence over offset.
        """
        if limit is not None and limit < 1:
            raise UserValidationError("Limit must be greater than zero")
        if page is not None:
            if page < 1:
                raise UserValidationError("Page must be greater than zero")
            if limit is None:
                raise UserValidationError("Page requires a limit")
            offset = (page - 1) * limit
        if offset < 0:
            raise UserValidationError("Offset must not be negative")

        search = search.strip() if search else None
        criteria = UserSearchCriteria(search=search or None, limit=limit, offset=offset)

        total_count = await self._user_repository.count(criteria.search)
        users = await self._user_repository.list(criteria)

        return UserListDTO(
            users=users,
            total_count=total_count,
            limit=limit,
            offset=offset,
        )

    async def update(
        self,
        user_id: str,
        username: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
        old_password: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> UserEntity:
        """
        Partial update; fields left as None keep their stored value

        Changing the password requires the current one in old_password.
        """
        existing = await self.get_by_id(user_id)
        update_dto = UpdateUserDTO(first_name=first_name, last_name=last_name, bio=bio)

        if username is not None:
            username = ensure_username(username)
            other = await self._user_repository.get_by_username(username)
            if other and other.id != existing.id:
                raise UserAlreadyExistsError(f"Username '{username}' is already taken", "username")
            update_dto.username = username

        if email is not None:
            ensure_email(email)
            other = await self._user_repository.get_by_email(email)
            if other and other.id != existing.id:
                raise UserAlreadyExistsError(f"Email '{email}' is already registered", "email")
            update_dto.email = email

        if password is not None:
            if old_password is None:
                raise UserValidationError("To change password please provide old password")
            credentials = await self._user_repository.get_credentials_by_id(existing.id)
            if not credentials or not await self._password_hasher.verify(old_password, credentials.password_hash):
                raise UserValidationError("Wrong old password")
            ensure_password(password, self._password_policy)
            update_dto.password_hash = await self._password_hasher.hash(password)

        updated = await self._user_repository.update(existing.id, update_dto)
        if not updated:
            raise UserNotFoundError(f"User not found: {user_id}")
        return updated

    async def delete(self, user_id: str) -> UUID:
        parsed = parse_user_id(user_id)
        if not await self._user_repository.delete(parsed):
            raise UserNotFoundError(f"User not found: {user_id}")
        return parsed
