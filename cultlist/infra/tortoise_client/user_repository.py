from typing import Optional, List
from uuid import UUID

from tortoise import connections
from tortoise.backends.base.client import BaseDBAsyncClient
from tortoise.exceptions import IntegrityError
from tortoise.expressions import Q
from tortoise.queryset import QuerySet
from tortoise.transactions import in_transaction

from ...port.user_repository import UserRepository
from ...port.dto.user_dto import CreateUserDTO, UpdateUserDTO, UserCredentialsDTO, UserSearchCriteria
from ...domain.entity.user_entity import UserEntity
from ...domain.exception.user_exceptions import UserAlreadyExistsError
from ..logging_config import get_logger
from .config import CONNECTION_NAME
from .models import User

logger = get_logger("repository.users")

SEARCH_FIELDS = ("username", "email", "first_name", "last_name", "bio")


def search_filter(search: str) -> Q:
    """検索語を全検索対象フィールドへの部分一致（大文字小文字無視）のORに展開する"""
    return Q(**{f"{name}__icontains": search for name in SEARCH_FIELDS}, join_type="OR")


def filtered_users(search: Optional[str]) -> QuerySet[User]:
    if not search:
        return User.all()
    return User.filter(search_filter(search))


def to_entity(user: User) -> UserEntity:
    return UserEntity(
        id=user.id,
        username=user.username,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        bio=user.bio,
        created_at=user.created_at,
    )


def to_credentials(user: User) -> UserCredentialsDTO:
    return UserCredentialsDTO(
        user_id=user.id,
        username=user.username,
        email=user.email,
        password_hash=user.password,
    )


def conflict_from(error: IntegrityError) -> UserAlreadyExistsError:
    message = str(error).lower()
    if "email" in message:
        return UserAlreadyExistsError("Email is already registered", "email")
    if "username" in message:
        return UserAlreadyExistsError("Username is already taken", "username")
    return UserAlreadyExistsError("User already exists")


class TortoiseUserRepository(UserRepository):
    """
    Tortoise ORM を用いた UserRepository の実装

    接続はコネクション名から操作ごとに解決し、すべてのクエリへ明示的に渡す。
    """

    def __init__(self, connection_name: str = CONNECTION_NAME):
        self._connection_name = connection_name

    def _db(self) -> BaseDBAsyncClient:
        return connections.get(self._connection_name)

    async def create(self, user_dto: CreateUserDTO) -> UserEntity:
        try:
            user = await User.create(
                using_db=self._db(),
                username=user_dto.username,
                email=user_dto.email,
                password=user_dto.password_hash,
                first_name=user_dto.first_name,
                last_name=user_dto.last_name,
                bio=user_dto.bio,
            )
        except IntegrityError as e:
            logger.warning("Unique constraint violated on create", extra={"username": user_dto.username})
            raise conflict_from(e) from e

        return to_entity(user)

    async def get_by_id(self, user_id: UUID) -> Optional[UserEntity]:
        user = await User.get_or_none(id=user_id, using_db=self._db())
        return to_entity(user) if user else None

    async def get_by_username(self, username: str) -> Optional[UserEntity]:
        user = await User.get_or_none(username=username, using_db=self._db())
        return to_entity(user) if user else None

    async def get_by_email(self, email: str) -> Optional[UserEntity]:
        user = await User.get_or_none(email=email, using_db=self._db())
        return to_entity(user) if user else None

    async def get_credentials(self, login: str) -> Optional[UserCredentialsDTO]:
        """ユーザー名で検索し、見つからなければメールアドレスで検索する"""
        db = self._db()
        user = await User.get_or_none(username=login, using_db=db)
        if not user:
            user = await User.get_or_none(email=login, using_db=db)
        return to_credentials(user) if user else None

    async def get_credentials_by_id(self, user_id: UUID) -> Optional[UserCredentialsDTO]:
        user = await User.get_or_none(id=user_id, using_db=self._db())
        return to_credentials(user) if user else None

    async def update(self, user_id: UUID, update_dto: UpdateUserDTO) -> Optional[UserEntity]:
        """指定されたフィールドのみ更新する（None は変更なし）"""
        changes = update_dto.changed_fields()
        if "password_hash" in changes:
            changes["password"] = changes.pop("password_hash")

        try:
            async with in_transaction(self._connection_name) as conn:
                if changes:
                    updated = await User.filter(id=user_id).using_db(conn).update(**changes)
                    if not updated:
                        return None
                user = await User.get_or_none(id=user_id, using_db=conn)
        except IntegrityError as e:
            logger.warning("Unique constraint violated on update", extra={"user_id": str(user_id)})
            raise conflict_from(e) from e

        return to_entity(user) if user else None

    async def delete(self, user_id: UUID) -> bool:
        deleted = await User.filter(id=user_id).using_db(self._db()).delete()
        return deleted > 0

    async def list(self, criteria: UserSearchCriteria) -> List[UserEntity]:
        query = (
            filtered_users(criteria.search)
            .using_db(self._db())
            .order_by("-created_at")
            .offset(criteria.offset)
        )
        if criteria.limit is not None:
            query = query.limit(criteria.limit)

        return [to_entity(user) for user in await query]

    async def count(self, search: Optional[str] = None) -> int:
        return await filtered_users(search).using_db(self._db()).count()
