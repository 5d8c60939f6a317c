from typing import Protocol, Optional, List
from uuid import UUID

from ..domain.entity.user_entity import UserEntity
from ..port.dto.user_dto import CreateUserDTO, UpdateUserDTO, UserCredentialsDTO, UserSearchCriteria

class UserRepository(Protocol):
    """
    ユーザーデータの永続化インターフェース。

    取得・更新・削除で対象が存在しない場合は例外ではなく None / False を返す。
    一意制約違反は UserAlreadyExistsError として送出する。
    """

    async def create(self, user_dto: CreateUserDTO) -> UserEntity:
        ...

    async def get_by_id(self, user_id: UUID) -> Optional[UserEntity]:
        ...

    async def get_by_username(self, username: str) -> Optional[UserEntity]:
        ...

    async def get_by_email(self, email: str) -> Optional[UserEntity]:
        ...

    async def get_credentials(self, login: str) -> Optional[UserCredentialsDTO]:
        ...

    async def get_credentials_by_id(self, user_id: UUID) -> Optional[UserCredentialsDTO]:
        ...

    async def update(self, user_id: UUID, update_dto: UpdateUserDTO) -> Optional[UserEntity]:
        ...

    async def delete(self, user_id: UUID) -> bool:
        ...

    async def list(self, criteria: UserSearchCriteria) -> List[UserEntity]:
        ...

    async def count(self, search: Optional[str] = None) -> int:
        ...
