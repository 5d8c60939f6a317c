from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional
from uuid import UUID

from ...domain.entity.user_entity import UserEntity

@dataclass
class CreateUserDTO:
    """
    ユーザー登録用DTO（パスワードはハッシュ化済み）
    """
    username: str
    email: str
    password_hash: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None

@dataclass
class UpdateUserDTO:
    """
    ユーザー部分更新用DTO

    None のフィールドは「変更なし」を意味する。
    """
    username: Optional[str] = None
    email: Optional[str] = None
    password_hash: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None

    def changed_fields(self) -> Dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

@dataclass
class UserCredentialsDTO:
    """
    認証用DTO。パスワードハッシュを保持する唯一の形。
    """
    user_id: UUID
    username: str
    email: str
    password_hash: str

@dataclass
class UserSearchCriteria:
    """
    ユーザー一覧の検索条件

    limit が None の場合は件数制限なし。
    """
    search: Optional[str] = None
    limit: Optional[int] = 20
    offset: int = 0

@dataclass
class UserListDTO:
    users: List[UserEntity] = field(default_factory=list)
    total_count: int = 0
    limit: Optional[int] = 20
    offset: int = 0
