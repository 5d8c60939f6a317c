from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

@dataclass
class UserEntity:
    """
    ユーザーのビジネスドメインモデル

    パスワードハッシュは保持しない。認証に必要な場合は
    UserCredentialsDTO を経由して取得する。
    """
    id: UUID
    username: str
    email: str
    first_name: Optional[str]
    last_name: Optional[str]
    bio: Optional[str]
    created_at: datetime
