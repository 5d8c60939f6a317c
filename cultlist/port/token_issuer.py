from typing import Protocol

from ..domain.entity.user_entity import UserEntity

class TokenIssuer(Protocol):
    """署名付きアクセストークンの発行インターフェース"""

    def issue(self, user: UserEntity) -> str:
        ...
