from typing import Protocol

class PasswordHasher(Protocol):
    """パスワードのハッシュ化・検証インターフェース（bcrypt等の重い計算を伴うため非同期）"""

    async def hash(self, password: str) -> str:
        ...

    async def verify(self, password: str, password_hash: str) -> bool:
        ...
