"""
Authentication use case: sign-up, sign-in and token refresh
"""
from dataclasses import dataclass
from typing import Optional

from ...domain.entity.user_entity import UserEntity
from ...domain.exception.user_exceptions import InvalidCredentialsError, UserNotFoundError
from ...port.password_hasher import PasswordHasher
from ...port.token_issuer import TokenIssuer
from ...port.user_repository import UserRepository
from .user_service import UserService, parse_user_id


@dataclass
class AuthResult:
    """認証成功時の結果（ユーザーとアクセストークン）"""
    user: UserEntity
    access_token: str
    token_type: str = "bearer"


class AuthService:
    """
    認証ユースケース

    サインイン失敗時は、ユーザーが存在しない場合もパスワードが違う場合も
    同じ InvalidCredentialsError を送出する。
    """

    def __init__(
        self,
        user_repository: UserRepository,
        user_service: UserService,
        password_hasher: PasswordHasher,
        token_issuer: TokenIssuer,
    ):
        self._user_repository = user_repository
        self._user_service = user_service
        self._password_hasher = password_hasher
        self._token_issuer = token_issuer

    async def sign_up(
        self,
        username: str,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> AuthResult:
        user = await self._user_service.create(
            username=username,
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            bio=bio,
        )
        return AuthResult(user=user, access_token=self._token_issuer.issue(user))

    async def sign_in(self, login: str, password: str) -> AuthResult:
        """ユーザー名またはメールアドレスとパスワードで認証する"""
        credentials = await self._user_repository.get_credentials(login) if login else None

        # 存在しないユーザーでも検証処理を通し、応答時間を揃える
        password_hash = credentials.password_hash if credentials else ""
        is_valid = await self._password_hasher.verify(password, password_hash)

        if not credentials or not is_valid:
            raise InvalidCredentialsError()

        user = await self._user_repository.get_by_id(credentials.user_id)
        if not user:
            raise InvalidCredentialsError()

        return AuthResult(user=user, access_token=self._token_issuer.issue(user))

    async def current_user(self, user_id: str) -> UserEntity:
        return await self._user_service.get_by_id(user_id)

    async def refresh(self, user_id: str) -> str:
        """認証済みユーザーのトークンを再発行する"""
        user = await self._user_repository.get_by_id(parse_user_id(user_id))
        if not user:
            raise UserNotFoundError(f"User not found: {user_id}")
        return self._token_issuer.issue(user)
