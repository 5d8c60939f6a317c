from typing import Optional
from .auth import JWTTokenIssuer, PasslibPasswordHasher
from .security_config import SecuritySettings
from .tortoise_client.user_repository import TortoiseUserRepository
from ..port.password_hasher import PasswordHasher
from ..port.token_issuer import TokenIssuer
from ..port.user_repository import UserRepository as UserRepositoryPort
from ..usecase.user_management.auth_service import AuthService
from ..usecase.user_management.user_service import UserService

class DIContainer:
    """依存性注入コンテナ"""
    
    def __init__(self):
        self._user_repository: Optional[UserRepositoryPort] = None
        self._password_hasher: Optional[PasswordHasher] = None
        self._token_issuer: Optional[TokenIssuer] = None
        self._user_service: Optional[UserService] = None
        self._auth_service: Optional[AuthService] = None
    
    @property
    def user_repository(self) -> UserRepositoryPort:
        """ユーザーリポジトリのシングルトンインスタンスを取得"""
        if self._user_repository is None:
            self._user_repository = TortoiseUserRepository()
        return self._user_repository
    
    @property
    def password_hasher(self) -> PasswordHasher:
        if self._password_hasher is None:
            self._password_hasher = PasslibPasswordHasher()
        return self._password_hasher
    
    @property
    def token_issuer(self) -> TokenIssuer:
        if self._token_issuer is None:
            self._token_issuer = JWTTokenIssuer()
        return self._token_issuer
    
    @property
    def user_service(self) -> UserService:
        """ユーザーサービス（パスワードポリシーは SecuritySettings から）"""
        if self._user_service is None:
            self._user_service = UserService(
                self.user_repository,
                self.password_hasher,
                SecuritySettings().password_policy(),
            )
        return self._user_service
    
    @property
    def auth_service(self) -> AuthService:
        if self._auth_service is None:
            self._auth_service = AuthService(
                self.user_repository,
                self.user_service,
                self.password_hasher,
                self.token_issuer,
            )
        return self._auth_service
    
    def reset(self) -> None:
        """保持しているインスタンスを破棄する（テスト用）"""
        self.__init__()

# グローバルDIコンテナインスタンス
_container = DIContainer()

def get_container() -> DIContainer:
    """DIコンテナを取得"""
    return _container
