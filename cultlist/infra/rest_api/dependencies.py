"""
FastAPI依存性注入の定義

DIコンテナから適切なサービスインスタンスを取得し、FastAPIの依存性システムに
統合するためのアダプターレイヤーとして機能します。
"""

from typing import Annotated

from fastapi import Depends

from ..auth import get_current_user
from ..di import get_container
from ...usecase.user_management.auth_service import AuthService
from ...usecase.user_management.user_service import UserService

def get_user_service() -> UserService:
    """
    ユーザーサービスの依存性を取得
    
    Returns:
        UserService: ユーザー管理ユースケースインスタンス
    """
    return get_container().user_service

def get_auth_service() -> AuthService:
    """
    認証サービスの依存性を取得
    
    Returns:
        AuthService: 認証ユースケースインスタンス
    """
    return get_container().auth_service

CurrentUserId = Annotated[str, Depends(get_current_user)]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
