"""
CultList の認証基盤

- パスワード: passlib (bcrypt) でハッシュ化。検証は最小100msかけ、
  ハッシュが空・不正でも False を返す（未登録ユーザーのサインインも同じ経路）
- トークン: python-jose で HS256 署名した JWT。sub にユーザーID、email を含み、
  既定の有効期限は7日
- FastAPI 依存性 get_current_user で Bearer トークンから sub を取り出す
"""

import time
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import HTTPException, status, Depends
from fastapi.security import OAuth2PasswordBearer
from starlette.concurrency import run_in_threadpool
from ..domain.entity.user_entity import UserEntity
from .config import Settings
from .logging_config import get_logger

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/signin")

logger = get_logger("auth")

# 検証処理の最小実行時間（秒）
MIN_VERIFY_SECONDS = 0.1


def get_settings() -> Settings:
    """呼び出しごとに環境から読み直す"""
    return Settings()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    平文パスワードを保存済みハッシュと照合する

    成否にかかわらず MIN_VERIFY_SECONDS 以上かけて返る。空文字列や
    識別できないハッシュは不一致（False）として扱い、その場合も
    dummy_verify で通常と同じコストのbcrypt計算を行う。
    """
    start_time = time.monotonic()
    
    try:
        result = pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        pwd_context.dummy_verify()
        result = False
    
    elapsed_time = time.monotonic() - start_time
    if elapsed_time < MIN_VERIFY_SECONDS:
        time.sleep(MIN_VERIFY_SECONDS - elapsed_time)
    
    return result


def get_password_hash(password: str) -> str:
    """ソルト付きのbcryptハッシュを返す（同じパスワードでも毎回異なる）"""
    return pwd_context.hash(password)


class PasslibPasswordHasher:
    """
    passlib を用いた PasswordHasher の実装

    bcrypt計算と最小実行時間の待機はワーカースレッドで行い、イベントループを塞がない。
    """

    async def hash(self, password: str) -> str:
        return await run_in_threadpool(get_password_hash, password)

    async def verify(self, password: str, password_hash: str) -> bool:
        return await run_in_threadpool(verify_password, password, password_hash)


def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta] = None,
    settings: Optional[Settings] = None,
) -> str:
    """
    data に iat / exp を加えて署名したJWTを返す

    expires_delta を省略した場合の有効期限は settings.access_token_expire_days 日。
    """
    settings = settings or get_settings()
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(days=settings.access_token_expire_days)
    claims = {**data, "iat": issued_at, "exp": issued_at + lifetime}

    logger.debug(
        "Access token issued",
        extra={"sub": data.get("sub"), "expires_at": claims["exp"].isoformat()},
    )
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


class JWTTokenIssuer:
    """python-jose を用いた TokenIssuer の実装"""

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings

    def issue(self, user: UserEntity) -> str:
        return create_access_token(
            {"sub": str(user.id), "email": user.email},
            settings=self._settings,
        )


def verify_token(token: str) -> Dict[str, Any]:
    """署名と有効期限を確認してクレームを返す（不正なら JWTError）"""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        return payload
    except JWTError as e:
        logger.warning("Token verification failed", extra={"error": str(e)})
        raise


def get_current_user(token: str = Depends(oauth2_scheme)) -> str:
    """
    Bearer トークンの sub（ユーザーID文字列）を返す

    トークンが無効・期限切れ、または sub を含まない場合は
    WWW-Authenticate 付きの401を送出する。
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    
    try:
        payload = verify_token(token)
    except JWTError:
        raise credentials_exception
    
    user_id = payload.get("sub")
    if user_id is None:
        logger.warning("Token missing 'sub' claim")
        raise credentials_exception
    
    return user_id
