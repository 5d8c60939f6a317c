import asyncio
import time
import pytest
from datetime import datetime, timedelta, timezone
from uuid import uuid4
from jose import jwt, JWTError
from fastapi import HTTPException

from cultlist.domain.entity.user_entity import UserEntity
from cultlist.infra import auth as auth_module
from cultlist.infra.auth import (
    JWTTokenIssuer,
    MIN_VERIFY_SECONDS,
    PasslibPasswordHasher,
    create_access_token,
    get_current_user,
    get_password_hash,
    pwd_context,
    verify_password,
    verify_token,
)
from cultlist.infra.config import Settings


def make_user() -> UserEntity:
    return UserEntity(
        id=uuid4(),
        username="alice",
        email="alice@example.com",
        first_name=None,
        last_name=None,
        bio=None,
        created_at=datetime.now(timezone.utc),
    )


class TestAuthFunctions:
    """Test auth functions without external dependencies"""
    
    def test_password_hashing(self):
        """Test password hashing and verification"""
        plain_password = "Password123!"
        hashed = get_password_hash(plain_password)
        
        assert hashed != plain_password
        assert verify_password(plain_password, hashed) is True
        assert verify_password("wrongpassword", hashed) is False
    
    def test_hashes_are_salted(self):
        assert get_password_hash("Password123!") != get_password_hash("Password123!")
    
    def test_verify_against_empty_or_malformed_hash_returns_false(self):
        assert verify_password("Password123!", "") is False
        assert verify_password("Password123!", "not-a-hash") is False
    
    def test_verify_takes_minimum_time(self):
        start = time.monotonic()
        verify_password("Password123!", "")
        assert time.monotonic() - start >= MIN_VERIFY_SECONDS * 0.9
    
    def test_unidentifiable_hash_still_runs_bcrypt(self, monkeypatch):
        calls = []
        monkeypatch.setattr(pwd_context, "dummy_verify", lambda *args, **kwargs: calls.append(1))
        
        verify_password("Password123!", "")
        verify_password("Password123!", "not-a-hash")
        
        assert len(calls) == 2
    
    def test_unknown_and_known_user_take_comparable_time(self, monkeypatch):
        """未登録ユーザー（空ハッシュ）と誤パスワードの照合時間が揃っていること"""
        monkeypatch.setattr(auth_module, "MIN_VERIFY_SECONDS", 0)
        pwd_context.update(bcrypt__rounds=10)
        try:
            stored = get_password_hash("Password123!")
            
            def median_duration(password_hash):
                durations = []
                for _ in range(3):
                    start = time.perf_counter()
                    verify_password("WrongPassword1!", password_hash)
                    durations.append(time.perf_counter() - start)
                return sorted(durations)[1]
            
            known = median_duration(stored)
            unknown = median_duration("")
        finally:
            pwd_context.update(bcrypt__rounds=4)
        
        assert unknown >= known * 0.5


class TestPasslibPasswordHasher:
    @pytest.mark.asyncio
    async def test_hash_and_verify(self):
        hasher = PasslibPasswordHasher()
        hashed = await hasher.hash("Password123!")
        
        assert await hasher.verify("Password123!", hashed)
        assert not await hasher.verify("Password123?", hashed)
        assert not await hasher.verify("Password123!", "")
    
    @pytest.mark.asyncio
    async def test_verification_does_not_block_event_loop(self):
        hasher = PasslibPasswordHasher()
        hashed = await hasher.hash("Password123!")
        ticks = 0
        done = asyncio.Event()
        
        async def ticker():
            nonlocal ticks
            while not done.is_set():
                ticks += 1
                await asyncio.sleep(0.01)
        
        ticker_task = asyncio.create_task(ticker())
        await asyncio.gather(*(hasher.verify("WrongPassword1!", hashed) for _ in range(5)))
        done.set()
        await ticker_task
        
        # 5件の照合（各100ms以上）の間もループは動き続ける
        assert ticks > 3


class TestTokens:
    
    def test_jwt_token_creation_and_verification(self):
        """Test JWT token creation and verification"""
        token = create_access_token({"sub": "user123"})
        
        assert isinstance(token, str)
        payload = verify_token(token)
        assert payload["sub"] == "user123"
    
    def test_token_expires_in_seven_days(self):
        """Default expiration is seven days"""
        before = datetime.now(timezone.utc)
        token = create_access_token({"sub": "user123"})
        
        settings = Settings()
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        
        assert timedelta(days=7) - timedelta(seconds=5) <= expires_at - before <= timedelta(days=7, seconds=5)
    
    def test_jwt_token_with_custom_expiration(self):
        token = create_access_token({"sub": "user123"}, timedelta(minutes=15))
        
        settings = Settings()
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        
        assert expires_at - datetime.now(timezone.utc) < timedelta(minutes=16)
    
    def test_token_issuer_carries_user_id_and_email(self):
        user = make_user()
        token = JWTTokenIssuer().issue(user)
        
        payload = verify_token(token)
        assert payload["sub"] == str(user.id)
        assert payload["email"] == "alice@example.com"
    
    def test_invalid_jwt_token(self):
        with pytest.raises(JWTError):
            verify_token("invalid.token.here")
    
    def test_token_signed_with_other_secret_is_rejected(self):
        token = jwt.encode(
            {"sub": "user123", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            "another-secret-key-that-is-at-least-32-characters",
            algorithm="HS256",
        )
        with pytest.raises(JWTError):
            verify_token(token)
    
    def test_expired_jwt_token(self):
        settings = Settings()
        data = {"sub": "user123", "exp": datetime.now(timezone.utc) - timedelta(hours=1)}
        token = jwt.encode(data, settings.secret_key, algorithm=settings.algorithm)
        
        with pytest.raises(JWTError):
            verify_token(token)
    
    def test_get_current_user_valid_token(self):
        valid_token = create_access_token({"sub": "user123"})
        assert get_current_user(valid_token) == "user123"
    
    def test_get_current_user_invalid_token(self):
        with pytest.raises(HTTPException) as exc_info:
            get_current_user("invalid.token")
        
        assert exc_info.value.status_code == 401
        assert exc_info.value.headers["WWW-Authenticate"] == "Bearer"
    
    def test_get_current_user_missing_sub(self):
        token = create_access_token({"user": "test"})
        
        with pytest.raises(HTTPException) as exc_info:
            get_current_user(token)
        
        assert exc_info.value.status_code == 401
