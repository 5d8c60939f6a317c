from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from ..security_config import SecuritySettings

_security_settings = SecuritySettings()

# サインイン・サインアップは未認証のため、クライアントのIPアドレス単位で制限する
limiter = Limiter(key_func=get_remote_address, enabled=_security_settings.rate_limit_enabled)

def signin_limit() -> str:
    return _security_settings.rate_limit_signin

def signup_limit() -> str:
    return _security_settings.rate_limit_signup

def rate_limit_error_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "error_type": "rate_limited",
            "user_message": "リクエストが多すぎます。しばらく待ってから再試行してください。",
            "retry_available": True,
        },
        headers={"Retry-After": "60"},
    )
