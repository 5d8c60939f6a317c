from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from tortoise import Tortoise

from ..config import Settings
from ..logging_config import LoggingMiddleware, get_logger, log_level_for
from ..security_config import SecuritySettings
from ..tortoise_client.config import build_tortoise_config
from ...domain.exception.user_exceptions import UserError

from .routers.auth import router as auth_router
from .routers.users import router as users_router
from .error_handlers import (
    handle_connection_error,
    handle_generic_error,
    handle_http_exception,
    handle_permission_error,
    handle_user_exception,
    handle_validation_exception,
)
from .rate_limiter import limiter, rate_limit_error_handler
from .security_middleware import setup_security_middleware

APP_VERSION = "0.1.0"

settings = Settings()
security_settings = SecuritySettings()
log_level = log_level_for(settings.environment)
logger = get_logger("app", level=log_level)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """起動時にTortoise ORMを初期化し、終了時に接続を閉じる"""
    logger.info("Application starting up", extra={"environment": settings.environment})
    
    await Tortoise.init(config=build_tortoise_config(settings))
    if settings.database_generate_schemas:
        await Tortoise.generate_schemas(safe=True)
    logger.info("Tortoise ORM initialized", extra={"pool_size": settings.database_pool_size})
    
    yield
    
    await Tortoise.close_connections()
    logger.info("Application shutdown complete")

app = FastAPI(
    title="CultList User Service API",
    version=APP_VERSION,
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_error_handler)

setup_security_middleware(
    app,
    security_headers=security_settings.security_headers,
    timeout_seconds=settings.request_timeout_seconds,
    log_security_events=security_settings.log_security_events,
)

app.add_middleware(LoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Accept", "Authorization", "Content-Type"],
    max_age=3600,
)

app.include_router(auth_router)
app.include_router(users_router)


@app.get("/api/v1/health")
async def health_check():
    """ヘルスチェックエンドポイント"""
    return {"status": "healthy", "version": APP_VERSION}

app.add_exception_handler(UserError, handle_user_exception)
app.add_exception_handler(StarletteHTTPException, handle_http_exception)
app.add_exception_handler(RequestValidationError, handle_validation_exception)
app.add_exception_handler(PermissionError, handle_permission_error)
app.add_exception_handler(ConnectionError, handle_connection_error)
app.add_exception_handler(Exception, handle_generic_error)


def run() -> None:
    """uvicorn でサーバーを起動する（cultlist コマンドのエントリポイント）"""
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=log_level)
