from typing import Any, Dict, List, Optional, Type

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..logging_config import get_logger
from ...domain.exception.user_exceptions import (
    InvalidCredentialsError,
    UserAlreadyExistsError,
    UserError,
    UserNotFoundError,
    UserValidationError,
)

logger = get_logger("api.errors")

USER_ERROR_STATUS: Dict[Type[UserError], int] = {
    UserNotFoundError: status.HTTP_404_NOT_FOUND,
    UserAlreadyExistsError: status.HTTP_409_CONFLICT,
    UserValidationError: status.HTTP_400_BAD_REQUEST,
    InvalidCredentialsError: status.HTTP_401_UNAUTHORIZED,
}


def create_error_response(
    error_type: str,
    user_message: str,
    status_code: int,
    detail: Any = None,
    retry_available: bool = False,
    additional_data: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """
    統一されたエラーレスポンスを作成

    本文は常に error_type / user_message / retry_available を含み、
    detail は値がある場合のみ付与する。
    """
    content: Dict[str, Any] = {
        "error_type": error_type,
        "user_message": user_message,
        "retry_available": retry_available,
    }
    if detail:
        content["detail"] = detail
    if additional_data:
        content.update(additional_data)

    return JSONResponse(status_code=status_code, content=jsonable_encoder(content), headers=headers)


def _request_context(request: Request) -> Dict[str, Any]:
    return {
        "path": request.url.path,
        "method": request.method,
        "request_id": getattr(request.state, "request_id", None),
    }


def _invalid_fields(errors: List[Dict[str, Any]]) -> List[str]:
    """バリデーションエラーの loc から項目名を取り出す（body/query 等の接頭辞は除く）"""
    names = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())[1:]]
        if loc and ".".join(loc) not in names:
            names.append(".".join(loc))
    return names


async def handle_user_exception(request: Request, exc: UserError):
    """ドメイン例外を対応するステータスコードへ変換する"""
    status_code = USER_ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)

    logger.warning(
        f"User exception: {type(exc).__name__}",
        extra={**_request_context(request), "error_code": exc.error_code, "error": exc.message},
    )

    additional_data = None
    if isinstance(exc, UserAlreadyExistsError) and exc.field:
        additional_data = {"field": exc.field}

    headers = None
    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}

    return create_error_response(
        error_type=exc.error_code or "user_error",
        user_message=exc.message,
        status_code=status_code,
        additional_data=additional_data,
        headers=headers,
    )


async def handle_validation_exception(request: Request, exc: RequestValidationError):
    fields = _invalid_fields(exc.errors())
    logger.warning(
        "Request validation failed",
        extra={**_request_context(request), "fields": fields},
    )

    return create_error_response(
        error_type="validation_error",
        user_message=("入力データが無効です: " + ", ".join(fields)) if fields else "入力データが無効です",
        detail=exc.errors(),
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        additional_data={"fields": fields},
    )


HTTP_ERROR_TYPES = {
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
}


async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    """フレームワーク由来のHTTPException（認証失敗・未定義ルート等）も同じ形式で返す"""
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        logger.info("Authentication required", extra=_request_context(request))

    return create_error_response(
        error_type=HTTP_ERROR_TYPES.get(exc.status_code, "http_error"),
        user_message=str(exc.detail),
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def handle_permission_error(request: Request, exc: PermissionError):
    """他ユーザーのプロフィールを変更しようとした場合"""
    logger.warning("Permission denied", extra={**_request_context(request), "error": str(exc)})

    return create_error_response(
        error_type="permission_error",
        user_message="他のユーザーのプロフィールは変更できません。",
        status_code=status.HTTP_403_FORBIDDEN,
    )


async def handle_connection_error(request: Request, exc: ConnectionError):
    """データベースに接続できない場合"""
    logger.error("Database connection error", extra={**_request_context(request), "error": str(exc)})

    return create_error_response(
        error_type="connection_error",
        user_message="データベースに接続できません。しばらく待ってから再試行してください。",
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        retry_available=True,
    )


async def handle_generic_error(request: Request, exc: Exception):
    """想定外のエラー（内容はデバッグ時のみ返す）"""
    logger.error(
        "Unhandled exception",
        extra={**_request_context(request), "error": str(exc), "exception_class": type(exc).__name__},
        exc_info=True,
    )

    return create_error_response(
        error_type="internal_error",
        user_message="予期しないエラーが発生しました。",
        detail=str(exc) if request.app.debug else None,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
