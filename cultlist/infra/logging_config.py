import logging
import json
import sys
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "cult-request-id"

# LogRecord の標準属性（extra として出力しないもの）
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


class JSONFormatter(logging.Formatter):
    """1レコード1行のJSONに整形する。extra で渡した項目はトップレベルに展開される"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        entry.update(
            (key, value) for key, value in record.__dict__.items() if key not in _RESERVED_ATTRS
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


def log_level_for(environment: str) -> int:
    """本番環境以外ではDEBUGレベルで出力する"""
    return logging.INFO if environment == "production" else logging.DEBUG


def _build_handlers(log_file: Optional[str], console: bool) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    if console or not handlers:
        handlers.append(logging.StreamHandler(sys.stdout))
    return handlers


def setup_logging(
    name: str,
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    console: bool = False
) -> logging.Logger:
    """
    JSON出力のロガーを構成する

    ファイル出力を指定しない場合は標準出力に書き出す。
    同名ロガーを再構成した場合、既存のハンドラーは置き換えられる。
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.propagate = False

    formatter = JSONFormatter()
    for handler in _build_handlers(log_file, console):
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


_loggers: Dict[str, logging.Logger] = {}


def get_logger(name: str, **kwargs) -> logging.Logger:
    if name not in _loggers:
        _loggers[name] = setup_logging(name, **kwargs)
    return _loggers[name]


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    リクエスト単位のアクセスログ

    受信ヘッダーのリクエストIDを引き継ぎ（なければ生成し）、
    レスポンスヘッダーにも付与する。4xx は WARNING、5xx は ERROR で記録する。
    """

    def __init__(self, app):
        super().__init__(app)
        self.logger = get_logger("api.access")

    @staticmethod
    def _request_fields(request: Request, request_id: str) -> Dict[str, Any]:
        return {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
        }

    @staticmethod
    def _level_for(status_code: int) -> int:
        if status_code >= 500:
            return logging.ERROR
        if status_code >= 400:
            return logging.WARNING
        return logging.INFO

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        fields = self._request_fields(request, request_id)
        started = time.perf_counter()

        self.logger.debug(
            "Request started",
            extra={**fields, "client": request.client.host if request.client else None},
        )

        try:
            response = await call_next(request)
        except Exception:
            self.logger.exception(
                "Request failed",
                extra={**fields, "duration_ms": round((time.perf_counter() - started) * 1000, 2)},
            )
            raise

        self.logger.log(
            self._level_for(response.status_code),
            "Request completed",
            extra={
                **fields,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
