"""
Tortoise ORM configuration
"""
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ..config import Settings

MODELS_MODULE = "cultlist.infra.tortoise_client.models"
CONNECTION_NAME = "default"

_POOLED_SCHEMES = ("postgres", "asyncpg", "psycopg", "mysql")


def with_pool_size(db_url: str, pool_size: int) -> str:
    """プール対応のDB URLに maxsize を付与する（指定済みなら上書きしない）"""
    parts = urlsplit(db_url)
    if parts.scheme not in _POOLED_SCHEMES:
        return db_url

    query = dict(parse_qsl(parts.query))
    query.setdefault("maxsize", str(pool_size))
    return urlunsplit(parts._replace(query=urlencode(query)))


def build_tortoise_config(settings: Settings, extra_models: Optional[list] = None) -> Dict[str, Any]:
    models = [MODELS_MODULE] + list(extra_models or [])
    return {
        "connections": {
            CONNECTION_NAME: with_pool_size(settings.database_url, settings.database_pool_size)
        },
        "apps": {
            "models": {
                "models": models,
                "default_connection": CONNECTION_NAME,
            },
        },
        "use_tz": True,
        "timezone": "UTC",
    }

