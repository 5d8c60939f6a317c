"""
aerich CLI 用の Tortoise ORM 設定

pyproject.toml の [tool.aerich] から参照される。環境変数（SECRET_KEY 等）が必要。
"""
from ..config import Settings
from .config import build_tortoise_config

TORTOISE_ORM = build_tortoise_config(Settings(), extra_models=["aerich.models"])
