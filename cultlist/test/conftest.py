import os

# アプリのモジュールを読み込む前にテスト用の環境変数を設定する
os.environ["SECRET_KEY"] = "test-secret-key-that-is-at-least-32-characters-long"
os.environ["DATABASE_URL"] = "sqlite://:memory:"
os.environ["DATABASE_GENERATE_SCHEMAS"] = "true"
os.environ["ENVIRONMENT"] = "test"
os.environ["SECURITY_RATE_LIMIT_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from tortoise import Tortoise

from cultlist.infra.auth import pwd_context
from cultlist.infra.config import Settings
from cultlist.infra.di import get_container
from cultlist.infra.tortoise_client.config import build_tortoise_config
from cultlist.infra.tortoise_client.user_repository import TortoiseUserRepository

# テストではbcryptのコストを下げる
pwd_context.update(bcrypt__rounds=4)

@pytest.fixture
async def db():
    """インメモリSQLiteでTortoise ORMを初期化する"""
    await Tortoise.init(config=build_tortoise_config(Settings()))
    await Tortoise.generate_schemas()
    yield
    await Tortoise.close_connections()


@pytest.fixture
def repository(db):
    return TortoiseUserRepository()


@pytest.fixture
def client():
    """アプリ全体のテストクライアント（起動ごとに空のDB）"""
    from cultlist.infra.rest_api.main import app

    get_container().reset()
    with TestClient(app) as client:
        yield client
