# API测试共享配置和固定装置

import pytest
import os
import sys
from pathlib import Path
from fastapi.testclient import TestClient

# 添加项目路径
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

# 设置测试环境
os.environ['CONFIG_ENV'] = 'test'

from api.main import app
from api.auth.routes import get_database, jwt_manager
from db.manager import DatabaseManager
from db.schema import create_tables
from db.supporting_operations import SupportingOperations


@pytest.fixture
def api_db_path(tmp_path):
    """每个测试独立的文件数据库"""
    return str(tmp_path / "api-test.db")


@pytest.fixture
def api_market(api_db_path, seed):
    """建表并写入基础数据"""
    with DatabaseManager(api_db_path, auto_connect=True) as db:
        create_tables(db)
        return seed(SupportingOperations(db))


@pytest.fixture
def client(api_db_path, api_market):
    """使用测试数据库的客户端"""
    def override_get_database():
        db_manager = DatabaseManager(api_db_path, auto_connect=True)
        try:
            yield db_manager
        finally:
            db_manager.close()

    app.dependency_overrides[get_database] = override_get_database
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def api_support(api_db_path, api_market):
    """直接操作测试数据库（准备评价、菜单等协作方数据）"""
    db = DatabaseManager(api_db_path, auto_connect=True)
    yield SupportingOperations(db)
    db.close()


def auth_headers(actor) -> dict:
    """为测试身份签发令牌"""
    token = jwt_manager.create_token({"user_id": actor.user_id, "role": actor.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers(api_market):
    """各身份的认证请求头"""
    return {
        name: auth_headers(api_market[name])
        for name in ("customer", "other_customer", "admin", "vendor", "other_vendor")
    }
