# 应用入口与认证API测试

from datetime import datetime, timedelta, timezone

import jwt

from api.auth.routes import jwt_manager


class TestAppEndpoints:
    """基础端点测试"""

    def test_root(self, client):
        """根路径"""
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_api_info(self, client):
        """API信息"""
        data = client.get("/api/info").json()
        assert data["environment"] == "test"
        assert data["endpoints"]["reservations"] == "/api/reservations"

    def test_request_id_header(self, client):
        """响应携带请求ID，沿用客户端传入的值"""
        response = client.get("/", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_unknown_route_uses_error_envelope(self, client):
        """404同样使用统一错误格式"""
        response = client.get("/api/nothing-here")
        assert response.status_code == 404
        assert response.json()["success"] is False


class TestAuthAPI:
    """认证接口测试"""

    def test_me(self, client, headers, api_market):
        """商家令牌解析出所属商家"""
        response = client.get("/api/auth/me", headers=headers["vendor"])
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["role"] == "vendor"
        assert data["vendor_id"] == api_market["vendor_id"]

    def test_role_comes_from_user_table(self, client, api_market):
        """令牌中的角色声明不能提升权限"""
        token = jwt_manager.create_token({"user_id": api_market["customer_id"], "role": "admin"})
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.json()["data"]["role"] == "customer"

    def test_expired_token(self, client, api_market):
        """过期令牌返回401"""
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        token = jwt.encode(
            {"user_id": api_market["customer_id"], "role": "customer", "exp": past, "iat": past},
            jwt_manager.secret_key, algorithm=jwt_manager.algorithm
        )
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_unknown_user(self, client):
        """用户不存在"""
        token = jwt_manager.create_token({"user_id": 99999, "role": "customer"})
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_suspended_user(self, client, headers, api_support, api_market):
        """被禁用的用户"""
        api_support.set_user_status(api_market["customer_id"], "suspended")
        response = client.get("/api/auth/me", headers=headers["customer"])
        assert response.status_code == 401

    def test_refresh(self, client, headers, api_market):
        """刷新令牌"""
        response = client.post("/api/auth/refresh", headers=headers["customer"])
        assert response.status_code == 200
        payload = jwt_manager.decode_token(response.json()["data"]["access_token"])
        assert payload["user_id"] == api_market["customer_id"]
