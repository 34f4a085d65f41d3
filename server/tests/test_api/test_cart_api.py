# 购物车API测试


class TestCartAPI:
    """购物车接口测试"""

    def test_requires_token(self, client):
        """未登录返回401"""
        response = client.get("/api/cart")
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_invalid_token(self, client):
        """令牌无效返回401"""
        response = client.get("/api/cart", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    def test_vendor_cannot_use_cart(self, client, headers):
        """购物车仅顾客可用"""
        response = client.get("/api/cart", headers=headers["vendor"])
        assert response.status_code == 403

    def test_add_items_and_total(self, client, headers, api_market):
        """加入两种菜品，总价36.50"""
        client.post("/api/cart/items", headers=headers["customer"],
                    json={"menu_item_id": api_market["burger_id"], "quantity": 2})
        response = client.post("/api/cart/items", headers=headers["customer"],
                               json={"menu_item_id": api_market["fries_id"], "quantity": 3})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total_cents"] == 3650
        assert data["total_amount"] == 36.5
        assert [item["line_total"] for item in data["items"]] == [20.0, 16.5]

    def test_invalid_quantity_is_400(self, client, headers, api_market):
        """数量为0返回400，购物车不变"""
        response = client.post("/api/cart/items", headers=headers["customer"],
                               json={"menu_item_id": api_market["burger_id"], "quantity": 0})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["data"]["error_code"] == "invalid_quantity"

        cart = client.get("/api/cart", headers=headers["customer"]).json()["data"]
        assert cart["items"] == []

    def test_unknown_menu_item_is_404(self, client, headers):
        """菜品不存在"""
        response = client.post("/api/cart/items", headers=headers["customer"],
                               json={"menu_item_id": 99999, "quantity": 1})
        assert response.status_code == 404
        assert response.json()["data"]["error_code"] == "not_found"

    def test_update_and_remove(self, client, headers, api_market):
        """修改数量与移除明细"""
        cart = client.post("/api/cart/items", headers=headers["customer"],
                           json={"menu_item_id": api_market["burger_id"], "quantity": 1}).json()["data"]
        line_id = cart["items"][0]["line_id"]

        response = client.put(f"/api/cart/items/{line_id}", headers=headers["customer"],
                              json={"quantity": 4})
        assert response.json()["data"]["total_cents"] == 4000

        response = client.put("/api/cart/items/missing", headers=headers["customer"],
                              json={"quantity": 4})
        assert response.status_code == 404

        response = client.delete(f"/api/cart/items/{line_id}", headers=headers["customer"])
        assert response.json()["data"]["total_cents"] == 0

    def test_clear(self, client, headers, api_market):
        """清空购物车"""
        client.post("/api/cart/items", headers=headers["customer"],
                    json={"menu_item_id": api_market["burger_id"], "quantity": 1})
        response = client.delete("/api/cart", headers=headers["customer"])
        assert response.status_code == 200
        assert response.json()["data"]["items"] == []

    def test_merge(self, client, headers, api_market):
        """合并临时购物车"""
        client.post("/api/cart/items", headers=headers["customer"],
                    json={"menu_item_id": api_market["burger_id"], "quantity": 1})
        response = client.post("/api/cart/merge", headers=headers["customer"], json={
            "items": [{"menu_item_id": api_market["burger_id"], "quantity": 2}]
        })

        assert response.status_code == 200
        assert response.json()["data"]["items"][0]["quantity"] == 3

    def test_merge_mixed_vendors_is_400(self, client, headers, api_market):
        """临时购物车跨商家时返回400"""
        response = client.post("/api/cart/merge", headers=headers["customer"], json={
            "items": [{"menu_item_id": api_market["burger_id"], "quantity": 2},
                      {"menu_item_id": api_market["tea_id"], "quantity": 1}]
        })

        assert response.status_code == 400
        assert response.json()["data"]["error_code"] == "validation_error"
        assert client.get("/api/cart", headers=headers["customer"]).json()["data"]["items"] == []

    def test_missing_field_is_422(self, client, headers):
        """缺少必填字段"""
        response = client.post("/api/cart/items", headers=headers["customer"], json={"quantity": 1})
        assert response.status_code == 422
        assert response.json()["success"] is False
        assert response.json()["data"]["errors"]
