# 订单查询测试

import pytest

from db.access import Actor
from db.errors import Forbidden, ValidationError

ADDRESS = "测试路1号"
PHONE = "05321234567"


@pytest.fixture
def orders(order_ops, market):
    """顾客在本店下3单，另一位顾客在隔壁下1单"""
    created = []
    for quantity in (1, 2, 3):
        created.append(order_ops.create_order(
            market["customer_id"],
            [{"menu_item_id": market["burger_id"], "quantity": quantity}],
            ADDRESS, PHONE
        ))
    created.append(order_ops.create_order(
        market["other_customer_id"],
        [{"menu_item_id": market["tea_id"], "quantity": 1}],
        ADDRESS, PHONE
    ))
    order_ops.transition(created[0]["order_id"], market["vendor"], "accepted")
    return created


class TestOrderQueries:
    """订单列表测试"""

    def test_customer_orders(self, query_ops, orders, market):
        """顾客订单历史，最新的在前"""
        result = query_ops.query_customer_orders(market["customer_id"])

        assert result["success"] is True
        ids = [order["order_id"] for order in result["data"]["orders"]]
        assert ids == [orders[2]["order_id"], orders[1]["order_id"], orders[0]["order_id"]]
        assert result["data"]["orders"][0]["total_amount"] == 30.0
        assert result["data"]["orders"][0]["business_name"] == "测试餐厅"
        assert result["data"]["pagination"]["total_count"] == 3

    def test_status_filter(self, query_ops, orders, market):
        """按状态过滤"""
        result = query_ops.query_customer_orders(market["customer_id"], status="accepted")
        assert [order["order_id"] for order in result["data"]["orders"]] == [orders[0]["order_id"]]
        assert result["data"]["orders"][0]["status_text"] == "已接单"

    def test_invalid_status_filter(self, query_ops, orders, market):
        """无效状态"""
        with pytest.raises(ValidationError):
            query_ops.query_customer_orders(market["customer_id"], status="unknown")

    def test_pagination(self, query_ops, orders, market):
        """分页信息"""
        result = query_ops.query_customer_orders(market["customer_id"], offset=2, limit=2)
        pagination = result["data"]["pagination"]

        assert len(result["data"]["orders"]) == 1
        assert pagination["current_page"] == 2
        assert pagination["total_pages"] == 2
        assert pagination["has_next"] is False
        assert pagination["has_prev"] is True

    @pytest.mark.parametrize("offset,limit", [(-1, 10), (0, 0), (0, 101)])
    def test_invalid_pagination(self, query_ops, market, offset, limit):
        """分页参数错误"""
        with pytest.raises(ValidationError):
            query_ops.query_customer_orders(market["customer_id"], offset=offset, limit=limit)

    def test_vendor_orders(self, query_ops, orders, market):
        """商家只能查看本店订单"""
        result = query_ops.query_vendor_orders(market["vendor"], market["vendor_id"])
        assert result["data"]["pagination"]["total_count"] == 3

        result = query_ops.query_vendor_orders(market["admin"], market["other_vendor_id"])
        assert result["data"]["pagination"]["total_count"] == 1

        with pytest.raises(Forbidden):
            query_ops.query_vendor_orders(market["other_vendor"], market["vendor_id"])

    def test_scoped_list(self, query_ops, orders, market):
        """按身份限定范围"""
        assert query_ops.query_orders(market["admin"])["data"]["pagination"]["total_count"] == 4
        assert query_ops.query_orders(market["vendor"])["data"]["pagination"]["total_count"] == 3
        assert query_ops.query_orders(market["other_customer"])["data"]["pagination"]["total_count"] == 1
        assert query_ops.query_orders(market["admin"], status="pending")["data"]["pagination"]["total_count"] == 3

    def test_vendor_without_shop(self, query_ops, support_ops):
        """尚未开店的商家账号"""
        owner = support_ops.create_user("新商家", role="vendor")
        with pytest.raises(Forbidden):
            query_ops.query_orders(Actor(user_id=owner["user_id"], role="vendor"))

    def test_status_summary(self, query_ops, orders, market):
        """状态统计"""
        summary = query_ops.query_order_status_summary(market["customer"])["data"]
        assert summary["counts"]["pending"] == 2
        assert summary["counts"]["accepted"] == 1
        assert summary["counts"]["cancelled"] == 0
        assert summary["total"] == 3
