# 购物车聚合逻辑与持久购物车测试

import pytest

from db import cart as cart_logic
from db.cart import Cart
from db.errors import InvalidQuantity, NotFound, ValidationError

BURGER = {"menu_item_id": 1, "vendor_id": 10, "name": "汉堡", "price_cents": 1000}
FRIES = {"menu_item_id": 2, "vendor_id": 10, "name": "薯条", "price_cents": 550}
TEA = {"menu_item_id": 3, "vendor_id": 20, "name": "柠檬茶", "price_cents": 800}


def _expected_total(cart: Cart) -> int:
    return sum(item.unit_price_cents * item.quantity for item in cart.items)


class TestCartAggregation:
    """购物车聚合逻辑测试"""

    def test_total_of_two_lines(self):
        """10.00 x 2 + 5.50 x 3 = 36.50"""
        cart = Cart(owner_id=1)
        cart_logic.add_item(cart, BURGER, 2)
        cart_logic.add_item(cart, FRIES, 3)

        assert cart.total_cents == 3650
        assert len(cart.items) == 2

    def test_add_same_item_merges_quantity(self):
        """同一菜品合并为一行"""
        cart = Cart(owner_id=1)
        cart_logic.add_item(cart, BURGER, 1)
        line = cart_logic.add_item(cart, BURGER, 2, note="不要洋葱")

        assert len(cart.items) == 1
        assert line.quantity == 3
        assert line.note == "不要洋葱"
        assert cart.total_cents == 3000

    def test_add_invalid_quantity(self):
        """数量小于1或非整数"""
        cart = Cart(owner_id=1)
        for quantity in (0, -1, 1.5, True):
            with pytest.raises(InvalidQuantity):
                cart_logic.add_item(cart, BURGER, quantity)
        assert cart.items == []
        assert cart.total_cents == 0

    def test_add_other_vendor_replaces_cart(self):
        """加入其他商家的菜品会先清空购物车"""
        cart = Cart(owner_id=1)
        cart_logic.add_item(cart, BURGER, 2)
        cart_logic.add_item(cart, TEA, 1)

        assert [item.menu_item_id for item in cart.items] == [3]
        assert cart.vendor_id == 20
        assert cart.total_cents == 800

    def test_update_quantity(self):
        """修改数量后总价重算"""
        cart = Cart(owner_id=1)
        line = cart_logic.add_item(cart, FRIES, 1)

        cart_logic.update_quantity(cart, line.line_id, 4)
        assert cart.total_cents == 2200

    def test_update_quantity_rejects_zero(self):
        """数量不能改为0"""
        cart = Cart(owner_id=1)
        line = cart_logic.add_item(cart, FRIES, 2)

        with pytest.raises(InvalidQuantity):
            cart_logic.update_quantity(cart, line.line_id, 0)
        assert line.quantity == 2
        assert cart.total_cents == 1100

    def test_update_missing_line(self):
        """修改不存在的明细"""
        cart = Cart(owner_id=1)
        with pytest.raises(NotFound):
            cart_logic.update_quantity(cart, "missing", 2)

    def test_remove_missing_line_is_noop(self):
        """移除不存在的明细不报错"""
        cart = Cart(owner_id=1)
        cart_logic.add_item(cart, BURGER, 1)

        assert cart_logic.remove_item(cart, "missing") is False
        assert cart.total_cents == 1000

    def test_remove_last_line_resets_vendor(self):
        """移除最后一行后购物车不再属于任何商家"""
        cart = Cart(owner_id=1)
        line = cart_logic.add_item(cart, BURGER, 1)

        assert cart_logic.remove_item(cart, line.line_id) is True
        assert cart.total_cents == 0
        assert cart.vendor_id is None

    def test_note_too_long(self):
        """备注超过200字符"""
        cart = Cart(owner_id=1)
        with pytest.raises(ValidationError):
            cart_logic.add_item(cart, BURGER, 1, note="x" * 201)

    def test_total_reconciles_after_mutation_sequence(self):
        """任意修改序列后总价都等于明细之和"""
        cart = Cart(owner_id=1)
        burger_line = cart_logic.add_item(cart, BURGER, 1)
        assert cart.total_cents == _expected_total(cart)

        fries_line = cart_logic.add_item(cart, FRIES, 2)
        assert cart.total_cents == _expected_total(cart)

        cart_logic.update_quantity(cart, burger_line.line_id, 5)
        assert cart.total_cents == _expected_total(cart)

        cart_logic.add_item(cart, FRIES, 1)
        assert cart.total_cents == _expected_total(cart)

        with pytest.raises(InvalidQuantity):
            cart_logic.update_quantity(cart, fries_line.line_id, -3)
        assert cart.total_cents == _expected_total(cart)

        cart_logic.remove_item(cart, burger_line.line_id)
        assert cart.total_cents == _expected_total(cart) == 1650

        cart_logic.clear(cart)
        assert cart.total_cents == 0


class TestCartMerge:
    """登录合并测试"""

    def test_merge_sums_quantities(self):
        """同一菜品数量相加，其他菜品追加"""
        anonymous = Cart()
        cart_logic.add_item(anonymous, BURGER, 1)
        cart_logic.add_item(anonymous, FRIES, 2)

        durable = Cart(owner_id=1)
        cart_logic.add_item(durable, BURGER, 2)

        merged = cart_logic.merge_on_authentication(anonymous, durable)

        assert merged is durable
        assert {item.menu_item_id: item.quantity for item in merged.items} == {1: 3, 2: 2}
        assert merged.total_cents == 4100
        assert anonymous.items == []

    def test_merge_other_vendor_anonymous_wins(self):
        """临时购物车属于其他商家时以临时购物车为准"""
        anonymous = Cart()
        cart_logic.add_item(anonymous, TEA, 2)

        durable = Cart(owner_id=1)
        cart_logic.add_item(durable, BURGER, 1)

        merged = cart_logic.merge_on_authentication(anonymous, durable)

        assert [item.menu_item_id for item in merged.items] == [3]
        assert merged.vendor_id == 20
        assert merged.total_cents == 1600

    def test_merge_empty_anonymous(self):
        """空临时购物车不影响持久购物车"""
        durable = Cart(owner_id=1)
        cart_logic.add_item(durable, BURGER, 1)

        merged = cart_logic.merge_on_authentication(Cart(), durable)
        assert merged.total_cents == 1000
        assert merged.vendor_id == 10


class TestCartOperations:
    """持久购物车测试"""

    def test_add_and_get(self, cart_ops, market):
        """加入菜品后可读回相同的购物车"""
        cart_ops.add_item(market["customer_id"], market["burger_id"], 2)
        cart_ops.add_item(market["customer_id"], market["fries_id"], 3)

        cart = cart_ops.get_cart(market["customer_id"])
        assert cart["total_cents"] == 3650
        assert cart["item_count"] == 5
        assert cart["vendor_id"] == market["vendor_id"]
        assert [item["name"] for item in cart["items"]] == ["汉堡", "薯条"]

    def test_add_unknown_menu_item(self, cart_ops, market):
        """菜品不存在"""
        with pytest.raises(NotFound):
            cart_ops.add_item(market["customer_id"], 99999, 1)

    def test_add_unavailable_menu_item(self, cart_ops, support_ops, market):
        """下架菜品不能加入购物车"""
        support_ops.update_menu_item(market["fries_id"], is_available=False)
        with pytest.raises(ValidationError):
            cart_ops.add_item(market["customer_id"], market["fries_id"], 1)

    def test_failed_update_leaves_cart_unchanged(self, cart_ops, market):
        """非法数量不会写入数据库"""
        cart = cart_ops.add_item(market["customer_id"], market["burger_id"], 2)
        line_id = cart["items"][0]["line_id"]

        with pytest.raises(InvalidQuantity):
            cart_ops.update_item(market["customer_id"], line_id, 0)

        cart = cart_ops.get_cart(market["customer_id"])
        assert cart["items"][0]["quantity"] == 2
        assert cart["total_cents"] == 2000

    def test_update_remove_and_clear(self, cart_ops, market):
        """修改、移除与清空"""
        cart = cart_ops.add_item(market["customer_id"], market["burger_id"], 1)
        cart = cart_ops.add_item(market["customer_id"], market["fries_id"], 1)
        burger_line, fries_line = [item["line_id"] for item in cart["items"]]

        cart = cart_ops.update_item(market["customer_id"], fries_line, 4, note="多放番茄酱")
        assert cart["total_cents"] == 1000 + 2200
        assert cart["items"][1]["note"] == "多放番茄酱"

        cart = cart_ops.remove_item(market["customer_id"], burger_line)
        assert cart["total_cents"] == 2200

        cart = cart_ops.remove_item(market["customer_id"], "missing")
        assert cart["total_cents"] == 2200

        cart = cart_ops.clear_cart(market["customer_id"])
        assert cart["items"] == []
        assert cart["total_cents"] == 0
        assert cart_ops.get_cart(market["customer_id"])["vendor_id"] is None

    def test_snapshot_price_kept_in_cart(self, cart_ops, support_ops, market):
        """购物车保留加入时的价格快照"""
        cart_ops.add_item(market["customer_id"], market["burger_id"], 1)
        support_ops.update_menu_item(market["burger_id"], price_cents=1200)

        cart = cart_ops.get_cart(market["customer_id"])
        assert cart["items"][0]["unit_price_cents"] == 1000

    def test_merge_anonymous_cart(self, cart_ops, market):
        """合并时重新按菜单快照，丢弃不存在的菜品"""
        cart_ops.add_item(market["customer_id"], market["burger_id"], 1)

        cart = cart_ops.merge_anonymous_cart(market["customer_id"], [
            {"menu_item_id": market["burger_id"], "quantity": 2},
            {"menu_item_id": market["fries_id"], "quantity": 1, "note": "加盐"},
            {"menu_item_id": 99999, "quantity": 5},
        ])

        quantities = {item["menu_item_id"]: item["quantity"] for item in cart["items"]}
        assert quantities == {market["burger_id"]: 3, market["fries_id"]: 1}
        assert cart["total_cents"] == 3 * 1000 + 550

    def test_merge_mixed_vendor_anonymous_cart_rejected(self, cart_ops, market):
        """临时购物车包含多个商家的菜品时拒绝合并，持久购物车不变"""
        cart_ops.add_item(market["customer_id"], market["fries_id"], 1)

        with pytest.raises(ValidationError):
            cart_ops.merge_anonymous_cart(market["customer_id"], [
                {"menu_item_id": market["burger_id"], "quantity": 2},
                {"menu_item_id": market["tea_id"], "quantity": 1},
            ])

        cart = cart_ops.get_cart(market["customer_id"])
        assert [(item["menu_item_id"], item["quantity"]) for item in cart["items"]] == [(market["fries_id"], 1)]
        assert cart["total_cents"] == 550

    def test_carts_are_per_customer(self, cart_ops, market):
        """不同顾客的购物车互不影响"""
        cart_ops.add_item(market["customer_id"], market["burger_id"], 1)
        cart_ops.add_item(market["other_customer_id"], market["tea_id"], 2)

        assert cart_ops.get_cart(market["customer_id"])["total_cents"] == 1000
        assert cart_ops.get_cart(market["other_customer_id"])["total_cents"] == 1600
