# 持久购物车业务操作
# 每次修改：读取购物车 -> 执行聚合逻辑 -> 整体写回，均在同一事务内完成

import logging
from typing import List, Dict, Any

from .manager import DatabaseManager
from .supporting_operations import SupportingOperations
from .errors import NotFound, ValidationError
from . import cart as cart_logic
from .cart import Cart, CartItem

logger = logging.getLogger(__name__)


class CartOperations:
    """
    购物车业务操作类
    """
    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager
        self.support = SupportingOperations(db_manager)

    def _load_cart(self, user_id: int) -> Cart:
        """从数据库读取顾客的持久购物车，不存在时返回空购物车"""
        cart_row = self.db.conn.execute(
            "SELECT vendor_id FROM carts WHERE user_id = ?", [user_id]
        ).fetchone()

        if not cart_row:
            return Cart(owner_id=user_id)

        item_rows = self.db.conn.execute("""
            SELECT line_id, menu_item_id, name, unit_price_cents, image, quantity, note
            FROM cart_items
            WHERE user_id = ?
            ORDER BY position ASC
        """, [user_id]).fetchall()

        items = [CartItem(
            line_id=row['line_id'],
            menu_item_id=row['menu_item_id'],
            name=row['name'],
            unit_price_cents=row['unit_price_cents'],
            image=row['image'],
            quantity=row['quantity'],
            note=row['note']
        ) for row in item_rows]

        return Cart(owner_id=user_id, vendor_id=cart_row['vendor_id'], items=items)

    def _save_cart(self, cart: Cart):
        """整体写回购物车，空购物车直接删除"""
        user_id = cart.owner_id

        self.db.conn.execute("DELETE FROM cart_items WHERE user_id = ?", [user_id])

        if not cart.items:
            self.db.conn.execute("DELETE FROM carts WHERE user_id = ?", [user_id])
            return

        self.db.conn.execute("""
            INSERT INTO carts (user_id, vendor_id, total_cents, updated_at)
            VALUES (?, ?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(user_id) DO UPDATE SET
                vendor_id = excluded.vendor_id,
                total_cents = excluded.total_cents,
                updated_at = CURRENT_TIMESTAMP
        """, [user_id, cart.vendor_id, cart.total_cents])

        self.db.conn.executemany("""
            INSERT INTO cart_items (line_id, user_id, position, menu_item_id, name,
                                    unit_price_cents, image, quantity, note)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, [
            [item.line_id, user_id, position, item.menu_item_id, item.name,
             item.unit_price_cents, item.image, item.quantity, item.note]
            for position, item in enumerate(cart.items)
        ])

    def _orderable_menu_item(self, menu_item_id: int) -> Dict[str, Any]:
        """读取可下单的菜品，不存在或已下架时报错"""
        menu_item = self.support.get_menu_item(menu_item_id)
        if not menu_item:
            raise NotFound(f"菜品ID {menu_item_id} 不存在")
        if not menu_item['is_available']:
            raise ValidationError(f"菜品 '{menu_item['name']}' 暂不可售")
        return menu_item

    def _mutate(self, user_id: int, mutation) -> Dict[str, Any]:
        """在写事务中读取、修改并保存购物车"""
        def mutate_operation():
            cart = self._load_cart(user_id)
            mutation(cart)
            self._save_cart(cart)
            return cart.to_dict()

        return self.db.execute_transaction([mutate_operation], immediate=True)[0]

    def get_cart(self, user_id: int) -> Dict[str, Any]:
        """
        获取顾客当前购物车及总价

        Args:
            user_id: 顾客ID

        Returns:
            购物车字典，总价以分为单位
        """
        self.db.ensure_connected()
        return self._load_cart(user_id).to_dict()

    def load_cart(self, user_id: int) -> Cart:
        """获取购物车对象（供下单使用，调用方可在自己的写事务内调用）"""
        self.db.ensure_connected()
        return self._load_cart(user_id)

    def add_item(self, user_id: int, menu_item_id: int, quantity: int = 1,
                 note: str = None) -> Dict[str, Any]:
        """
        加入菜品

        Args:
            user_id: 顾客ID
            menu_item_id: 菜品ID
            quantity: 数量，至少为1
            note: 备注

        Returns:
            更新后的购物车
        """
        def add(cart: Cart):
            menu_item = self._orderable_menu_item(menu_item_id)
            if cart.items and cart.vendor_id != menu_item['vendor_id']:
                logger.info(f"用户 {user_id} 购物车切换商家 {cart.vendor_id} -> {menu_item['vendor_id']}，原购物车已清空")
            cart_logic.add_item(cart, menu_item, quantity, note)

        result = self._mutate(user_id, add)
        logger.info(f"用户 {user_id} 加入菜品 {menu_item_id} x{quantity}，购物车合计 {result['total_cents']} 分")
        return result

    def update_item(self, user_id: int, line_id: str, quantity: int,
                    note: str = None) -> Dict[str, Any]:
        """修改明细数量（数量必须不小于1）"""
        return self._mutate(
            user_id,
            lambda cart: cart_logic.update_quantity(cart, line_id, quantity, note)
        )

    def remove_item(self, user_id: int, line_id: str) -> Dict[str, Any]:
        """移除明细，明细不存在时不报错"""
        return self._mutate(user_id, lambda cart: cart_logic.remove_item(cart, line_id))

    def clear_cart(self, user_id: int) -> Dict[str, Any]:
        """清空购物车"""
        result = self._mutate(user_id, cart_logic.clear)
        logger.info(f"用户 {user_id} 清空购物车")
        return result

    def build_anonymous_cart(self, lines: List[Dict[str, Any]]) -> Cart:
        """
        根据设备端提交的临时购物车重建购物车

        价格和名称按当前菜单重新快照，已不存在或下架的菜品被丢弃并记录日志。

        Args:
            lines: [{"menu_item_id": int, "quantity": int, "note": str}, ...]

        Raises:
            ValidationError: 临时购物车包含多个商家的菜品
        """
        available = []
        for line in lines:
            menu_item = self.support.get_menu_item(line['menu_item_id'])
            if not menu_item or not menu_item['is_available']:
                logger.info(f"临时购物车中的菜品 {line['menu_item_id']} 不可用，合并时丢弃")
                continue
            available.append((menu_item, line))

        vendor_ids = {menu_item['vendor_id'] for menu_item, _ in available}
        if len(vendor_ids) > 1:
            raise ValidationError(f"临时购物车包含多个商家的菜品: {sorted(vendor_ids)}")

        anonymous = Cart()
        for menu_item, line in available:
            cart_logic.add_item(anonymous, menu_item, line.get('quantity', 1), line.get('note'))
        return anonymous

    def merge_anonymous_cart(self, user_id: int, lines: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        登录后合并临时购物车

        Args:
            user_id: 刚登录的顾客ID
            lines: 临时购物车明细

        Returns:
            合并后的持久购物车
        """
        def merge(cart: Cart):
            anonymous = self.build_anonymous_cart(lines)
            cart_logic.merge_on_authentication(anonymous, cart)

        result = self._mutate(user_id, merge)
        logger.info(f"用户 {user_id} 合并临时购物车 {len(lines)} 行，合计 {result['total_cents']} 分")
        return result
