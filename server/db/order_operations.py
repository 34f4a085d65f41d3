# 订单生命周期业务操作
# 下单时按当前菜单价格重新计价；状态流转统一由 TRANSITIONS 表决定

import logging
from datetime import datetime, timezone
from typing import List, Dict, Any

from .manager import DatabaseManager
from .access import Actor, ensure_related
from .errors import EmptyCart, Forbidden, InvalidQuantity, InvalidTransition, NotFound, ValidationError
from .supporting_operations import SupportingOperations
from utils.validators import (
    normalize_phone, validate_contact_phone, validate_order_status,
    validate_payment_method, PAYMENT_METHODS
)

logger = logging.getLogger(__name__)

ORDER_STATUSES = ['pending', 'accepted', 'preparing', 'out_for_delivery',
                  'delivered', 'completed', 'cancelled']

STATUS_TEXT = {
    'pending': '待接单',
    'accepted': '已接单',
    'preparing': '制作中',
    'out_for_delivery': '配送中',
    'delivered': '已送达',
    'completed': '已完成',
    'cancelled': '已取消'
}

# (当前状态, 目标状态) -> 允许的操作者关系
TRANSITIONS = {
    ('pending', 'accepted'): {'vendor', 'admin'},
    ('pending', 'cancelled'): {'vendor', 'admin', 'customer'},
    ('accepted', 'preparing'): {'vendor', 'admin'},
    ('accepted', 'cancelled'): {'vendor', 'admin', 'customer'},
    ('preparing', 'out_for_delivery'): {'vendor', 'admin'},
    ('preparing', 'cancelled'): {'admin'},
    ('out_for_delivery', 'delivered'): {'vendor', 'admin'},
    ('out_for_delivery', 'cancelled'): {'admin'},
    ('delivered', 'completed'): {'customer', 'admin'},
}

MILESTONE_COLUMNS = {
    'delivered': 'delivered_at',
    'completed': 'completed_at',
    'cancelled': 'cancelled_at'
}

DEFAULT_CANCEL_REASONS = {
    'customer': '顾客取消',
    'vendor': '商家取消',
    'admin': '管理员取消'
}


def _now() -> str:
    return datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S')


def allowed_transition(current: str, target: str, relation: str) -> bool:
    """判断某关系的操作者能否把订单从 current 改为 target"""
    return relation in TRANSITIONS.get((current, target), set())


class OrderOperations:
    """
    订单业务操作类
    """
    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager
        self.support = SupportingOperations(db_manager)

    def _get_order_row(self, order_id: int) -> Dict[str, Any]:
        row = self.db.conn.execute("""
            SELECT order_id, customer_id, vendor_id, total_cents, delivery_address,
                   contact_phone, payment_method, status, cancel_reason,
                   created_at, updated_at, delivered_at, completed_at, cancelled_at
            FROM orders WHERE order_id = ?
        """, [order_id]).fetchone()

        if not row:
            raise NotFound(f"订单ID {order_id} 不存在")
        return dict(row)

    def _order_detail(self, order_id: int) -> Dict[str, Any]:
        """订单详情，包含明细和状态历史"""
        order = self._get_order_row(order_id)

        items = self.db.conn.execute("""
            SELECT line_no, menu_item_id, name, unit_price_cents, quantity, line_total_cents
            FROM order_items WHERE order_id = ?
            ORDER BY line_no ASC
        """, [order_id]).fetchall()

        history = self.db.conn.execute("""
            SELECT status, actor_id, actor_role, note, created_at
            FROM order_status_history WHERE order_id = ?
            ORDER BY history_id ASC
        """, [order_id]).fetchall()

        order['status_text'] = STATUS_TEXT.get(order['status'], order['status'])
        order['items'] = [dict(row) for row in items]
        order['status_history'] = [dict(row) for row in history]
        return order

    def _append_history(self, order_id: int, status: str, actor: Actor, note: str = None):
        self.db.conn.execute("""
            INSERT INTO order_status_history (order_id, status, actor_id, actor_role, note, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, [order_id, status, actor.user_id, actor.role, note, _now()])

    @staticmethod
    def _combine_snapshot(cart_snapshot: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """校验快照数量并合并重复菜品，保持首次出现的顺序"""
        combined = {}
        for line in cart_snapshot:
            quantity = line.get('quantity')
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
                raise InvalidQuantity(f"菜品 {line.get('menu_item_id')} 数量无效: {quantity!r}")
            menu_item_id = line['menu_item_id']
            combined[menu_item_id] = combined.get(menu_item_id, 0) + quantity
        return [{'menu_item_id': k, 'quantity': v} for k, v in combined.items()]

    @staticmethod
    def _validate_contact(delivery_address: str, contact_phone: str, payment_method: str):
        """校验配送地址、联系电话和支付方式"""
        if not delivery_address or not delivery_address.strip():
            raise ValidationError("配送地址不能为空")
        if not contact_phone or not contact_phone.strip():
            raise ValidationError("联系电话不能为空")
        if not validate_contact_phone(contact_phone):
            raise ValidationError("联系电话格式错误（例如 05xxxxxxxxx）")
        if not validate_payment_method(payment_method):
            raise ValidationError(f"支付方式必须是 {', '.join(PAYMENT_METHODS)} 之一")

    def _insert_order(self, customer_id: int, cart_snapshot: List[Dict[str, Any]],
                      delivery_address: str, contact_phone: str,
                      payment_method: str) -> Dict[str, Any]:
        """
        在当前写事务中计价并写入订单、明细和初始状态历史，然后清空持久购物车

        调用方负责开启 BEGIN IMMEDIATE 事务
        """
        if not cart_snapshot:
            raise EmptyCart("购物车为空，无法下单")

        lines = self._combine_snapshot(cart_snapshot)

        # 按当前菜单重新计价
        priced_lines = []
        vendor_ids = set()
        for line in lines:
            menu_item = self.support.get_menu_item(line['menu_item_id'])
            if not menu_item:
                raise ValidationError(f"菜品ID {line['menu_item_id']} 不存在")
            if not menu_item['is_available']:
                raise ValidationError(f"菜品 '{menu_item['name']}' 暂不可售")
            vendor_ids.add(menu_item['vendor_id'])
            priced_lines.append({
                'menu_item_id': menu_item['menu_item_id'],
                'name': menu_item['name'],
                'unit_price_cents': menu_item['price_cents'],
                'quantity': line['quantity'],
                'line_total_cents': menu_item['price_cents'] * line['quantity']
            })

        if len(vendor_ids) != 1:
            raise ValidationError("一个订单只能包含同一商家的菜品")
        vendor_id = vendor_ids.pop()
        total_cents = sum(line['line_total_cents'] for line in priced_lines)
        now = _now()

        cursor = self.db.conn.execute("""
            INSERT INTO orders (customer_id, vendor_id, total_cents, delivery_address,
                                contact_phone, payment_method, status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, 'pending', ?, ?)
        """, [customer_id, vendor_id, total_cents, delivery_address.strip(),
              normalize_phone(contact_phone), payment_method, now, now])
        order_id = cursor.lastrowid

        self.db.conn.executemany("""
            INSERT INTO order_items (order_id, line_no, menu_item_id, name,
                                     unit_price_cents, quantity, line_total_cents)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, [
            [order_id, line_no, line['menu_item_id'], line['name'],
             line['unit_price_cents'], line['quantity'], line['line_total_cents']]
            for line_no, line in enumerate(priced_lines, start=1)
        ])

        self._append_history(order_id, 'pending', Actor(user_id=customer_id, role='customer'))

        # 下单成功后清空持久购物车
        self.db.conn.execute("DELETE FROM cart_items WHERE user_id = ?", [customer_id])
        self.db.conn.execute("DELETE FROM carts WHERE user_id = ?", [customer_id])

        return self._order_detail(order_id)

    @staticmethod
    def _log_created(order: Dict[str, Any]):
        logger.info(
            f"订单创建成功: 订单 {order['order_id']}，顾客 {order['customer_id']}，"
            f"商家 {order['vendor_id']}，金额 {order['total_cents'] / 100:.2f}"
        )

    def create_order(self, customer_id: int, cart_snapshot: List[Dict[str, Any]],
                     delivery_address: str, contact_phone: str,
                     payment_method: str = 'cash') -> Dict[str, Any]:
        """
        根据购物车快照创建订单

        单价一律以下单时刻的菜单价格为准，不使用客户端或购物车里的价格快照。
        成功后在同一事务中清空顾客的持久购物车。

        Args:
            customer_id: 顾客ID
            cart_snapshot: [{"menu_item_id": int, "quantity": int}, ...]
            delivery_address: 配送地址
            contact_phone: 联系电话
            payment_method: 支付方式标签 cash/credit_card/online

        Returns:
            订单详情

        Raises:
            EmptyCart: 快照为空
            ValidationError: 地址、电话、支付方式或菜品不合法
        """
        if not cart_snapshot:
            raise EmptyCart("购物车为空，无法下单")
        self._validate_contact(delivery_address, contact_phone, payment_method)

        def create_order_operation():
            return self._insert_order(customer_id, cart_snapshot, delivery_address,
                                      contact_phone, payment_method)

        order = self.db.execute_transaction([create_order_operation], immediate=True)[0]
        self._log_created(order)
        return order

    def place_order_from_cart(self, actor: Actor, delivery_address: str, contact_phone: str,
                              payment_method: str = 'cash') -> Dict[str, Any]:
        """
        用顾客当前的持久购物车下单

        购物车的读取、下单和清空在同一个写事务内完成。

        Raises:
            Forbidden: 操作者不是顾客
            EmptyCart: 购物车为空
        """
        if actor.role != 'customer':
            raise Forbidden("只有顾客可以下单")
        self._validate_contact(delivery_address, contact_phone, payment_method)

        from .cart_operations import CartOperations
        cart_ops = CartOperations(self.db)

        def place_order_operation():
            cart = cart_ops.load_cart(actor.user_id)
            return self._insert_order(actor.user_id, cart.snapshot(), delivery_address,
                                      contact_phone, payment_method)

        order = self.db.execute_transaction([place_order_operation], immediate=True)[0]
        self._log_created(order)
        return order

    def transition(self, order_id: int, actor: Actor, target_status: str,
                   note: str = None) -> Dict[str, Any]:
        """
        推进订单状态

        先校验操作者与订单的关系，再按 TRANSITIONS 校验流转是否合法。
        成功时追加一条状态历史；失败时订单和历史都不变。

        Args:
            order_id: 订单ID
            actor: 操作者
            target_status: 目标状态
            note: 备注，取消时作为取消原因

        Returns:
            更新后的订单详情

        Raises:
            ValidationError: 目标状态未知
            NotFound: 订单不存在
            Forbidden: 操作者与订单无关
            InvalidTransition: 流转不被允许
        """
        if not validate_order_status(target_status):
            raise ValidationError(f"无效的订单状态: {target_status}")

        def transition_operation():
            order = self._get_order_row(order_id)
            relation = ensure_related(actor, order['customer_id'], order['vendor_id'], "修改")
            current = order['status']

            if not allowed_transition(current, target_status, relation):
                raise InvalidTransition(
                    f"不能由{STATUS_TEXT[current]}变更为{STATUS_TEXT[target_status]}"
                    f"（操作者: {relation}）"
                )

            now = _now()
            assignments = ["status = ?", "updated_at = ?"]
            params = [target_status, now]

            milestone = MILESTONE_COLUMNS.get(target_status)
            if milestone:
                assignments.append(f"{milestone} = ?")
                params.append(now)
            if target_status == 'cancelled':
                assignments.append("cancel_reason = ?")
                params.append(note or DEFAULT_CANCEL_REASONS[relation])

            # 以读取到的状态为条件更新，防止并发流转覆盖
            cursor = self.db.conn.execute(
                f"UPDATE orders SET {', '.join(assignments)} WHERE order_id = ? AND status = ?",
                params + [order_id, current]
            )
            if cursor.rowcount == 0:
                raise InvalidTransition("订单状态已被其他操作修改，请刷新后重试")

            self._append_history(order_id, target_status, actor, note)
            return self._order_detail(order_id)

        order = self.db.execute_transaction([transition_operation], immediate=True)[0]
        logger.info(
            f"订单 {order_id} 状态变更为 {target_status}，操作者 {actor.user_id}({actor.role})"
        )
        return order

    def get_order(self, order_id: int, actor: Actor) -> Dict[str, Any]:
        """
        查看订单详情（顾客本人、对应商家或管理员）

        Raises:
            NotFound: 订单不存在
            Forbidden: 无权查看
        """
        order = self._get_order_row(order_id)
        ensure_related(actor, order['customer_id'], order['vendor_id'], "查看")
        return self._order_detail(order_id)
