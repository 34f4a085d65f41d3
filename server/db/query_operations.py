# 查询业务操作，统一使用JSON格式返回数据
# 订单列表按操作者身份限定范围：管理员全部，商家本店，顾客本人

from typing import List, Optional, Dict, Any

from .manager import DatabaseManager
from .access import Actor, ensure_vendor_owner, validate_actor
from .errors import Forbidden, ValidationError
from .order_operations import STATUS_TEXT
from .supporting_operations import SupportingOperations
from utils.validators import validate_order_status

MAX_PAGE_SIZE = 100


class QueryOperations:
    """
    查询业务操作类
    """
    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager
        self.support = SupportingOperations(db_manager)

    def _validate_pagination(self, offset: int, limit: int, max_limit: int):
        """验证分页参数"""
        if offset < 0:
            raise ValidationError("偏移量不能为负数")
        if limit <= 0 or limit > max_limit:
            raise ValidationError(f"每页条数必须在1-{max_limit}之间")

    @staticmethod
    def _format_order(row) -> Dict[str, Any]:
        order = dict(row)
        order['total_amount'] = order['total_cents'] / 100
        order['status_text'] = STATUS_TEXT.get(order['status'], order['status'])
        return order

    def _query_orders(self, conditions: List[str], params: List[Any],
                      offset: int, limit: int) -> Dict[str, Any]:
        """按条件分页查询订单，最新的在前"""
        self._validate_pagination(offset, limit, MAX_PAGE_SIZE)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        orders_result = self.db.conn.execute(f"""
            SELECT
                o.order_id,
                o.customer_id,
                o.vendor_id,
                v.business_name,
                o.total_cents,
                o.delivery_address,
                o.contact_phone,
                o.payment_method,
                o.status,
                o.cancel_reason,
                o.created_at,
                o.updated_at,
                (SELECT COUNT(*) FROM order_items i WHERE i.order_id = o.order_id) AS item_count
            FROM orders o
            JOIN vendors v ON v.vendor_id = o.vendor_id
            {where}
            ORDER BY o.created_at DESC, o.order_id DESC
            LIMIT ? OFFSET ?
        """, params + [limit, offset]).fetchall()

        total_count = self.db.conn.execute(
            f"SELECT COUNT(*) FROM orders o {where}", params
        ).fetchone()[0]

        orders_list = [self._format_order(row) for row in orders_result]

        return {
            "success": True,
            "data": {
                "orders": orders_list,
                "pagination": {
                    "total_count": total_count,
                    "current_page": offset // limit + 1,
                    "per_page": limit,
                    "total_pages": (total_count + limit - 1) // limit,
                    "has_next": offset + limit < total_count,
                    "has_prev": offset > 0
                }
            },
            "message": f"查询成功，共找到 {len(orders_list)} 条订单记录"
        }

    @staticmethod
    def _status_condition(status: Optional[str], conditions: List[str], params: List[Any]):
        if status is None:
            return
        if not validate_order_status(status):
            raise ValidationError(f"无效的订单状态: {status}")
        conditions.append("o.status = ?")
        params.append(status)

    # 1. 顾客本人的订单
    def query_customer_orders(self, customer_id: int, status: str = None,
                              offset: int = 0, limit: int = 20) -> Dict[str, Any]:
        """
        查询顾客的订单历史

        Args:
            customer_id: 顾客ID
            status: 可选状态过滤
            offset: 偏移量
            limit: 每页条数，最大100

        Returns:
            统一JSON格式的订单列表和分页信息
        """
        conditions = ["o.customer_id = ?"]
        params = [customer_id]
        self._status_condition(status, conditions, params)
        return self._query_orders(conditions, params, offset, limit)

    # 2. 商家收到的订单
    def query_vendor_orders(self, actor: Actor, vendor_id: int, status: str = None,
                            offset: int = 0, limit: int = 20) -> Dict[str, Any]:
        """
        查询商家收到的订单（商家本人或管理员）

        Raises:
            NotFound: 商家不存在
            Forbidden: 无权查看
        """
        self.support.require_vendor(vendor_id)
        ensure_vendor_owner(actor, vendor_id, allow_admin=True)

        conditions = ["o.vendor_id = ?"]
        params = [vendor_id]
        self._status_condition(status, conditions, params)
        return self._query_orders(conditions, params, offset, limit)

    # 3. 按身份限定范围的订单列表
    def query_orders(self, actor: Actor, status: str = None,
                     offset: int = 0, limit: int = 20) -> Dict[str, Any]:
        """
        订单列表：管理员查看全部，商家查看本店，顾客查看本人

        Args:
            actor: 操作者
            status: 可选状态过滤
        """
        validate_actor(actor)

        conditions = []
        params = []
        if actor.role == 'vendor':
            if actor.vendor_id is None:
                raise Forbidden("该商家账号尚未开店")
            conditions.append("o.vendor_id = ?")
            params.append(actor.vendor_id)
        elif actor.role == 'customer':
            conditions.append("o.customer_id = ?")
            params.append(actor.user_id)

        self._status_condition(status, conditions, params)
        return self._query_orders(conditions, params, offset, limit)

    # 4. 订单状态统计
    def query_order_status_summary(self, actor: Actor) -> Dict[str, Any]:
        """
        按状态统计订单数量（范围同订单列表）

        Returns:
            {'counts': {status: count}, 'total': int}
        """
        validate_actor(actor)

        where = ""
        params = []
        if actor.role == 'vendor':
            if actor.vendor_id is None:
                raise Forbidden("该商家账号尚未开店")
            where = "WHERE vendor_id = ?"
            params.append(actor.vendor_id)
        elif actor.role == 'customer':
            where = "WHERE customer_id = ?"
            params.append(actor.user_id)

        rows = self.db.conn.execute(f"""
            SELECT status, COUNT(*) AS cnt
            FROM orders {where}
            GROUP BY status
        """, params).fetchall()

        counts = {status: 0 for status in STATUS_TEXT}
        for row in rows:
            counts[row['status']] = row['cnt']

        return {
            "success": True,
            "data": {
                "counts": counts,
                "total": sum(counts.values())
            },
            "message": "统计成功"
        }
