# -*- coding: utf-8 -*-
# 周边支持业务操作：用户、商家、菜单、评价等协作方数据的读写
# 核心业务只通过这里读取菜单价格和商家归属

import logging
from typing import Optional, Dict, Any

from .manager import DatabaseManager
from .errors import NotFound, ValidationError
from .rating_operations import RatingOperations

logger = logging.getLogger(__name__)

DEFAULT_SCHEDULE = {
    'is_open': True,
    'open_time': '09:00',
    'close_time': '22:00',
    'slot_duration_minutes': 30,
    'max_orders_per_slot': 3
}

REVIEW_STATUSES = ('pending', 'approved', 'rejected')


class SupportingOperations:
    """
    周边支持业务操作类
    """
    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    # ===== 用户 =====

    def create_user(self, name: str, role: str = 'customer', email: str = None) -> Dict[str, Any]:
        """
        创建用户

        Args:
            name: 用户名
            role: 角色 customer/vendor/admin
            email: 邮箱

        Returns:
            新用户信息
        """
        if not name or not name.strip():
            raise ValidationError("用户名不能为空")
        if role not in ('customer', 'vendor', 'admin'):
            raise ValidationError(f"未知的角色: {role}")

        def create_user_operation():
            cursor = self.db.conn.execute("""
                INSERT INTO users (name, email, role, status, created_at)
                VALUES (?, ?, ?, 'active', CURRENT_TIMESTAMP)
            """, [name.strip(), email, role])
            return {
                'user_id': cursor.lastrowid,
                'name': name.strip(),
                'email': email,
                'role': role,
                'status': 'active'
            }

        return self.db.execute_transaction([create_user_operation])[0]

    def get_user_by_id(self, user_id: int) -> Optional[Dict[str, Any]]:
        """
        根据用户ID获取用户信息

        Returns:
            用户信息字典或None
        """
        row = self.db.conn.execute("""
            SELECT user_id, name, email, role, status, created_at
            FROM users WHERE user_id = ?
        """, [user_id]).fetchone()
        return dict(row) if row else None

    def set_user_status(self, user_id: int, status: str) -> Dict[str, Any]:
        """修改用户状态（active/suspended）"""
        if status not in ('active', 'suspended'):
            raise ValidationError(f"无效的用户状态: {status}")

        cursor = self.db.execute_single(
            "UPDATE users SET status = ? WHERE user_id = ?", [status, user_id]
        )
        if cursor.rowcount == 0:
            raise NotFound(f"用户ID {user_id} 不存在")
        return {'user_id': user_id, 'status': status}

    # ===== 商家 =====

    def create_vendor(self, owner_user_id: int, business_name: str,
                      phone_number: str = None) -> Dict[str, Any]:
        """
        创建商家，同时生成一周七天的默认营业时间

        Args:
            owner_user_id: 商家账号的用户ID（角色须为vendor）
            business_name: 商家名称
            phone_number: 联系电话

        Returns:
            新商家信息
        """
        if not business_name or not business_name.strip():
            raise ValidationError("商家名称不能为空")

        def create_vendor_operation():
            owner = self.get_user_by_id(owner_user_id)
            if not owner:
                raise NotFound(f"用户ID {owner_user_id} 不存在")
            if owner['role'] != 'vendor':
                raise ValidationError("只有商家角色的用户可以创建商家")

            cursor = self.db.conn.execute("""
                INSERT INTO vendors (owner_user_id, business_name, phone_number,
                                     rating, num_reviews, is_active, created_at, updated_at)
                VALUES (?, ?, ?, 0, 0, TRUE, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
            """, [owner_user_id, business_name.strip(), phone_number])
            vendor_id = cursor.lastrowid

            self.db.conn.executemany("""
                INSERT INTO vendor_schedules (vendor_id, weekday, is_open, open_time, close_time,
                                              slot_duration_minutes, max_orders_per_slot)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, [
                [vendor_id, weekday, DEFAULT_SCHEDULE['is_open'], DEFAULT_SCHEDULE['open_time'],
                 DEFAULT_SCHEDULE['close_time'], DEFAULT_SCHEDULE['slot_duration_minutes'],
                 DEFAULT_SCHEDULE['max_orders_per_slot']]
                for weekday in range(1, 8)
            ])

            return {
                'vendor_id': vendor_id,
                'owner_user_id': owner_user_id,
                'business_name': business_name.strip(),
                'phone_number': phone_number,
                'rating': 0.0,
                'num_reviews': 0
            }

        result = self.db.execute_transaction([create_vendor_operation])[0]
        logger.info(f"商家 '{result['business_name']}' 创建成功，ID: {result['vendor_id']}")
        return result

    def get_vendor(self, vendor_id: int) -> Optional[Dict[str, Any]]:
        """根据商家ID获取商家信息"""
        row = self.db.conn.execute("""
            SELECT vendor_id, owner_user_id, business_name, phone_number,
                   rating, num_reviews, is_active
            FROM vendors WHERE vendor_id = ?
        """, [vendor_id]).fetchone()
        return dict(row) if row else None

    def get_vendor_by_owner(self, owner_user_id: int) -> Optional[Dict[str, Any]]:
        """根据商家账号用户ID获取商家信息"""
        row = self.db.conn.execute("""
            SELECT vendor_id, owner_user_id, business_name, phone_number,
                   rating, num_reviews, is_active
            FROM vendors WHERE owner_user_id = ?
        """, [owner_user_id]).fetchone()
        return dict(row) if row else None

    def require_vendor(self, vendor_id: int) -> Dict[str, Any]:
        """获取商家信息，不存在时抛出NotFound"""
        vendor = self.get_vendor(vendor_id)
        if not vendor:
            raise NotFound(f"商家ID {vendor_id} 不存在")
        return vendor

    # ===== 菜单 =====

    def create_menu_item(self, vendor_id: int, name: str, price_cents: int,
                         image: str = None, is_available: bool = True) -> Dict[str, Any]:
        """
        创建菜品

        Args:
            vendor_id: 商家ID
            name: 菜品名称
            price_cents: 价格（分）
            image: 图片
            is_available: 是否可售

        Returns:
            新菜品信息
        """
        if not name or not name.strip():
            raise ValidationError("菜品名称不能为空")
        if isinstance(price_cents, bool) or not isinstance(price_cents, int) or price_cents < 0:
            raise ValidationError("菜品价格必须是非负整数（分）")

        def create_menu_item_operation():
            self.require_vendor(vendor_id)
            cursor = self.db.conn.execute("""
                INSERT INTO menu_items (vendor_id, name, price_cents, image, is_available,
                                        created_at, updated_at)
                VALUES (?, ?, ?, COALESCE(?, 'default-food.jpg'), ?, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
            """, [vendor_id, name.strip(), price_cents, image, is_available])
            return self.get_menu_item(cursor.lastrowid)

        return self.db.execute_transaction([create_menu_item_operation])[0]

    def update_menu_item(self, menu_item_id: int, price_cents: int = None,
                         is_available: bool = None) -> Dict[str, Any]:
        """修改菜品价格或可售状态"""
        if price_cents is not None and (not isinstance(price_cents, int) or price_cents < 0):
            raise ValidationError("菜品价格必须是非负整数（分）")

        def update_menu_item_operation():
            if not self.get_menu_item(menu_item_id):
                raise NotFound(f"菜品ID {menu_item_id} 不存在")
            self.db.conn.execute("""
                UPDATE menu_items
                SET price_cents = COALESCE(?, price_cents),
                    is_available = COALESCE(?, is_available),
                    updated_at = CURRENT_TIMESTAMP
                WHERE menu_item_id = ?
            """, [price_cents, is_available, menu_item_id])
            return self.get_menu_item(menu_item_id)

        return self.db.execute_transaction([update_menu_item_operation])[0]

    def get_menu_item(self, menu_item_id: int) -> Optional[Dict[str, Any]]:
        """
        读取菜品当前信息（价格以此为准，不做缓存）

        Returns:
            菜品信息字典或None
        """
        row = self.db.conn.execute("""
            SELECT menu_item_id, vendor_id, name, price_cents, image, is_available
            FROM menu_items WHERE menu_item_id = ?
        """, [menu_item_id]).fetchone()
        if not row:
            return None
        menu_item = dict(row)
        menu_item['is_available'] = bool(menu_item['is_available'])
        return menu_item

    # ===== 评价（每次写入后重算商家评分） =====

    def _require_review(self, review_id: int) -> Dict[str, Any]:
        row = self.db.conn.execute(
            "SELECT review_id, vendor_id, user_id, rating, status FROM reviews WHERE review_id = ?",
            [review_id]
        ).fetchone()
        if not row:
            raise NotFound(f"评价ID {review_id} 不存在")
        return dict(row)

    @staticmethod
    def _check_rating(rating: int):
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError("评分必须是1-5之间的整数")

    def create_review(self, vendor_id: int, user_id: int, rating: int,
                      comment: str = None, status: str = 'pending') -> Dict[str, Any]:
        """创建评价"""
        self._check_rating(rating)
        if status not in REVIEW_STATUSES:
            raise ValidationError(f"无效的评价状态: {status}")

        def create_review_operation():
            self.require_vendor(vendor_id)
            cursor = self.db.conn.execute("""
                INSERT INTO reviews (vendor_id, user_id, rating, comment, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
            """, [vendor_id, user_id, rating, comment, status])
            return {'review_id': cursor.lastrowid, 'vendor_id': vendor_id, 'status': status}

        result = self.db.execute_transaction([create_review_operation])[0]
        RatingOperations(self.db).recompute_vendor_rating(vendor_id)
        return result

    def update_review_rating(self, review_id: int, rating: int) -> Dict[str, Any]:
        """修改评价分数"""
        self._check_rating(rating)

        def update_review_operation():
            review = self._require_review(review_id)
            self.db.conn.execute(
                "UPDATE reviews SET rating = ?, updated_at = CURRENT_TIMESTAMP WHERE review_id = ?",
                [rating, review_id]
            )
            return review

        review = self.db.execute_transaction([update_review_operation])[0]
        RatingOperations(self.db).recompute_vendor_rating(review['vendor_id'])
        return {'review_id': review_id, 'rating': rating}

    def set_review_status(self, review_id: int, status: str) -> Dict[str, Any]:
        """审核评价（pending/approved/rejected）"""
        if status not in REVIEW_STATUSES:
            raise ValidationError(f"无效的评价状态: {status}")

        def set_status_operation():
            review = self._require_review(review_id)
            self.db.conn.execute(
                "UPDATE reviews SET status = ?, updated_at = CURRENT_TIMESTAMP WHERE review_id = ?",
                [status, review_id]
            )
            return review

        review = self.db.execute_transaction([set_status_operation])[0]
        RatingOperations(self.db).recompute_vendor_rating(review['vendor_id'])
        return {'review_id': review_id, 'status': status}

    def delete_review(self, review_id: int) -> Dict[str, Any]:
        """删除评价"""
        def delete_review_operation():
            review = self._require_review(review_id)
            self.db.conn.execute("DELETE FROM reviews WHERE review_id = ?", [review_id])
            return review

        review = self.db.execute_transaction([delete_review_operation])[0]
        RatingOperations(self.db).recompute_vendor_rating(review['vendor_id'])
        return {'review_id': review_id, 'deleted': True}
