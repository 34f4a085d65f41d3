# 预约分配业务操作
# 容量检查与写入在同一个立即写锁事务内由一条条件INSERT完成，避免超额预约

import sqlite3
import time
import logging
from typing import List, Optional, Dict, Any

from .manager import DatabaseManager
from .access import Actor, ensure_related, ensure_vendor_owner
from .errors import (
    InvalidSchedule, InvalidTransition, NotFound, SlotFull,
    Unavailable, ValidationError, VendorClosed
)
from .schedule import compute_slots, normalize_time, weekday_of
from .schedule_operations import ScheduleOperations, parse_date
from .supporting_operations import SupportingOperations

logger = logging.getLogger(__name__)

NOTE_MAX_LENGTH = 500
MAX_GUEST_COUNT = 20
RESERVATION_STATUSES = ('active', 'confirmed', 'rejected', 'completed', 'cancelled')

# 商家(或管理员)可执行的预约状态变更；取消走 cancel
STATUS_TRANSITIONS = {
    'active': ('confirmed', 'rejected'),
    'confirmed': ('completed',),
}

CANCELLABLE_STATUSES = ('active', 'confirmed')


def _is_transient(error: sqlite3.OperationalError) -> bool:
    message = str(error).lower()
    return 'locked' in message or 'busy' in message


class ReservationOperations:
    """
    预约业务操作类
    """
    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager
        self.support = SupportingOperations(db_manager)
        self.schedules = ScheduleOperations(db_manager)

    def _get_reservation(self, reservation_id: int) -> Dict[str, Any]:
        row = self.db.conn.execute("""
            SELECT reservation_id, vendor_id, customer_id, date, slot, note, guest_count,
                   status, created_at, updated_at, cancelled_at, cancelled_by
            FROM reservations WHERE reservation_id = ?
        """, [reservation_id]).fetchone()

        if not row:
            raise NotFound(f"预约ID {reservation_id} 不存在")
        return dict(row)

    def allocate(self, vendor_id: int, date: str, slot: str, customer_id: int,
                 note: str = None, guest_count: int = 1) -> Dict[str, Any]:
        """
        为顾客在商家某日某时段分配一个预约

        Args:
            vendor_id: 商家ID
            date: 日期 YYYY-MM-DD
            slot: 时段开始时间 HH:MM
            customer_id: 顾客ID
            note: 备注
            guest_count: 人数 1-20

        Returns:
            新预约信息

        Raises:
            ValidationError: 日期、时段、人数或备注格式错误
            NotFound: 商家不存在
            VendorClosed: 当日休息或时段不在营业时段内
            SlotFull: 时段已满
        """
        target = parse_date(date)
        try:
            slot = normalize_time(slot)
        except InvalidSchedule:
            raise ValidationError(f"时段格式错误，应为HH:MM: {slot!r}")

        if isinstance(guest_count, bool) or not isinstance(guest_count, int) \
                or not 1 <= guest_count <= MAX_GUEST_COUNT:
            raise ValidationError(f"人数必须在1-{MAX_GUEST_COUNT}之间")
        if note is not None and len(note) > NOTE_MAX_LENGTH:
            raise ValidationError(f"备注长度不能超过{NOTE_MAX_LENGTH}字符")

        def allocate_operation():
            self.support.require_vendor(vendor_id)

            schedule = self.schedules.get_day_schedule(vendor_id, weekday_of(target))
            if not schedule['is_open']:
                raise VendorClosed(f"商家{schedule['day_name']}休息，无法预约")
            if slot not in compute_slots(schedule):
                raise VendorClosed(f"{slot} 不是商家{schedule['day_name']}的可预约时段")

            capacity = schedule['max_orders_per_slot']

            # 条件写入：只有占用容量的预约数(已取消、已拒绝除外)小于容量时才插入
            cursor = self.db.conn.execute("""
                INSERT INTO reservations (vendor_id, customer_id, date, slot, note,
                                          guest_count, status, created_at)
                SELECT ?, ?, ?, ?, ?, ?, 'active', CURRENT_TIMESTAMP
                WHERE (
                    SELECT COUNT(*) FROM reservations
                    WHERE vendor_id = ? AND date = ? AND slot = ?
                      AND status NOT IN ('cancelled', 'rejected')
                ) < ?
            """, [vendor_id, customer_id, target.isoformat(), slot, note, guest_count,
                  vendor_id, target.isoformat(), slot, capacity])

            if cursor.rowcount == 0:
                raise SlotFull(f"{target.isoformat()} {slot} 时段已约满，请选择其他时段")

            return self._get_reservation(cursor.lastrowid)

        reservation = self.db.execute_transaction([allocate_operation], immediate=True)[0]
        logger.info(
            f"预约成功: 预约 {reservation['reservation_id']}，商家 {vendor_id}，"
            f"{reservation['date']} {reservation['slot']}，顾客 {customer_id}"
        )
        return reservation

    def allocate_with_retry(self, vendor_id: int, date: str, slot: str, customer_id: int,
                            note: str = None, guest_count: int = 1,
                            attempts: int = 3, backoff_seconds: float = 0.05) -> Dict[str, Any]:
        """
        分配预约，存储层暂时繁忙时有限次重试

        Args:
            attempts: 最多尝试次数
            backoff_seconds: 每次重试前等待的基础时间，按尝试次数线性增加

        Raises:
            Unavailable: 重试耗尽仍失败
        """
        last_error = None
        for attempt in range(1, attempts + 1):
            try:
                return self.allocate(vendor_id, date, slot, customer_id, note, guest_count)
            except sqlite3.OperationalError as e:
                if not _is_transient(e):
                    raise
                last_error = e
                logger.warning(f"预约写入繁忙，第 {attempt}/{attempts} 次尝试失败: {str(e)}")
                if attempt < attempts:
                    time.sleep(backoff_seconds * attempt)

        logger.error(f"预约写入重试 {attempts} 次后仍失败: {str(last_error)}")
        raise Unavailable("预约服务暂时不可用，请稍后重试")

    def cancel(self, reservation_id: int, actor: Actor) -> Dict[str, Any]:
        """
        取消预约，释放对应时段的一个容量

        Args:
            reservation_id: 预约ID
            actor: 操作者，须为预约顾客本人、对应商家或管理员

        Raises:
            NotFound: 预约不存在
            Forbidden: 无权取消
            InvalidTransition: 预约不是待确认或已确认状态
        """
        def cancel_operation():
            reservation = self._get_reservation(reservation_id)
            ensure_related(actor, reservation['customer_id'], reservation['vendor_id'], "取消")

            cursor = self.db.conn.execute("""
                UPDATE reservations
                SET status = 'cancelled', cancelled_at = CURRENT_TIMESTAMP, cancelled_by = ?,
                    updated_at = CURRENT_TIMESTAMP
                WHERE reservation_id = ? AND status IN (?, ?)
            """, [actor.user_id, reservation_id, *CANCELLABLE_STATUSES])

            if cursor.rowcount == 0:
                raise InvalidTransition(f"预约当前状态为 {reservation['status']}，不能取消")

            return self._get_reservation(reservation_id)

        reservation = self.db.execute_transaction([cancel_operation], immediate=True)[0]
        logger.info(f"预约 {reservation_id} 已被用户 {actor.user_id}({actor.role}) 取消")
        return reservation

    def set_status(self, reservation_id: int, actor: Actor, target_status: str) -> Dict[str, Any]:
        """
        商家处理预约：确认、拒绝或标记完成

        拒绝后该预约不再占用时段容量。

        Args:
            reservation_id: 预约ID
            actor: 操作者，须为预约对应的商家或管理员
            target_status: confirmed / rejected / completed

        Raises:
            ValidationError: 未知的目标状态
            NotFound: 预约不存在
            Forbidden: 不是该商家
            InvalidTransition: 当前状态不允许变更到目标状态
        """
        if target_status not in RESERVATION_STATUSES:
            raise ValidationError(f"无效的预约状态: {target_status}")
        if target_status == 'cancelled':
            raise ValidationError("取消预约请使用取消接口")

        def set_status_operation():
            reservation = self._get_reservation(reservation_id)
            ensure_vendor_owner(actor, reservation['vendor_id'], allow_admin=True)

            current = reservation['status']
            if target_status not in STATUS_TRANSITIONS.get(current, ()):
                raise InvalidTransition(f"预约状态不能从 {current} 变更为 {target_status}")

            cursor = self.db.conn.execute("""
                UPDATE reservations
                SET status = ?, updated_at = CURRENT_TIMESTAMP
                WHERE reservation_id = ? AND status = ?
            """, [target_status, reservation_id, current])

            if cursor.rowcount == 0:
                raise InvalidTransition(f"预约 {reservation_id} 状态已被修改，请刷新后重试")

            return self._get_reservation(reservation_id)

        reservation = self.db.execute_transaction([set_status_operation], immediate=True)[0]
        logger.info(
            f"预约 {reservation_id} 状态变更为 {target_status}，"
            f"操作者 {actor.user_id}({actor.role})"
        )
        return reservation

    def get_reservation(self, reservation_id: int, actor: Actor) -> Dict[str, Any]:
        """查看预约详情（顾客本人、对应商家或管理员）"""
        reservation = self._get_reservation(reservation_id)
        ensure_related(actor, reservation['customer_id'], reservation['vendor_id'], "查看")
        return reservation

    def list_for_customer(self, customer_id: int, status: str = None) -> List[Dict[str, Any]]:
        """顾客的预约列表，按日期和时段排序"""
        if status is not None and status not in RESERVATION_STATUSES:
            raise ValidationError(f"无效的预约状态: {status}")

        query = """
            SELECT reservation_id, vendor_id, customer_id, date, slot, note, guest_count,
                   status, created_at, updated_at, cancelled_at, cancelled_by
            FROM reservations
            WHERE customer_id = ?
        """
        params = [customer_id]
        if status:
            query += " AND status = ?"
            params.append(status)
        query += " ORDER BY date ASC, slot ASC"

        return [dict(row) for row in self.db.conn.execute(query, params).fetchall()]

    def list_for_vendor(self, actor: Actor, vendor_id: int, date: Optional[str] = None,
                        status: str = None) -> List[Dict[str, Any]]:
        """
        商家的预约列表

        Args:
            actor: 操作者，须为该商家或管理员
            vendor_id: 商家ID
            date: 可选日期过滤 YYYY-MM-DD
            status: 可选状态过滤
        """
        self.support.require_vendor(vendor_id)
        ensure_vendor_owner(actor, vendor_id, allow_admin=True)

        if status is not None and status not in RESERVATION_STATUSES:
            raise ValidationError(f"无效的预约状态: {status}")

        query = """
            SELECT reservation_id, vendor_id, customer_id, date, slot, note, guest_count,
                   status, created_at, updated_at, cancelled_at, cancelled_by
            FROM reservations
            WHERE vendor_id = ?
        """
        params = [vendor_id]
        if date:
            query += " AND date = ?"
            params.append(parse_date(date).isoformat())
        if status:
            query += " AND status = ?"
            params.append(status)
        query += " ORDER BY date ASC, slot ASC"

        return [dict(row) for row in self.db.conn.execute(query, params).fetchall()]
