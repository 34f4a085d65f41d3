# 商家营业时间业务操作

import logging
from datetime import datetime, date
from typing import List, Dict, Any

from .manager import DatabaseManager
from .access import Actor, ensure_vendor_owner
from .errors import InvalidSchedule, NotFound, ValidationError
from .schedule import validate_day_schedule, compute_slots, weekday_of, WEEKDAY_NAMES
from .supporting_operations import SupportingOperations

logger = logging.getLogger(__name__)


def parse_date(value: str) -> date:
    """解析 YYYY-MM-DD 日期"""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"日期格式错误，应为YYYY-MM-DD: {value!r}")


class ScheduleOperations:
    """
    营业时间业务操作类
    """
    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager
        self.support = SupportingOperations(db_manager)

    @staticmethod
    def _row_to_schedule(row) -> Dict[str, Any]:
        return {
            'weekday': row['weekday'],
            'day_name': WEEKDAY_NAMES[row['weekday']],
            'is_open': bool(row['is_open']),
            'open_time': row['open_time'],
            'close_time': row['close_time'],
            'slot_duration_minutes': row['slot_duration_minutes'],
            'max_orders_per_slot': row['max_orders_per_slot']
        }

    def get_day_schedule(self, vendor_id: int, weekday: int) -> Dict[str, Any]:
        """
        读取商家某一天的营业配置

        Raises:
            NotFound: 商家不存在
        """
        row = self.db.conn.execute("""
            SELECT weekday, is_open, open_time, close_time,
                   slot_duration_minutes, max_orders_per_slot
            FROM vendor_schedules
            WHERE vendor_id = ? AND weekday = ?
        """, [vendor_id, weekday]).fetchone()

        if not row:
            raise NotFound(f"商家ID {vendor_id} 不存在或未配置营业时间")
        return self._row_to_schedule(row)

    def get_weekly_schedule(self, vendor_id: int) -> Dict[str, Any]:
        """
        读取商家一周营业配置

        Returns:
            {'vendor_id', 'days': [七天配置，周一在前]}
        """
        self.support.require_vendor(vendor_id)

        rows = self.db.conn.execute("""
            SELECT weekday, is_open, open_time, close_time,
                   slot_duration_minutes, max_orders_per_slot
            FROM vendor_schedules
            WHERE vendor_id = ?
            ORDER BY weekday ASC
        """, [vendor_id]).fetchall()

        return {
            'vendor_id': vendor_id,
            'days': [self._row_to_schedule(row) for row in rows]
        }

    def _ensure_bookings_fit(self, vendor_id: int, validated: List[Dict[str, Any]]):
        """
        今天及以后仍占用容量的预约必须落在新配置的时段内，且每时段数量不超过新容量

        在写事务内调用，与配置写入之间不会插入新的预约。

        Raises:
            InvalidSchedule: 新配置会使已有预约失效或超额
        """
        by_weekday = {day['weekday']: day for day in validated}

        rows = self.db.conn.execute("""
            SELECT date, slot, COUNT(*) AS booked
            FROM reservations
            WHERE vendor_id = ? AND date >= ? AND status NOT IN ('cancelled', 'rejected')
            GROUP BY date, slot
        """, [vendor_id, date.today().isoformat()]).fetchall()

        slots_by_weekday = {}
        for row in rows:
            weekday = weekday_of(parse_date(row['date']))
            day = by_weekday.get(weekday)
            if day is None:
                continue

            if weekday not in slots_by_weekday:
                slots_by_weekday[weekday] = compute_slots(day)
            day_name = WEEKDAY_NAMES[weekday]

            if row['slot'] not in slots_by_weekday[weekday]:
                raise InvalidSchedule(
                    f"{row['date']} {row['slot']} 已有 {row['booked']} 个预约，"
                    f"新的{day_name}配置不再包含该时段"
                )
            if row['booked'] > day['max_orders_per_slot']:
                raise InvalidSchedule(
                    f"{row['date']} {row['slot']} 已有 {row['booked']} 个预约，"
                    f"{day_name}每时段容量不能低于此数"
                )

    def update_weekly_schedule(self, actor: Actor, vendor_id: int,
                               days: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        商家修改营业配置

        先校验所有提交的天，全部合法后在同一事务中写入；任一天不合法则不写入任何数据。
        已有预约与新配置冲突（时段被移除、当天休息或容量低于已预约数）时同样整体拒绝。

        Args:
            actor: 操作者，必须是该商家
            vendor_id: 商家ID
            days: 单日配置列表，每个weekday最多出现一次

        Returns:
            修改后的一周配置

        Raises:
            Forbidden: 操作者不是该商家
            InvalidSchedule: 配置不合法，或与已有预约冲突
        """
        self.support.require_vendor(vendor_id)
        ensure_vendor_owner(actor, vendor_id)

        if not days:
            raise InvalidSchedule("至少需要提交一天的营业配置")

        validated = [validate_day_schedule(day) for day in days]

        weekdays = [day['weekday'] for day in validated]
        if len(set(weekdays)) != len(weekdays):
            raise InvalidSchedule("同一星期不能重复提交")

        def update_schedule_operation():
            self._ensure_bookings_fit(vendor_id, validated)
            for day in validated:
                self.db.conn.execute("""
                    UPDATE vendor_schedules
                    SET is_open = ?, open_time = ?, close_time = ?,
                        slot_duration_minutes = ?, max_orders_per_slot = ?,
                        updated_at = CURRENT_TIMESTAMP
                    WHERE vendor_id = ? AND weekday = ?
                """, [day['is_open'], day['open_time'], day['close_time'],
                      day['slot_duration_minutes'], day['max_orders_per_slot'],
                      vendor_id, day['weekday']])

        self.db.execute_transaction([update_schedule_operation], immediate=True)
        logger.info(f"商家 {vendor_id} 更新营业时间: 星期 {sorted(weekdays)}")

        return self.get_weekly_schedule(vendor_id)

    def get_slots(self, vendor_id: int, day: str) -> Dict[str, Any]:
        """
        查询商家某日的可预约时段及剩余容量

        Args:
            vendor_id: 商家ID
            day: 日期 YYYY-MM-DD

        Returns:
            {'vendor_id', 'date', 'weekday', 'is_open', 'max_orders_per_slot',
             'slots': ['HH:MM', ...], 'availability': [{'slot', 'booked', 'remaining'}]}
        """
        target = parse_date(day)
        self.support.require_vendor(vendor_id)

        schedule = self.get_day_schedule(vendor_id, weekday_of(target))
        slots = compute_slots(schedule)

        booked_rows = self.db.conn.execute("""
            SELECT slot, COUNT(*) AS booked
            FROM reservations
            WHERE vendor_id = ? AND date = ? AND status NOT IN ('cancelled', 'rejected')
            GROUP BY slot
        """, [vendor_id, target.isoformat()]).fetchall()
        booked = {row['slot']: row['booked'] for row in booked_rows}

        capacity = schedule['max_orders_per_slot']
        availability = [{
            'slot': slot,
            'booked': booked.get(slot, 0),
            'remaining': max(capacity - booked.get(slot, 0), 0)
        } for slot in slots]

        return {
            'vendor_id': vendor_id,
            'date': target.isoformat(),
            'weekday': schedule['weekday'],
            'is_open': schedule['is_open'],
            'max_orders_per_slot': capacity,
            'slots': slots,
            'availability': availability
        }
