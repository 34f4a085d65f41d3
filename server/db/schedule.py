# 营业时间与可预约时段计算
# 纯函数，不访问数据库

import re
from datetime import date
from typing import List, Dict, Any

from .errors import InvalidSchedule

TIME_PATTERN = re.compile(r'^([01]?[0-9]|2[0-3]):([0-5][0-9])$')

WEEKDAY_NAMES = {
    1: '周一', 2: '周二', 3: '周三', 4: '周四', 5: '周五', 6: '周六', 7: '周日'
}


def parse_time(value: str) -> int:
    """
    把 HH:MM 转换为当天的分钟数

    Raises:
        InvalidSchedule: 格式错误
    """
    match = TIME_PATTERN.match(value or '')
    if not match:
        raise InvalidSchedule(f"时间格式错误，应为HH:MM: {value!r}")
    return int(match.group(1)) * 60 + int(match.group(2))


def format_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time(value: str) -> str:
    """9:00 -> 09:00"""
    return format_time(parse_time(value))


def weekday_of(day: date) -> int:
    """日期对应的星期，1为周一，7为周日"""
    return day.isoweekday()


def validate_day_schedule(schedule: Dict[str, Any]) -> Dict[str, Any]:
    """
    校验单日营业配置并返回规范化后的副本

    Args:
        schedule: 包含 weekday/is_open/open_time/close_time/
                  slot_duration_minutes/max_orders_per_slot 的字典

    Returns:
        规范化后的配置

    Raises:
        InvalidSchedule: 配置不合法
    """
    weekday = schedule.get('weekday')
    if isinstance(weekday, bool) or not isinstance(weekday, int) or not 1 <= weekday <= 7:
        raise InvalidSchedule(f"星期必须是1-7之间的整数: {weekday!r}")

    day_name = WEEKDAY_NAMES[weekday]
    open_minutes = parse_time(schedule.get('open_time'))
    close_minutes = parse_time(schedule.get('close_time'))
    is_open = bool(schedule.get('is_open'))

    if is_open and open_minutes >= close_minutes:
        raise InvalidSchedule(f"{day_name}营业时间无效：开始时间必须早于结束时间")

    duration = schedule.get('slot_duration_minutes')
    if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
        raise InvalidSchedule(f"{day_name}时段长度必须是正整数（分钟）")

    capacity = schedule.get('max_orders_per_slot')
    if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity <= 0:
        raise InvalidSchedule(f"{day_name}每时段最大预约数必须是正整数")

    return {
        'weekday': weekday,
        'is_open': is_open,
        'open_time': format_time(open_minutes),
        'close_time': format_time(close_minutes),
        'slot_duration_minutes': duration,
        'max_orders_per_slot': capacity
    }


def compute_slots(schedule: Dict[str, Any]) -> List[str]:
    """
    根据单日营业配置计算可预约时段

    从开始时间起，每隔 slot_duration_minutes 产生一个时段，
    当前时间不再早于结束时间即停止。休息日返回空列表。

    Args:
        schedule: 单日营业配置

    Returns:
        按时间排序的 HH:MM 列表
    """
    if not schedule.get('is_open'):
        return []

    duration = schedule['slot_duration_minutes']
    if duration <= 0:
        raise InvalidSchedule("时段长度必须是正整数（分钟）")

    current = parse_time(schedule['open_time'])
    close = parse_time(schedule['close_time'])

    slots = []
    while current < close:
        slots.append(format_time(current))
        current += duration
    return slots
