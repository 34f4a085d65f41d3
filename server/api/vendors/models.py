# 商家相关的数据模型

from typing import List
from pydantic import BaseModel, Field


class DayScheduleModel(BaseModel):
    """单日营业配置"""
    weekday: int = Field(..., description="星期，1为周一，7为周日")
    is_open: bool = Field(True, description="是否营业")
    open_time: str = Field("09:00", description="开始时间 HH:MM")
    close_time: str = Field("22:00", description="结束时间 HH:MM")
    slot_duration_minutes: int = Field(30, description="时段长度（分钟）")
    max_orders_per_slot: int = Field(3, description="每时段最大预约数")


class UpdateScheduleRequest(BaseModel):
    """修改营业时间请求模型，可只提交部分天"""
    days: List[DayScheduleModel] = Field(..., description="单日配置列表")
