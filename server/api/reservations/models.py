# 预约相关的数据模型

from typing import Optional
from pydantic import BaseModel, Field


class CreateReservationRequest(BaseModel):
    """创建预约请求模型"""
    vendor_id: int = Field(..., description="商家ID")
    date: str = Field(..., description="日期 YYYY-MM-DD")
    slot: str = Field(..., description="时段开始时间 HH:MM")
    guest_count: int = Field(1, description="人数 1-20")
    note: Optional[str] = Field(None, description="备注，最多500字符")


class UpdateReservationStatusRequest(BaseModel):
    """商家处理预约请求模型"""
    status: str = Field(..., description="目标状态 confirmed/rejected/completed")
