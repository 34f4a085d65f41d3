# 商家营业时间、可预约时段与评分模块

from .routes import router as vendors_router
from .models import DayScheduleModel, UpdateScheduleRequest

__all__ = [
    "vendors_router",
    "DayScheduleModel",
    "UpdateScheduleRequest"
]
