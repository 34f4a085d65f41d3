# 商家营业时间、可预约时段与评分API路由

import logging
from typing import Dict, Any
from fastapi import APIRouter, Depends, Path, Query

from .models import UpdateScheduleRequest
from api.auth.routes import get_current_user, get_database
from api.auth.models import TokenData
from db.manager import DatabaseManager
from db.schedule_operations import ScheduleOperations
from db.rating_operations import RatingOperations
from utils.response import create_success_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/vendors", tags=["商家"])


@router.get("/{vendor_id}/schedule", response_model=Dict[str, Any])
async def get_schedule(
    vendor_id: int = Path(..., description="商家ID"),
    db: DatabaseManager = Depends(get_database)
):
    """获取商家一周营业时间"""
    schedule = ScheduleOperations(db).get_weekly_schedule(vendor_id)
    return create_success_response(data=schedule, message="获取营业时间成功")


@router.put("/{vendor_id}/schedule", response_model=Dict[str, Any])
async def update_schedule(
    request: UpdateScheduleRequest,
    vendor_id: int = Path(..., description="商家ID"),
    current_user: TokenData = Depends(get_current_user),
    db: DatabaseManager = Depends(get_database)
):
    """修改营业时间（仅商家本人）"""
    schedule = ScheduleOperations(db).update_weekly_schedule(
        current_user.to_actor(),
        vendor_id,
        [day.model_dump() for day in request.days]
    )
    return create_success_response(data=schedule, message="营业时间已更新")


@router.get("/{vendor_id}/slots", response_model=Dict[str, Any])
async def get_slots(
    vendor_id: int = Path(..., description="商家ID"),
    date: str = Query(..., description="日期 YYYY-MM-DD"),
    db: DatabaseManager = Depends(get_database)
):
    """获取商家某日可预约时段及剩余容量"""
    slots = ScheduleOperations(db).get_slots(vendor_id, date)
    message = "当日休息" if not slots['is_open'] else f"共 {len(slots['slots'])} 个时段"
    return create_success_response(data=slots, message=message)


@router.get("/{vendor_id}/rating", response_model=Dict[str, Any])
async def get_rating(
    vendor_id: int = Path(..., description="商家ID"),
    db: DatabaseManager = Depends(get_database)
):
    """获取商家评分，展示保留一位小数"""
    rating = RatingOperations(db).get_vendor_rating(vendor_id)
    rating['rating'] = round(rating['rating'], 1)
    return create_success_response(data=rating, message="获取评分成功")
