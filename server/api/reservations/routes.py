# 预约相关API路由

import logging
from typing import Dict, Any, Optional
from fastapi import APIRouter, Depends, Path, Query

from .models import CreateReservationRequest, UpdateReservationStatusRequest
from api.auth.routes import config, get_current_user, get_customer_user, get_database
from api.auth.models import TokenData
from db.manager import DatabaseManager
from db.reservation_operations import ReservationOperations
from utils.response import create_success_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/reservations", tags=["预约"])


@router.post("", response_model=Dict[str, Any])
def create_reservation(
    request: CreateReservationRequest,
    current_user: TokenData = Depends(get_customer_user),
    db: DatabaseManager = Depends(get_database)
):
    """
    预约时段，时段已满返回409

    分配过程可能因存储繁忙重试等待，使用同步处理函数在线程池中执行
    """
    reservation = ReservationOperations(db).allocate_with_retry(
        vendor_id=request.vendor_id,
        date=request.date,
        slot=request.slot,
        customer_id=current_user.user_id,
        note=request.note,
        guest_count=request.guest_count,
        attempts=config.get("reservation.max_retries", 3),
        backoff_seconds=config.get("reservation.retry_backoff_seconds", 0.05)
    )
    return create_success_response(
        data=reservation,
        message=f"预约成功: {reservation['date']} {reservation['slot']}"
    )


@router.put("/{reservation_id}/cancel", response_model=Dict[str, Any])
async def cancel_reservation(
    reservation_id: int = Path(..., description="预约ID"),
    current_user: TokenData = Depends(get_current_user),
    db: DatabaseManager = Depends(get_database)
):
    """取消预约（顾客本人、对应商家或管理员）"""
    reservation = ReservationOperations(db).cancel(reservation_id, current_user.to_actor())
    return create_success_response(data=reservation, message="预约已取消")


@router.put("/{reservation_id}/status", response_model=Dict[str, Any])
async def update_reservation_status(
    status_request: UpdateReservationStatusRequest,
    reservation_id: int = Path(..., description="预约ID"),
    current_user: TokenData = Depends(get_current_user),
    db: DatabaseManager = Depends(get_database)
):
    """商家确认、拒绝或完成预约，不允许的流转返回409"""
    reservation = ReservationOperations(db).set_status(
        reservation_id, current_user.to_actor(), status_request.status
    )
    return create_success_response(
        data=reservation,
        message=f"预约状态已更新为 {reservation['status']}"
    )


@router.get("/my", response_model=Dict[str, Any])
async def get_my_reservations(
    status: Optional[str] = Query(None, description="状态过滤 active/confirmed/rejected/completed/cancelled"),
    current_user: TokenData = Depends(get_current_user),
    db: DatabaseManager = Depends(get_database)
):
    """获取我的预约"""
    reservations = ReservationOperations(db).list_for_customer(current_user.user_id, status)
    return create_success_response(
        data={"reservations": reservations},
        message=f"共 {len(reservations)} 条预约"
    )


@router.get("/vendor/{vendor_id}", response_model=Dict[str, Any])
async def get_vendor_reservations(
    vendor_id: int = Path(..., description="商家ID"),
    date: Optional[str] = Query(None, description="日期过滤 YYYY-MM-DD"),
    status: Optional[str] = Query(None, description="状态过滤 active/confirmed/rejected/completed/cancelled"),
    current_user: TokenData = Depends(get_current_user),
    db: DatabaseManager = Depends(get_database)
):
    """获取商家的预约（商家本人或管理员）"""
    reservations = ReservationOperations(db).list_for_vendor(
        current_user.to_actor(), vendor_id, date=date, status=status
    )
    return create_success_response(
        data={"reservations": reservations},
        message=f"共 {len(reservations)} 条预约"
    )


@router.get("/{reservation_id}", response_model=Dict[str, Any])
async def get_reservation(
    reservation_id: int = Path(..., description="预约ID"),
    current_user: TokenData = Depends(get_current_user),
    db: DatabaseManager = Depends(get_database)
):
    """查看预约详情"""
    reservation = ReservationOperations(db).get_reservation(reservation_id, current_user.to_actor())
    return create_success_response(data=reservation, message="获取预约成功")
