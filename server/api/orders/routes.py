# 订单相关API路由

import logging
from typing import Dict, Any, Optional
from fastapi import APIRouter, Depends, Query, Path

from .models import CreateOrderRequest, UpdateOrderStatusRequest
from api.auth.routes import get_current_user, get_database
from api.auth.models import TokenData
from db.manager import DatabaseManager
from db.order_operations import OrderOperations
from db.query_operations import QueryOperations
from utils.response import create_success_response, cents_to_amount

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/orders", tags=["订单"])


def _order_payload(order: Dict[str, Any]) -> Dict[str, Any]:
    order['total_amount'] = cents_to_amount(order['total_cents'])
    for item in order.get('items', []):
        item['unit_price'] = cents_to_amount(item['unit_price_cents'])
        item['line_total'] = cents_to_amount(item['line_total_cents'])
    return order


@router.post("", response_model=Dict[str, Any])
async def create_order(
    order_request: CreateOrderRequest,
    current_user: TokenData = Depends(get_current_user),
    db: DatabaseManager = Depends(get_database)
):
    """用当前购物车下单，成功后购物车清空"""
    order = OrderOperations(db).place_order_from_cart(
        current_user.to_actor(),
        delivery_address=order_request.delivery_address,
        contact_phone=order_request.contact_phone,
        payment_method=order_request.payment_method
    )
    return create_success_response(
        data=_order_payload(order),
        message=f"订单创建成功，金额 {order['total_cents'] / 100:.2f}"
    )


@router.get("", response_model=Dict[str, Any])
async def list_orders(
    status: Optional[str] = Query(None, description="状态过滤"),
    offset: int = Query(0, description="偏移量"),
    limit: int = Query(20, description="每页条数，最大100"),
    current_user: TokenData = Depends(get_current_user),
    db: DatabaseManager = Depends(get_database)
):
    """订单列表：管理员全部，商家本店，顾客本人"""
    result = QueryOperations(db).query_orders(
        current_user.to_actor(), status=status, offset=offset, limit=limit
    )
    return create_success_response(data=result["data"], message=result["message"])


@router.get("/summary", response_model=Dict[str, Any])
async def order_status_summary(
    current_user: TokenData = Depends(get_current_user),
    db: DatabaseManager = Depends(get_database)
):
    """按状态统计订单数量"""
    result = QueryOperations(db).query_order_status_summary(current_user.to_actor())
    return create_success_response(data=result["data"], message=result["message"])


@router.get("/my", response_model=Dict[str, Any])
async def get_my_orders(
    status: Optional[str] = Query(None, description="状态过滤"),
    offset: int = Query(0, description="偏移量"),
    limit: int = Query(20, description="每页条数，最大100"),
    current_user: TokenData = Depends(get_current_user),
    db: DatabaseManager = Depends(get_database)
):
    """获取我的订单"""
    result = QueryOperations(db).query_customer_orders(
        current_user.user_id, status=status, offset=offset, limit=limit
    )
    return create_success_response(data=result["data"], message=result["message"])


@router.get("/vendor/{vendor_id}", response_model=Dict[str, Any])
async def get_vendor_orders(
    vendor_id: int = Path(..., description="商家ID"),
    status: Optional[str] = Query(None, description="状态过滤"),
    offset: int = Query(0, description="偏移量"),
    limit: int = Query(20, description="每页条数，最大100"),
    current_user: TokenData = Depends(get_current_user),
    db: DatabaseManager = Depends(get_database)
):
    """获取商家收到的订单（商家本人或管理员）"""
    result = QueryOperations(db).query_vendor_orders(
        current_user.to_actor(), vendor_id, status=status, offset=offset, limit=limit
    )
    return create_success_response(data=result["data"], message=result["message"])


@router.get("/{order_id}", response_model=Dict[str, Any])
async def get_order_detail(
    order_id: int = Path(..., description="订单ID"),
    current_user: TokenData = Depends(get_current_user),
    db: DatabaseManager = Depends(get_database)
):
    """订单详情，包含明细和状态历史"""
    order = OrderOperations(db).get_order(order_id, current_user.to_actor())
    return create_success_response(data=_order_payload(order), message="获取订单成功")


@router.put("/{order_id}/status", response_model=Dict[str, Any])
async def update_order_status(
    status_request: UpdateOrderStatusRequest,
    order_id: int = Path(..., description="订单ID"),
    current_user: TokenData = Depends(get_current_user),
    db: DatabaseManager = Depends(get_database)
):
    """推进订单状态，不允许的流转返回409"""
    order = OrderOperations(db).transition(
        order_id,
        current_user.to_actor(),
        status_request.status,
        note=status_request.note
    )
    return create_success_response(
        data=_order_payload(order),
        message=f"订单状态已更新为{order['status_text']}"
    )
