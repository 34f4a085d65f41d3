# 购物车相关API路由（仅顾客）

import logging
from typing import Dict, Any
from fastapi import APIRouter, Depends, Path

from .models import AddCartItemRequest, UpdateCartItemRequest, MergeCartRequest
from api.auth.routes import get_customer_user, get_database
from api.auth.models import TokenData
from db.manager import DatabaseManager
from db.cart_operations import CartOperations
from utils.response import create_success_response, cents_to_amount

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/cart", tags=["购物车"])


def _cart_payload(cart: Dict[str, Any]) -> Dict[str, Any]:
    cart['total_amount'] = cents_to_amount(cart['total_cents'])
    for item in cart['items']:
        item['unit_price'] = cents_to_amount(item['unit_price_cents'])
        item['line_total'] = cents_to_amount(item['line_total_cents'])
    return cart


@router.get("", response_model=Dict[str, Any])
async def get_cart(
    current_user: TokenData = Depends(get_customer_user),
    db: DatabaseManager = Depends(get_database)
):
    """获取当前购物车"""
    cart = CartOperations(db).get_cart(current_user.user_id)
    return create_success_response(data=_cart_payload(cart), message="获取购物车成功")


@router.post("/items", response_model=Dict[str, Any])
async def add_cart_item(
    request: AddCartItemRequest,
    current_user: TokenData = Depends(get_customer_user),
    db: DatabaseManager = Depends(get_database)
):
    """加入菜品，同一菜品合并数量"""
    cart = CartOperations(db).add_item(
        user_id=current_user.user_id,
        menu_item_id=request.menu_item_id,
        quantity=request.quantity,
        note=request.note
    )
    return create_success_response(data=_cart_payload(cart), message="已加入购物车")


@router.put("/items/{line_id}", response_model=Dict[str, Any])
async def update_cart_item(
    request: UpdateCartItemRequest,
    line_id: str = Path(..., description="购物车明细ID"),
    current_user: TokenData = Depends(get_customer_user),
    db: DatabaseManager = Depends(get_database)
):
    """修改明细数量"""
    cart = CartOperations(db).update_item(
        user_id=current_user.user_id,
        line_id=line_id,
        quantity=request.quantity,
        note=request.note
    )
    return create_success_response(data=_cart_payload(cart), message="购物车已更新")


@router.delete("/items/{line_id}", response_model=Dict[str, Any])
async def remove_cart_item(
    line_id: str = Path(..., description="购物车明细ID"),
    current_user: TokenData = Depends(get_customer_user),
    db: DatabaseManager = Depends(get_database)
):
    """移除明细，明细不存在时同样返回成功"""
    cart = CartOperations(db).remove_item(current_user.user_id, line_id)
    return create_success_response(data=_cart_payload(cart), message="已从购物车移除")


@router.delete("", response_model=Dict[str, Any])
async def clear_cart(
    current_user: TokenData = Depends(get_customer_user),
    db: DatabaseManager = Depends(get_database)
):
    """清空购物车"""
    cart = CartOperations(db).clear_cart(current_user.user_id)
    return create_success_response(data=_cart_payload(cart), message="购物车已清空")


@router.post("/merge", response_model=Dict[str, Any])
async def merge_cart(
    request: MergeCartRequest,
    current_user: TokenData = Depends(get_customer_user),
    db: DatabaseManager = Depends(get_database)
):
    """登录后合并设备端临时购物车"""
    cart = CartOperations(db).merge_anonymous_cart(
        current_user.user_id,
        [line.model_dump() for line in request.items]
    )
    return create_success_response(data=_cart_payload(cart), message="购物车已合并")
