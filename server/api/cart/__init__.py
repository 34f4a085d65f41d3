# 购物车模块

from .routes import router as cart_router
from .models import AddCartItemRequest, UpdateCartItemRequest, MergeCartRequest

__all__ = [
    "cart_router",
    "AddCartItemRequest",
    "UpdateCartItemRequest",
    "MergeCartRequest"
]
