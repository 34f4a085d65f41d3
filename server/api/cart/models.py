# 购物车相关的数据模型
# 数量不在模型层限制范围，由购物车逻辑统一报 InvalidQuantity

from typing import List, Optional
from pydantic import BaseModel, Field


class AddCartItemRequest(BaseModel):
    """加入购物车请求模型"""
    menu_item_id: int = Field(..., description="菜品ID")
    quantity: int = Field(1, description="数量，至少为1")
    note: Optional[str] = Field(None, description="备注，最多200字符")


class UpdateCartItemRequest(BaseModel):
    """修改购物车明细请求模型"""
    quantity: int = Field(..., description="新数量，至少为1")
    note: Optional[str] = Field(None, description="备注，不传则保留原备注")


class AnonymousCartLine(BaseModel):
    """设备端临时购物车的一行"""
    menu_item_id: int
    quantity: int = 1
    note: Optional[str] = None


class MergeCartRequest(BaseModel):
    """登录后合并临时购物车请求模型"""
    items: List[AnonymousCartLine] = Field(default_factory=list, description="临时购物车明细")
