# 订单相关的数据模型

from typing import Optional
from pydantic import BaseModel, Field


class CreateOrderRequest(BaseModel):
    """用当前购物车下单的请求模型"""
    delivery_address: str = Field(..., description="配送地址")
    contact_phone: str = Field(..., description="联系电话")
    payment_method: str = Field("cash", description="支付方式 cash/credit_card/online")


class UpdateOrderStatusRequest(BaseModel):
    """修改订单状态请求模型"""
    status: str = Field(..., description="目标状态")
    note: Optional[str] = Field(None, max_length=500, description="备注，取消时作为取消原因")
