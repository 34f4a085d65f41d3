# 认证相关的数据模型

from typing import Optional
from pydantic import BaseModel

from db.access import Actor


class TokenData(BaseModel):
    """JWT Token数据模型（已对照用户表校验）"""
    user_id: int
    role: str
    name: Optional[str] = None
    vendor_id: Optional[int] = None  # 仅商家角色有值

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_actor(self) -> Actor:
        """转换为核心业务使用的操作者"""
        return Actor(user_id=self.user_id, role=self.role, vendor_id=self.vendor_id)


class RefreshTokenResponse(BaseModel):
    """刷新Token响应模型"""
    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 86400
