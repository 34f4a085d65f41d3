# 认证相关API路由与公共依赖
# 令牌由身份服务签发，这里只做校验并解析出当前操作者

import logging
from typing import Dict, Any, Optional
from fastapi import APIRouter, HTTPException, Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .models import RefreshTokenResponse, TokenData
from db.manager import DatabaseManager
from db.supporting_operations import SupportingOperations
from utils.config import Config
from utils.security import JWTManager
from utils.response import create_success_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["认证"])

config = Config()
jwt_manager = JWTManager(
    secret_key=config.get("auth.jwt_secret_key"),
    algorithm=config.get("auth.jwt_algorithm", "HS256"),
    access_token_expire_minutes=config.get("auth.access_token_expire_minutes", 1440)
)
security = HTTPBearer(auto_error=False)


def get_database():
    """每个请求使用独立的数据库连接"""
    db_config = config.get_database_config()
    db_manager = DatabaseManager(
        db_config["path"],
        auto_connect=True,
        busy_timeout=db_config.get("busy_timeout_seconds", 5)
    )
    try:
        yield db_manager
    finally:
        db_manager.close()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"}
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: DatabaseManager = Depends(get_database)
) -> TokenData:
    """获取当前用户信息"""
    if credentials is None:
        raise _unauthorized("缺少认证令牌")

    payload = jwt_manager.decode_token(credentials.credentials)
    if not payload or "user_id" not in payload:
        logger.warning("用户认证失败: 令牌无效或已过期")
        raise _unauthorized("认证失败，请重新登录")

    # 验证用户是否存在且状态正常，角色以用户表为准
    support_ops = SupportingOperations(db)
    user_info = support_ops.get_user_by_id(payload["user_id"])

    if not user_info or user_info["status"] != "active":
        raise _unauthorized("用户不存在或已被禁用")

    vendor_id = None
    if user_info["role"] == "vendor":
        vendor = support_ops.get_vendor_by_owner(user_info["user_id"])
        vendor_id = vendor["vendor_id"] if vendor else None

    return TokenData(
        user_id=user_info["user_id"],
        role=user_info["role"],
        name=user_info["name"],
        vendor_id=vendor_id
    )


def get_admin_user(current_user: TokenData = Depends(get_current_user)) -> TokenData:
    """获取管理员用户（仅管理员可访问）"""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="需要管理员权限"
        )
    return current_user


def get_customer_user(current_user: TokenData = Depends(get_current_user)) -> TokenData:
    """获取顾客用户（购物车等仅顾客可用的功能）"""
    if current_user.role != "customer":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="仅顾客可以使用该功能"
        )
    return current_user


@router.get("/me", response_model=Dict[str, Any])
async def get_current_user_info(current_user: TokenData = Depends(get_current_user)):
    """获取当前操作者身份"""
    return create_success_response(
        data=current_user.model_dump(),
        message="获取用户信息成功"
    )


@router.post("/refresh", response_model=Dict[str, Any])
async def refresh_token(current_user: TokenData = Depends(get_current_user)):
    """刷新访问令牌"""
    new_access_token = jwt_manager.create_token({
        "user_id": current_user.user_id,
        "role": current_user.role
    })

    response_data = RefreshTokenResponse(
        access_token=new_access_token,
        expires_in=jwt_manager.access_token_expire_minutes * 60
    )

    return create_success_response(
        data=response_data.model_dump(),
        message="Token刷新成功"
    )
