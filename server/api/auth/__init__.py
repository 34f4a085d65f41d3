# 认证模块

from .routes import router as auth_router
from .routes import get_current_user, get_admin_user, get_customer_user, get_database
from .models import TokenData

__all__ = [
    "auth_router",
    "get_current_user",
    "get_admin_user",
    "get_customer_user",
    "get_database",
    "TokenData"
]
