# 统一API响应格式工具

from datetime import datetime, timezone
from typing import Any, Dict


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%f') + "Z"


def create_success_response(
    data: Any = None,
    message: str = "操作成功"
) -> Dict[str, Any]:
    """
    创建成功响应

    Args:
        data: 响应数据
        message: 成功消息

    Returns:
        标准格式的成功响应
    """
    return {
        "success": True,
        "data": data,
        "message": message,
        "timestamp": _timestamp()
    }


def create_error_response(
    error: str,
    data: Any = None
) -> Dict[str, Any]:
    """
    创建错误响应

    Args:
        error: 错误描述信息
        data: 可选的错误数据，例如 {"error_code": "slot_full"}

    Returns:
        标准格式的错误响应
    """
    return {
        "success": False,
        "error": error,
        "data": data,
        "timestamp": _timestamp()
    }


def cents_to_amount(cents: int) -> float:
    """分转换为金额"""
    return cents / 100
