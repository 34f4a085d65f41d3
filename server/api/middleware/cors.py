# CORS中间件配置

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from typing import Dict, Any

DEFAULT_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:8080",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:8080"
]


def setup_cors_middleware(app: FastAPI, config: Dict[str, Any]):
    """
    设置CORS中间件

    Args:
        app: FastAPI应用实例
        config: 配置字典
    """
    cors_config = config.get('cors', {})

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_config.get('allowed_origins', DEFAULT_ORIGINS),
        allow_credentials=cors_config.get('allow_credentials', True),
        allow_methods=cors_config.get('allowed_methods', ["*"]),
        allow_headers=cors_config.get('allowed_headers', ["*"]),
    )
