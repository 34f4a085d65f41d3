# FastAPI主应用

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from utils.config import Config
from utils.logger import setup_logging
from utils.response import create_error_response
from api.middleware import setup_middleware
from db.errors import CoreError
from db.manager import DatabaseManager

from api.auth import auth_router
from api.cart import cart_router
from api.vendors import vendors_router
from api.reservations import reservations_router
from api.orders import orders_router

# 全局配置实例
config = Config()

setup_logging(config.config)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logger.info(f"{config.config['app']['name']} 服务启动中...")
    logger.info(f"环境: {config.env}")
    logger.info(f"调试模式: {config.config['app']['debug']}")

    yield

    logger.info(f"{config.config['app']['name']} 服务关闭中...")


app = FastAPI(
    title=config.config['app']['name'],
    version=config.config['app']['version'],
    description=config.config['app']['description'],
    debug=config.config['app']['debug'],
    lifespan=lifespan
)

setup_middleware(app, config.config)

app.include_router(auth_router)
app.include_router(cart_router)
app.include_router(vendors_router)
app.include_router(reservations_router)
app.include_router(orders_router)


# 全局异常处理器
@app.exception_handler(CoreError)
async def core_error_handler(request: Request, exc: CoreError):
    """业务异常：按异常类型映射HTTP状态码"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} 业务处理失败: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} 业务规则拒绝[{exc.error_code}]: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.message, data={"error_code": exc.error_code})
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """HTTP异常处理"""
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(str(exc.detail)),
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """请求参数校验失败"""
    errors = [
        f"{'.'.join(str(loc) for loc in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content=create_error_response("请求参数错误", data={"errors": errors})
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """通用异常处理"""
    logger.error(f"未处理的异常: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=create_error_response("服务器内部错误")
    )


@app.get("/")
async def root():
    """根路径健康检查"""
    return {
        "message": f"{config.config['app']['name']} 服务运行中",
        "version": config.config['app']['version'],
        "status": "healthy"
    }


@app.get("/health")
async def health_check():
    """健康检查端点，包含数据库连通性"""
    db_config = config.get_database_config()
    try:
        with DatabaseManager(db_config["path"], auto_connect=True) as db:
            db.conn.execute("SELECT 1").fetchone()
    except Exception as e:
        logger.error(f"健康检查失败: {str(e)}")
        raise HTTPException(status_code=503, detail="Service unhealthy")

    return {
        "status": "healthy",
        "version": config.config['app']['version'],
        "environment": config.env
    }


@app.get("/api/info")
async def api_info():
    """API信息端点"""
    return {
        "name": config.config['app']['name'],
        "version": config.config['app']['version'],
        "description": config.config['app']['description'],
        "environment": config.env,
        "endpoints": {
            "auth": "/api/auth",
            "cart": "/api/cart",
            "vendors": "/api/vendors",
            "reservations": "/api/reservations",
            "orders": "/api/orders"
        }
    }


if __name__ == "__main__":
    import uvicorn

    server_config = config.config['server']

    uvicorn.run(
        "api.main:app",
        host=server_config.get('host', '127.0.0.1'),
        port=server_config.get('port', 8000),
        reload=server_config.get('reload', False),
        workers=1 if server_config.get('reload', False) else server_config.get('workers', 1),
        log_level="debug" if config.config['app']['debug'] else "info"
    )
