# 业务异常定义
# 所有核心操作抛出的异常均继承自CoreError，由API层统一转换为响应


class CoreError(Exception):
    """
    核心业务异常基类

    error_code 供客户端识别错误类型，status_code 为建议的HTTP状态码
    """
    error_code = "core_error"
    status_code = 400

    def __init__(self, message: str = None):
        self.message = message or self.__class__.__name__
        super().__init__(self.message)


# 调用方输入错误
class InvalidQuantity(CoreError, ValueError):
    error_code = "invalid_quantity"


class EmptyCart(CoreError, ValueError):
    error_code = "empty_cart"


class ValidationError(CoreError, ValueError):
    error_code = "validation_error"


# 业务规则违反
class InvalidSchedule(CoreError, ValueError):
    error_code = "invalid_schedule"


class VendorClosed(CoreError, ValueError):
    error_code = "vendor_closed"


class SlotFull(CoreError, ValueError):
    error_code = "slot_full"
    status_code = 409


# 权限与状态错误
class InvalidTransition(CoreError, ValueError):
    error_code = "invalid_transition"
    status_code = 409


class Forbidden(CoreError, PermissionError):
    error_code = "forbidden"
    status_code = 403


class NotFound(CoreError, LookupError):
    error_code = "not_found"
    status_code = 404


# 存储层暂时不可用（重试耗尽）
class Unavailable(CoreError):
    error_code = "unavailable"
    status_code = 503
