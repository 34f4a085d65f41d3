# 数据验证器

import re

# 本地手机号：可带 +90 或 0 前缀的10位数字
PHONE_PATTERN = re.compile(r'^(\+90|0)?[0-9]{10}$')

PAYMENT_METHODS = ('cash', 'credit_card', 'online')


def normalize_phone(phone: str) -> str:
    """去掉空格、横线、括号和点"""
    return re.sub(r'[\s\-().]', '', phone or '')


def validate_contact_phone(phone: str) -> bool:
    """
    验证联系电话

    Args:
        phone: 电话号码，允许包含空格和横线

    Returns:
        验证结果
    """
    if not phone or not phone.strip():
        return False
    return bool(PHONE_PATTERN.match(normalize_phone(phone)))


def validate_payment_method(method: str) -> bool:
    """验证支付方式标签"""
    return method in PAYMENT_METHODS


def validate_order_status(status: str) -> bool:
    """验证订单状态"""
    return status in ['pending', 'accepted', 'preparing', 'out_for_delivery',
                      'delivered', 'completed', 'cancelled']
