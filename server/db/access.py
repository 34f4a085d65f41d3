# 操作者身份与归属校验
# 订单与预约共用同一套"谁能操作什么"的判断

from typing import NamedTuple, Optional

from .errors import Forbidden, ValidationError

ROLES = ('customer', 'vendor', 'admin')


class Actor(NamedTuple):
    """
    已认证的操作者

    vendor_id 仅对商家角色有意义，由身份层根据商家归属解析
    """
    user_id: int
    role: str
    vendor_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role == 'admin'


def validate_actor(actor: Actor):
    """校验操作者角色合法"""
    if actor.role not in ROLES:
        raise ValidationError(f"未知的角色: {actor.role}")


def relation_to(actor: Actor, owner_id: int, vendor_id: int) -> Optional[str]:
    """
    计算操作者与某条记录（订单/预约）的关系

    Args:
        actor: 操作者
        owner_id: 记录所属顾客ID
        vendor_id: 记录所属商家ID

    Returns:
        'admin' / 'vendor' / 'customer'，无关系返回None
    """
    validate_actor(actor)

    if actor.is_admin:
        return 'admin'
    if actor.role == 'vendor' and actor.vendor_id is not None and actor.vendor_id == vendor_id:
        return 'vendor'
    if actor.role == 'customer' and actor.user_id == owner_id:
        return 'customer'
    return None


def ensure_related(actor: Actor, owner_id: int, vendor_id: int, action: str = "操作") -> str:
    """
    要求操作者与记录有关，否则抛出Forbidden

    Returns:
        操作者与记录的关系
    """
    relation = relation_to(actor, owner_id, vendor_id)
    if relation is None:
        raise Forbidden(f"无权{action}该记录")
    return relation


def ensure_vendor_owner(actor: Actor, vendor_id: int, allow_admin: bool = False):
    """要求操作者是该商家本身（可选允许管理员）"""
    validate_actor(actor)

    if allow_admin and actor.is_admin:
        return
    if actor.role != 'vendor' or actor.vendor_id != vendor_id:
        raise Forbidden("只有该商家可以执行此操作")
