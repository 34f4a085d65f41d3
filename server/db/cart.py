# 购物车聚合逻辑
# 纯内存操作，不涉及存储；每次修改后总价都从明细重新计算

import uuid
from typing import List, Optional, Dict, Any

from .errors import InvalidQuantity, NotFound, ValidationError

NOTE_MAX_LENGTH = 200


def _new_line_id() -> str:
    return uuid.uuid4().hex[:12]


def _check_quantity(quantity: Any):
    """数量必须是不小于1的整数"""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidQuantity(f"数量必须是不小于1的整数，当前为 {quantity!r}")


def _check_note(note: Optional[str]):
    if note is not None and len(note) > NOTE_MAX_LENGTH:
        raise ValidationError(f"备注长度不能超过{NOTE_MAX_LENGTH}字符")


class CartItem:
    """购物车明细行，价格为加入购物车时的快照"""

    def __init__(self, menu_item_id: int, name: str, unit_price_cents: int,
                 quantity: int = 1, image: str = None, note: str = None,
                 line_id: str = None):
        self.line_id = line_id or _new_line_id()
        self.menu_item_id = menu_item_id
        self.name = name
        self.unit_price_cents = unit_price_cents
        self.image = image
        self.quantity = quantity
        self.note = note

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            'line_id': self.line_id,
            'menu_item_id': self.menu_item_id,
            'name': self.name,
            'unit_price_cents': self.unit_price_cents,
            'image': self.image,
            'quantity': self.quantity,
            'note': self.note,
            'line_total_cents': self.line_total_cents
        }


class Cart:
    """
    购物车

    owner_id 为None表示未登录设备上的临时购物车。
    一个购物车只能包含同一商家的菜品，vendor_id 随第一件菜品确定。
    """

    def __init__(self, owner_id: Optional[int] = None, vendor_id: Optional[int] = None,
                 items: List[CartItem] = None):
        self.owner_id = owner_id
        self.vendor_id = vendor_id
        self.items = list(items or [])
        self.total_cents = 0
        recompute_total(self)

    def find_by_menu_item(self, menu_item_id: int) -> Optional[CartItem]:
        for item in self.items:
            if item.menu_item_id == menu_item_id:
                return item
        return None

    def find_line(self, line_id: str) -> Optional[CartItem]:
        for item in self.items:
            if item.line_id == line_id:
                return item
        return None

    def snapshot(self) -> List[Dict[str, Any]]:
        """下单用的明细快照"""
        return [{'menu_item_id': item.menu_item_id, 'quantity': item.quantity}
                for item in self.items]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'owner_id': self.owner_id,
            'vendor_id': self.vendor_id,
            'items': [item.to_dict() for item in self.items],
            'item_count': sum(item.quantity for item in self.items),
            'total_cents': self.total_cents
        }


def recompute_total(cart: Cart) -> int:
    """从明细重新计算总价并写回购物车"""
    cart.total_cents = sum(item.line_total_cents for item in cart.items)
    if not cart.items:
        cart.vendor_id = None
    return cart.total_cents


def add_item(cart: Cart, menu_item: Dict[str, Any], quantity: int = 1, note: str = None) -> CartItem:
    """
    向购物车加入菜品

    同一菜品合并数量；不同商家的菜品会先清空购物车再加入。

    Args:
        cart: 购物车
        menu_item: 菜品当前信息，需包含 menu_item_id/vendor_id/name/price_cents，可含image
        quantity: 加入数量
        note: 备注，给出时覆盖原备注

    Returns:
        被新增或合并的明细行
    """
    _check_quantity(quantity)
    _check_note(note)

    vendor_id = menu_item.get('vendor_id')
    if cart.items and vendor_id is not None and cart.vendor_id != vendor_id:
        clear(cart)

    existing = cart.find_by_menu_item(menu_item['menu_item_id'])
    if existing:
        existing.quantity += quantity
        if note is not None:
            existing.note = note
        line = existing
    else:
        line = CartItem(
            menu_item_id=menu_item['menu_item_id'],
            name=menu_item['name'],
            unit_price_cents=menu_item['price_cents'],
            image=menu_item.get('image'),
            quantity=quantity,
            note=note
        )
        cart.items.append(line)

    if vendor_id is not None:
        cart.vendor_id = vendor_id

    recompute_total(cart)
    return line


def update_quantity(cart: Cart, line_id: str, new_quantity: int, note: str = None) -> CartItem:
    """
    修改明细数量，删除明细请使用 remove_item

    Raises:
        InvalidQuantity: 数量小于1
        NotFound: 明细不存在
    """
    _check_quantity(new_quantity)
    _check_note(note)

    line = cart.find_line(line_id)
    if line is None:
        raise NotFound(f"购物车中不存在明细 {line_id}")

    line.quantity = new_quantity
    if note is not None:
        line.note = note

    recompute_total(cart)
    return line


def remove_item(cart: Cart, line_id: str) -> bool:
    """移除明细，不存在时不做任何事。返回是否有明细被移除"""
    before = len(cart.items)
    cart.items = [item for item in cart.items if item.line_id != line_id]
    recompute_total(cart)
    return len(cart.items) != before


def clear(cart: Cart):
    """清空购物车"""
    cart.items = []
    recompute_total(cart)


def merge_on_authentication(anonymous_cart: Cart, durable_cart: Cart) -> Cart:
    """
    登录后把临时购物车并入持久购物车

    同一菜品数量相加，其余追加。临时购物车属于其他商家时，以临时购物车为准。
    合并后临时购物车被清空，不应再使用。

    Returns:
        合并后的持久购物车
    """
    if (anonymous_cart.items and durable_cart.items
            and anonymous_cart.vendor_id is not None
            and anonymous_cart.vendor_id != durable_cart.vendor_id):
        clear(durable_cart)

    for item in anonymous_cart.items:
        existing = durable_cart.find_by_menu_item(item.menu_item_id)
        if existing:
            existing.quantity += item.quantity
            if item.note:
                existing.note = item.note
        else:
            durable_cart.items.append(CartItem(
                menu_item_id=item.menu_item_id,
                name=item.name,
                unit_price_cents=item.unit_price_cents,
                image=item.image,
                quantity=item.quantity,
                note=item.note
            ))

    if anonymous_cart.vendor_id is not None and anonymous_cart.items:
        durable_cart.vendor_id = anonymous_cart.vendor_id

    clear(anonymous_cart)
    recompute_total(durable_cart)
    return durable_cart
