# 测试配置和固定装置

import pytest
import os
import sys
from pathlib import Path

# 添加项目路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# 设置测试环境
os.environ['CONFIG_ENV'] = 'test'

from db.manager import DatabaseManager
from db.schema import create_tables
from db.access import Actor
from db.cart_operations import CartOperations
from db.order_operations import OrderOperations
from db.query_operations import QueryOperations
from db.rating_operations import RatingOperations
from db.reservation_operations import ReservationOperations
from db.schedule_operations import ScheduleOperations
from db.supporting_operations import SupportingOperations


@pytest.fixture
def test_db():
    """测试数据库实例（内存数据库）"""
    db = DatabaseManager(":memory:", auto_connect=True)
    create_tables(db)

    yield db
    db.close()


@pytest.fixture
def file_db_path(tmp_path):
    """已建表的文件数据库路径，用于多连接场景"""
    db_path = str(tmp_path / "test.db")
    with DatabaseManager(db_path, auto_connect=True) as db:
        create_tables(db)
    return db_path


@pytest.fixture
def support_ops(test_db):
    """支持业务操作实例"""
    return SupportingOperations(test_db)


@pytest.fixture
def cart_ops(test_db):
    """购物车业务操作实例"""
    return CartOperations(test_db)


@pytest.fixture
def schedule_ops(test_db):
    """营业时间业务操作实例"""
    return ScheduleOperations(test_db)


@pytest.fixture
def reservation_ops(test_db):
    """预约业务操作实例"""
    return ReservationOperations(test_db)


@pytest.fixture
def order_ops(test_db):
    """订单业务操作实例"""
    return OrderOperations(test_db)


@pytest.fixture
def query_ops(test_db):
    """查询业务操作实例"""
    return QueryOperations(test_db)


@pytest.fixture
def rating_ops(test_db):
    """评分业务操作实例"""
    return RatingOperations(test_db)


def seed_marketplace(support_ops: SupportingOperations) -> dict:
    """
    创建一套基础数据：两个顾客、两个商家、一个管理员和若干菜品

    Returns:
        包含各对象ID与Actor的字典
    """
    customer = support_ops.create_user("测试顾客", role="customer")
    other_customer = support_ops.create_user("另一位顾客", role="customer")
    admin = support_ops.create_user("测试管理员", role="admin")
    owner = support_ops.create_user("测试商家", role="vendor")
    other_owner = support_ops.create_user("另一家商家", role="vendor")

    vendor = support_ops.create_vendor(owner["user_id"], "测试餐厅", "05321234567")
    other_vendor = support_ops.create_vendor(other_owner["user_id"], "隔壁餐厅")

    burger = support_ops.create_menu_item(vendor["vendor_id"], "汉堡", 1000)
    fries = support_ops.create_menu_item(vendor["vendor_id"], "薯条", 550)
    tea = support_ops.create_menu_item(other_vendor["vendor_id"], "柠檬茶", 800)

    return {
        "customer_id": customer["user_id"],
        "other_customer_id": other_customer["user_id"],
        "vendor_id": vendor["vendor_id"],
        "other_vendor_id": other_vendor["vendor_id"],
        "burger_id": burger["menu_item_id"],
        "fries_id": fries["menu_item_id"],
        "tea_id": tea["menu_item_id"],
        "customer": Actor(user_id=customer["user_id"], role="customer"),
        "other_customer": Actor(user_id=other_customer["user_id"], role="customer"),
        "admin": Actor(user_id=admin["user_id"], role="admin"),
        "vendor": Actor(user_id=owner["user_id"], role="vendor", vendor_id=vendor["vendor_id"]),
        "other_vendor": Actor(user_id=other_owner["user_id"], role="vendor",
                              vendor_id=other_vendor["vendor_id"]),
    }


@pytest.fixture
def market(support_ops):
    """基础测试数据"""
    return seed_marketplace(support_ops)


def day_schedule(weekday: int, is_open: bool = True, open_time: str = "09:00",
                 close_time: str = "22:00", slot_duration_minutes: int = 30,
                 max_orders_per_slot: int = 3) -> dict:
    """构造单日营业配置"""
    return {
        "weekday": weekday,
        "is_open": is_open,
        "open_time": open_time,
        "close_time": close_time,
        "slot_duration_minutes": slot_duration_minutes,
        "max_orders_per_slot": max_orders_per_slot
    }


@pytest.fixture
def make_day():
    """单日营业配置构造函数"""
    return day_schedule


@pytest.fixture
def seed():
    """基础数据构造函数（供需要自建数据库的测试使用）"""
    return seed_marketplace
