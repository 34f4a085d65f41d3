#!/usr/bin/env python3
# 数据库初始化脚本
# 用法: CONFIG_ENV=development python scripts/init_db.py [--with-sample-data]

import sys
import logging
import argparse
from pathlib import Path

# 添加项目根目录到Python路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from db.manager import DatabaseManager
from db.schema import create_tables
from db.supporting_operations import SupportingOperations
from utils.config import Config


def insert_sample_data(db_manager: DatabaseManager):
    """
    插入示例数据：管理员、一个商家及其菜单、一个顾客

    已存在数据时跳过，可重复执行
    """
    existing = db_manager.execute_single("SELECT COUNT(*) FROM users").fetchone()[0]
    if existing:
        logging.info(f"用户表已有 {existing} 条记录，跳过示例数据")
        return

    support_ops = SupportingOperations(db_manager)

    support_ops.create_user("系统管理员", role="admin", email="admin@example.com")
    owner = support_ops.create_user("示例商家", role="vendor", email="vendor@example.com")
    support_ops.create_user("示例顾客", role="customer", email="customer@example.com")

    vendor = support_ops.create_vendor(owner["user_id"], "示例餐厅", "05321234567")
    for name, price_cents in [("招牌汉堡", 1000), ("薯条", 550), ("柠檬茶", 800)]:
        support_ops.create_menu_item(vendor["vendor_id"], name, price_cents)

    logging.info(f"示例数据创建完成，商家ID: {vendor['vendor_id']}")


def main():
    """
    主函数：初始化数据库
    """
    parser = argparse.ArgumentParser(description="初始化数据库")
    parser.add_argument("--with-sample-data", action="store_true", help="同时写入示例数据")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    config = Config()
    db_path = config.get_database_config()["path"]

    logging.info(f"开始初始化数据库: {db_path}")
    logging.info(f"配置环境: {config.env}")

    db_manager = DatabaseManager(db_path)
    try:
        db_manager.connect()

        logging.info("创建数据表...")
        create_tables(db_manager)

        if args.with_sample_data:
            logging.info("插入示例数据...")
            insert_sample_data(db_manager)

        db_manager.check_integrity()

        logging.info("数据库初始化完成!")
        logging.info("数据表状态:")
        for table_name in ['users', 'vendors', 'menu_items', 'vendor_schedules',
                           'reservations', 'orders', 'reviews']:
            info = db_manager.get_table_info(table_name)
            logging.info(f"  - {table_name}: {info['record_count']} 条记录")

    except Exception as e:
        logging.error(f"数据库初始化失败: {e}")
        sys.exit(1)
    finally:
        db_manager.close()


if __name__ == "__main__":
    main()
