# 数据表结构定义
# 初始化脚本与测试共用同一份建表语句

from .manager import DatabaseManager

TABLES_SQL = [
    # 用户表（身份协作方维护，核心只读）
    """
    CREATE TABLE IF NOT EXISTS users (
        user_id INTEGER PRIMARY KEY,
        name VARCHAR(100) NOT NULL,
        email VARCHAR(200) UNIQUE,
        role VARCHAR(20) NOT NULL DEFAULT 'customer',   -- customer/vendor/admin
        status VARCHAR(20) NOT NULL DEFAULT 'active',   -- active/suspended
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,

    # 商家表，rating/num_reviews 为派生字段，只能由评分重算写入
    """
    CREATE TABLE IF NOT EXISTS vendors (
        vendor_id INTEGER PRIMARY KEY,
        owner_user_id INTEGER NOT NULL UNIQUE REFERENCES users(user_id),
        business_name VARCHAR(100) NOT NULL,
        phone_number VARCHAR(30),
        rating REAL NOT NULL DEFAULT 0,
        num_reviews INTEGER NOT NULL DEFAULT 0,
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,

    # 菜单表（菜单协作方维护）
    """
    CREATE TABLE IF NOT EXISTS menu_items (
        menu_item_id INTEGER PRIMARY KEY,
        vendor_id INTEGER NOT NULL REFERENCES vendors(vendor_id),
        name VARCHAR(100) NOT NULL,
        price_cents INTEGER NOT NULL CHECK (price_cents >= 0),
        image VARCHAR(500) DEFAULT 'default-food.jpg',
        is_available BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,

    # 持久购物车，每个顾客一个
    """
    CREATE TABLE IF NOT EXISTS carts (
        user_id INTEGER PRIMARY KEY REFERENCES users(user_id),
        vendor_id INTEGER REFERENCES vendors(vendor_id),
        total_cents INTEGER NOT NULL DEFAULT 0,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,

    """
    CREATE TABLE IF NOT EXISTS cart_items (
        line_id VARCHAR(32) PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES carts(user_id) ON DELETE CASCADE,
        position INTEGER NOT NULL,
        menu_item_id INTEGER NOT NULL,
        name VARCHAR(100) NOT NULL,
        unit_price_cents INTEGER NOT NULL,
        image VARCHAR(500),
        quantity INTEGER NOT NULL CHECK (quantity >= 1),
        note VARCHAR(200)
    )
    """,

    # 每周营业时间配置，weekday 1-7（周一至周日）
    """
    CREATE TABLE IF NOT EXISTS vendor_schedules (
        vendor_id INTEGER NOT NULL REFERENCES vendors(vendor_id),
        weekday INTEGER NOT NULL CHECK (weekday BETWEEN 1 AND 7),
        is_open BOOLEAN NOT NULL DEFAULT TRUE,
        open_time VARCHAR(5) NOT NULL DEFAULT '09:00',
        close_time VARCHAR(5) NOT NULL DEFAULT '22:00',
        slot_duration_minutes INTEGER NOT NULL DEFAULT 30 CHECK (slot_duration_minutes > 0),
        max_orders_per_slot INTEGER NOT NULL DEFAULT 3 CHECK (max_orders_per_slot > 0),
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (vendor_id, weekday)
    )
    """,

    """
    CREATE TABLE IF NOT EXISTS reservations (
        reservation_id INTEGER PRIMARY KEY,
        vendor_id INTEGER NOT NULL REFERENCES vendors(vendor_id),
        customer_id INTEGER NOT NULL REFERENCES users(user_id),
        date DATE NOT NULL,
        slot VARCHAR(5) NOT NULL,
        note VARCHAR(500),
        guest_count INTEGER NOT NULL DEFAULT 1,
        status VARCHAR(20) NOT NULL DEFAULT 'active',   -- active/confirmed/rejected/completed/cancelled
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        cancelled_at TIMESTAMP,
        cancelled_by INTEGER
    )
    """,

    """
    CREATE INDEX IF NOT EXISTS idx_reservations_slot
    ON reservations (vendor_id, date, slot, status)
    """,

    """
    CREATE TABLE IF NOT EXISTS orders (
        order_id INTEGER PRIMARY KEY,
        customer_id INTEGER NOT NULL REFERENCES users(user_id),
        vendor_id INTEGER NOT NULL REFERENCES vendors(vendor_id),
        total_cents INTEGER NOT NULL,
        delivery_address TEXT NOT NULL,
        contact_phone VARCHAR(20) NOT NULL,
        payment_method VARCHAR(20) NOT NULL DEFAULT 'cash',
        status VARCHAR(20) NOT NULL DEFAULT 'pending',
        cancel_reason TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        delivered_at TIMESTAMP,
        completed_at TIMESTAMP,
        cancelled_at TIMESTAMP
    )
    """,

    """
    CREATE TABLE IF NOT EXISTS order_items (
        order_id INTEGER NOT NULL REFERENCES orders(order_id),
        line_no INTEGER NOT NULL,
        menu_item_id INTEGER NOT NULL,
        name VARCHAR(100) NOT NULL,
        unit_price_cents INTEGER NOT NULL,
        quantity INTEGER NOT NULL CHECK (quantity >= 1),
        line_total_cents INTEGER NOT NULL,
        PRIMARY KEY (order_id, line_no)
    )
    """,

    # 订单状态历史，只追加
    """
    CREATE TABLE IF NOT EXISTS order_status_history (
        history_id INTEGER PRIMARY KEY,
        order_id INTEGER NOT NULL REFERENCES orders(order_id),
        status VARCHAR(20) NOT NULL,
        actor_id INTEGER NOT NULL,
        actor_role VARCHAR(20) NOT NULL,
        note TEXT,
        created_at TIMESTAMP NOT NULL
    )
    """,

    # 评价表（评价协作方维护）
    """
    CREATE TABLE IF NOT EXISTS reviews (
        review_id INTEGER PRIMARY KEY,
        vendor_id INTEGER NOT NULL REFERENCES vendors(vendor_id),
        user_id INTEGER NOT NULL REFERENCES users(user_id),
        rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
        comment TEXT,
        status VARCHAR(20) NOT NULL DEFAULT 'pending',  -- pending/approved/rejected
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """
]

INDEXES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_orders_customer ON orders (customer_id, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_orders_vendor ON orders (vendor_id, status)",
    "CREATE INDEX IF NOT EXISTS idx_order_history_order ON order_status_history (order_id)",
    "CREATE INDEX IF NOT EXISTS idx_reviews_vendor ON reviews (vendor_id, status)",
    "CREATE INDEX IF NOT EXISTS idx_menu_items_vendor ON menu_items (vendor_id)"
]


def create_tables(db: DatabaseManager):
    """
    创建所有数据表和索引

    Args:
        db: 已连接的数据库管理器
    """
    for sql in TABLES_SQL + INDEXES_SQL:
        db.execute_single(sql)
