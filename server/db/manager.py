# 数据库连接和事务管理的核心组件

import sqlite3
import logging
import os
import threading
from datetime import datetime
from typing import List, Dict, Any, Callable
from contextlib import contextmanager


class DatabaseManager:
    """
    数据库管理器

    负责SQLite数据库连接管理、事务处理和基础操作。
    每个请求通常持有独立的连接；同一连接被多个线程共享时，
    事务通过可重入锁串行化。
    """

    def __init__(self, db_path: str, auto_connect: bool = False, busy_timeout: float = 5.0):
        """
        初始化数据库管理器

        Args:
            db_path: 数据库文件路径，":memory:" 表示内存数据库
            auto_connect: 是否自动连接数据库
            busy_timeout: 等待写锁的超时时间（秒）
        """
        self.db_path = db_path
        self.busy_timeout = busy_timeout
        self.conn = None
        self._is_connected = False
        self._lock = threading.RLock()

        self.logger = logging.getLogger(self.__class__.__name__)

        if auto_connect:
            self.connect()

    def connect(self) -> sqlite3.Connection:
        """
        建立数据库连接

        Returns:
            SQLite连接对象

        Raises:
            ConnectionError: 连接失败时抛出异常
        """
        try:
            if self.conn is not None:
                self.logger.warning("数据库连接已存在，先关闭现有连接")
                self.close()

            if self.db_path != ":memory:":
                db_dir = os.path.dirname(self.db_path)
                if db_dir and not os.path.exists(db_dir):
                    os.makedirs(db_dir, exist_ok=True)
                    self.logger.info(f"创建数据库目录: {db_dir}")

            self.conn = sqlite3.connect(
                self.db_path,
                timeout=self.busy_timeout,
                check_same_thread=False
            )
            self.conn.row_factory = sqlite3.Row
            self._is_connected = True
            self.logger.debug(f"成功连接到数据库: {self.db_path}")

            self._configure_database()

            return self.conn

        except Exception as e:
            self.logger.error(f"连接数据库失败: {str(e)}")
            raise ConnectionError(f"无法连接到数据库 {self.db_path}: {str(e)}")

    def close(self):
        """
        关闭数据库连接
        """
        if self.conn is not None:
            try:
                self.conn.close()
                self.logger.debug("数据库连接已关闭")
            except Exception as e:
                self.logger.error(f"关闭数据库连接时发生错误: {str(e)}")
            finally:
                self.conn = None
                self._is_connected = False

    def _configure_database(self):
        """
        配置SQLite优化参数
        """
        try:
            optimizations = [
                "PRAGMA foreign_keys = ON",
                "PRAGMA journal_mode = WAL",       # WAL模式下读写互不阻塞
                "PRAGMA synchronous = NORMAL",
                "PRAGMA cache_size = -64000",
                "PRAGMA temp_store = MEMORY"
            ]

            for opt in optimizations:
                self.conn.execute(opt)

            self.logger.debug("数据库优化参数配置完成")

        except Exception as e:
            self.logger.warning(f"配置数据库参数时出现警告: {str(e)}")

    def is_connected(self) -> bool:
        """检查数据库连接状态"""
        return self._is_connected and self.conn is not None

    def ensure_connected(self):
        """
        确保数据库连接可用

        Raises:
            ConnectionError: 连接不可用时抛出异常
        """
        if not self.is_connected():
            raise ConnectionError("数据库未连接，请先调用connect()方法")

    def execute_transaction(self, operations: List[Callable], immediate: bool = False) -> List[Any]:
        """
        串行执行事务操作

        Args:
            operations: 操作函数列表，每个函数返回操作结果
            immediate: 是否在事务开始时立即获取写锁（BEGIN IMMEDIATE）

        Returns:
            所有操作结果的列表

        Raises:
            ConnectionError: 数据库未连接
            Exception: 事务执行失败时抛出原始异常，事务已回滚
        """
        self.ensure_connected()

        if not operations:
            self.logger.warning("事务操作列表为空")
            return []

        transaction_id = datetime.now().strftime("%Y%m%d%H%M%S%f")

        with self._lock:
            results = []
            try:
                self.logger.debug(f"开始事务 {transaction_id}，包含 {len(operations)} 个操作")

                if immediate:
                    self.conn.execute("BEGIN IMMEDIATE")

                for i, operation in enumerate(operations):
                    self.logger.debug(f"执行事务 {transaction_id} 中的操作 {i+1}/{len(operations)}")
                    results.append(operation())

                self.conn.commit()
                self.logger.debug(f"事务 {transaction_id} 提交成功")

                return results

            except Exception as e:
                self.logger.info(f"事务 {transaction_id} 执行失败: {type(e).__name__}: {str(e)}")
                try:
                    self.conn.rollback()
                    self.logger.debug(f"事务 {transaction_id} 已回滚")
                except Exception as rollback_error:
                    self.logger.error(f"事务回滚失败: {str(rollback_error)}")

                raise

    def execute_single(self, query: str, params: List = None) -> Any:
        """
        执行单个SQL语句，写操作自动提交

        Args:
            query: SQL语句
            params: 参数

        Returns:
            游标对象
        """
        self.ensure_connected()

        with self._lock:
            try:
                if params:
                    result = self.conn.execute(query, params)
                else:
                    result = self.conn.execute(query)

                if query.strip().upper().startswith(('CREATE', 'DROP', 'ALTER', 'INSERT', 'UPDATE', 'DELETE')):
                    self.conn.commit()

                return result

            except Exception as e:
                self.logger.error(f"执行SQL查询失败: {query[:100]}..., 错误: {str(e)}")
                raise

    @contextmanager
    def transaction(self, immediate: bool = False):
        """
        事务上下文管理器

        Usage:
            with db_manager.transaction(immediate=True) as conn:
                conn.execute("INSERT ...")
                conn.execute("UPDATE ...")
        """
        self.ensure_connected()

        with self._lock:
            try:
                if immediate:
                    self.conn.execute("BEGIN IMMEDIATE")
                yield self.conn
                self.conn.commit()
            except Exception as e:
                self.logger.info(f"手动事务执行失败: {type(e).__name__}: {str(e)}")
                try:
                    self.conn.rollback()
                except Exception as rollback_error:
                    self.logger.error(f"手动事务回滚失败: {str(rollback_error)}")
                raise

    def get_table_info(self, table_name: str) -> Dict[str, Any]:
        """
        获取数据表信息

        Args:
            table_name: 表名

        Returns:
            表信息字典
        """
        self.ensure_connected()

        columns_result = self.conn.execute(f"PRAGMA table_info('{table_name}')").fetchall()

        if not columns_result:
            raise ValueError(f"表 {table_name} 不存在")

        columns = [{
            'name': col[1],
            'type': col[2],
            'not_null': bool(col[3]),
            'default_value': col[4],
            'primary_key': bool(col[5])
        } for col in columns_result]

        record_count = self.conn.execute(f"SELECT COUNT(*) FROM {table_name}").fetchone()[0]

        return {
            'table_name': table_name,
            'columns': columns,
            'record_count': record_count
        }

    def check_integrity(self):
        """
        检查数据库完整性：核心表存在，且预约数不超过对应时段容量

        Raises:
            RuntimeError: 发现问题时抛出
        """
        self.ensure_connected()

        self.logger.info("开始数据库完整性检查")

        core_tables = ['users', 'vendors', 'menu_items', 'carts', 'cart_items',
                       'vendor_schedules', 'reservations', 'orders', 'order_items',
                       'order_status_history', 'reviews']

        for table in core_tables:
            result = self.conn.execute("""
                SELECT COUNT(*) FROM sqlite_master
                WHERE type='table' AND name=?
            """, (table,)).fetchone()

            if not result or result[0] == 0:
                raise RuntimeError(f"核心表 {table} 不存在")

        integrity_issues = []

        # 超额预约检查：按(商家, 日期, 时段)统计今天及以后仍占用容量的预约
        overbooked = self.conn.execute("""
            SELECT r.vendor_id, r.date, r.slot, COUNT(*) AS cnt, s.max_orders_per_slot
            FROM reservations r
            JOIN vendor_schedules s
              ON s.vendor_id = r.vendor_id
             AND s.weekday = CAST(strftime('%w', r.date) AS INTEGER) + 7 * (strftime('%w', r.date) = '0')
            WHERE r.status NOT IN ('cancelled', 'rejected')
              AND r.date >= date('now', 'localtime')
            GROUP BY r.vendor_id, r.date, r.slot
            HAVING COUNT(*) > s.max_orders_per_slot
        """).fetchall()

        integrity_issues.extend([
            f"商家 {row[0]} 在 {row[1]} {row[2]} 有 {row[3]} 个预约，超过容量 {row[4]}"
            for row in overbooked
        ])

        # 订单金额与明细核对
        mismatched = self.conn.execute("""
            SELECT o.order_id, o.total_cents, COALESCE(SUM(i.line_total_cents), 0)
            FROM orders o
            LEFT JOIN order_items i ON i.order_id = o.order_id
            GROUP BY o.order_id
            HAVING o.total_cents != COALESCE(SUM(i.line_total_cents), 0)
        """).fetchall()

        integrity_issues.extend([
            f"订单 {row[0]} 金额 {row[1]} 与明细合计 {row[2]} 不一致"
            for row in mismatched
        ])

        if integrity_issues:
            error_msg = "数据库完整性检查发现问题:\n" + "\n".join(integrity_issues)
            self.logger.error(error_msg)
            raise RuntimeError(error_msg)

        self.logger.info("数据库完整性检查通过")

    def __enter__(self):
        if not self.is_connected():
            self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __del__(self):
        if self.is_connected():
            self.close()
