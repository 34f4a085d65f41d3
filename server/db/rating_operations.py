# 商家评分重算
# 评分和评价数完全由已通过审核的评价推导，每次整体重算，不做增量修补

import logging
from typing import Dict, Any

from .manager import DatabaseManager
from .errors import NotFound

logger = logging.getLogger(__name__)


class RatingOperations:
    """
    商家评分业务操作类
    """
    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def recompute_vendor_rating(self, vendor_id: int) -> Dict[str, Any]:
        """
        重新计算商家评分

        取该商家所有 approved 状态评价的平均分与数量，一条UPDATE语句覆盖写入。
        重复执行结果相同，并发重算以最后一次写入为准。

        Args:
            vendor_id: 商家ID

        Returns:
            {'vendor_id', 'rating', 'num_reviews'}

        Raises:
            NotFound: 商家不存在
        """
        with self.db.transaction() as conn:
            cursor = conn.execute("""
                UPDATE vendors
                SET rating = (
                        SELECT COALESCE(AVG(rating), 0) FROM reviews
                        WHERE vendor_id = ? AND status = 'approved'
                    ),
                    num_reviews = (
                        SELECT COUNT(*) FROM reviews
                        WHERE vendor_id = ? AND status = 'approved'
                    ),
                    updated_at = CURRENT_TIMESTAMP
                WHERE vendor_id = ?
            """, [vendor_id, vendor_id, vendor_id])

            if cursor.rowcount == 0:
                raise NotFound(f"商家ID {vendor_id} 不存在")

            row = conn.execute(
                "SELECT rating, num_reviews FROM vendors WHERE vendor_id = ?", [vendor_id]
            ).fetchone()
            result = {
                'vendor_id': vendor_id,
                'rating': float(row['rating']),
                'num_reviews': row['num_reviews']
            }

        logger.info(f"商家 {vendor_id} 评分重算完成: {result['rating']:.2f} ({result['num_reviews']} 条评价)")
        return result

    def get_vendor_rating(self, vendor_id: int) -> Dict[str, Any]:
        """读取商家当前评分与评价数"""
        row = self.db.conn.execute(
            "SELECT rating, num_reviews FROM vendors WHERE vendor_id = ?", [vendor_id]
        ).fetchone()

        if not row:
            raise NotFound(f"商家ID {vendor_id} 不存在")

        return {
            'vendor_id': vendor_id,
            'rating': float(row['rating']),
            'num_reviews': row['num_reviews']
        }
