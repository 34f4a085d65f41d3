# 商家评分重算测试

import pytest

from db.errors import NotFound, ValidationError


class TestRecomputeVendorRating:
    """评分重算测试"""

    def test_new_vendor_has_no_rating(self, rating_ops, market):
        """没有评价时评分为0"""
        rating = rating_ops.get_vendor_rating(market["vendor_id"])
        assert rating["rating"] == 0
        assert rating["num_reviews"] == 0

    def test_only_approved_reviews_count(self, rating_ops, support_ops, market):
        """只统计审核通过的评价"""
        vendor_id = market["vendor_id"]
        support_ops.create_review(vendor_id, market["customer_id"], 5, status="approved")
        support_ops.create_review(vendor_id, market["other_customer_id"], 4, status="approved")
        support_ops.create_review(vendor_id, market["customer_id"], 1, status="pending")
        support_ops.create_review(vendor_id, market["customer_id"], 1, status="rejected")

        rating = rating_ops.get_vendor_rating(vendor_id)
        assert rating["rating"] == pytest.approx(4.5)
        assert rating["num_reviews"] == 2

    def test_recompute_is_idempotent(self, rating_ops, support_ops, market):
        """重复重算结果一致"""
        vendor_id = market["vendor_id"]
        for score in (5, 4, 4):
            support_ops.create_review(vendor_id, market["customer_id"], score, status="approved")

        first = rating_ops.recompute_vendor_rating(vendor_id)
        second = rating_ops.recompute_vendor_rating(vendor_id)

        assert first == second
        assert first["rating"] == pytest.approx(13 / 3)
        assert first["num_reviews"] == 3

    def test_recompute_fixes_drifted_value(self, rating_ops, support_ops, test_db, market):
        """派生字段被改乱后重算可恢复"""
        vendor_id = market["vendor_id"]
        support_ops.create_review(vendor_id, market["customer_id"], 3, status="approved")
        test_db.conn.execute(
            "UPDATE vendors SET rating = 1.0, num_reviews = 42 WHERE vendor_id = ?", [vendor_id]
        )
        test_db.conn.commit()

        rating = rating_ops.recompute_vendor_rating(vendor_id)
        assert rating["rating"] == pytest.approx(3.0)
        assert rating["num_reviews"] == 1

    def test_unknown_vendor(self, rating_ops):
        """商家不存在"""
        with pytest.raises(NotFound):
            rating_ops.recompute_vendor_rating(99999)
        with pytest.raises(NotFound):
            rating_ops.get_vendor_rating(99999)

    def test_other_vendor_untouched(self, rating_ops, support_ops, market):
        """只影响被评价的商家"""
        support_ops.create_review(market["vendor_id"], market["customer_id"], 5, status="approved")
        assert rating_ops.get_vendor_rating(market["other_vendor_id"])["num_reviews"] == 0


class TestReviewHooks:
    """评价写入后自动重算"""

    def test_approval_updates_rating(self, rating_ops, support_ops, market):
        """待审核评价通过后计入评分，驳回后移除"""
        vendor_id = market["vendor_id"]
        review = support_ops.create_review(vendor_id, market["customer_id"], 2)
        assert rating_ops.get_vendor_rating(vendor_id)["num_reviews"] == 0

        support_ops.set_review_status(review["review_id"], "approved")
        assert rating_ops.get_vendor_rating(vendor_id)["rating"] == pytest.approx(2.0)

        support_ops.set_review_status(review["review_id"], "rejected")
        assert rating_ops.get_vendor_rating(vendor_id)["num_reviews"] == 0

    def test_rating_change_and_delete(self, rating_ops, support_ops, market):
        """修改分数和删除评价后重算"""
        vendor_id = market["vendor_id"]
        review = support_ops.create_review(vendor_id, market["customer_id"], 2, status="approved")
        support_ops.create_review(vendor_id, market["other_customer_id"], 4, status="approved")

        support_ops.update_review_rating(review["review_id"], 5)
        assert rating_ops.get_vendor_rating(vendor_id)["rating"] == pytest.approx(4.5)

        support_ops.delete_review(review["review_id"])
        rating = rating_ops.get_vendor_rating(vendor_id)
        assert rating["rating"] == pytest.approx(4.0)
        assert rating["num_reviews"] == 1

    @pytest.mark.parametrize("score", [0, 6, 3.5])
    def test_invalid_score(self, support_ops, market, score):
        """分数必须是1-5的整数"""
        with pytest.raises(ValidationError):
            support_ops.create_review(market["vendor_id"], market["customer_id"], score)

    def test_missing_review(self, support_ops):
        """评价不存在"""
        with pytest.raises(NotFound):
            support_ops.delete_review(99999)
