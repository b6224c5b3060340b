from datetime import timedelta

import pytest

from app.core.datetime_utils import utcnow
from app.core.exceptions import ValidationError
from app.store.models.coupon import Coupon, CouponScope, CouponType
from app.store.services.coupon_service import CouponService
from tests.utils.factories import create_coupon_factory
from tests.utils.helpers import assert_error_response


class TestCouponValidate:
    def test_percentage_discount_is_rounded_down(self, db_session):
        create_coupon_factory(db_session, code="TEN", value=10)

        quote = CouponService(db_session).validate("ten", CouponScope.BOOK, 199)

        assert quote.discount_amount == 19
        assert quote.final_price == 180

    def test_fixed_discount_is_capped_at_price(self, db_session):
        create_coupon_factory(db_session, code="BIG", type=CouponType.FIXED_AMOUNT, value=500)

        quote = CouponService(db_session).validate("BIG", CouponScope.COURSE, 300)

        assert quote.discount_amount == 300
        assert quote.final_price == 0

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"is_active": False}, "Mã giảm giá đã bị vô hiệu hóa"),
            ({"expires_at": "past"}, "Mã giảm giá đã hết hạn"),
            ({"usage_limit": 1, "usage_count": 1}, "Mã giảm giá đã hết lượt sử dụng"),
            ({"applicable_to": [CouponScope.BOOK]}, "Mã giảm giá không áp dụng cho indicator"),
        ],
    )
    def test_should_reject_unusable_coupon(self, db_session, overrides, message):
        fields = dict(overrides)
        if fields.get("expires_at") == "past":
            fields["expires_at"] = utcnow() - timedelta(days=1)
        create_coupon_factory(db_session, code="BAD", **fields)

        with pytest.raises(ValidationError) as exc_info:
            CouponService(db_session).validate("BAD", CouponScope.INDICATOR, 1000)

        assert exc_info.value.message == message
        assert exc_info.value.details == {"field": "coupon_code"}

    def test_should_reject_unknown_code(self, db_session):
        with pytest.raises(ValidationError, match="Mã giảm giá không tồn tại"):
            CouponService(db_session).validate("NOPE", CouponScope.BOOK, 1000)

    def test_validate_has_no_side_effects(self, db_session):
        coupon = create_coupon_factory(db_session, code="TEN", value=10, usage_limit=5)

        CouponService(db_session).validate("TEN", CouponScope.BOOK, 1000)

        db_session.refresh(coupon)
        assert coupon.usage_count == 0


class TestCouponUsage:
    def test_record_usage_increments_once(self, db_session):
        coupon = create_coupon_factory(db_session, code="ONCE", usage_limit=2)

        CouponService(db_session).record_usage("once")

        db_session.refresh(coupon)
        assert coupon.usage_count == 1

    def test_record_usage_never_exceeds_limit(self, db_session):
        coupon = create_coupon_factory(db_session, code="FULL", usage_limit=1, usage_count=1)

        CouponService(db_session).record_usage("FULL")

        db_session.refresh(coupon)
        assert coupon.usage_count == 1

    def test_unlimited_coupon_keeps_counting(self, db_session):
        create_coupon_factory(db_session, code="FREE", usage_limit=0)
        service = CouponService(db_session)

        for _ in range(3):
            service.record_usage("FREE")

        coupon = db_session.query(Coupon).filter(Coupon.code == "FREE").populate_existing().one()
        assert coupon.usage_count == 3


class TestCouponValidateEndpoint:
    async def test_should_apply_coupon_after_default_discount(self, test_client, db_session):
        create_coupon_factory(db_session, code="TEN", value=10)

        response = await test_client.post(
            "/api/v1/coupons/validate",
            json={
                "code": "TEN",
                "resource_type": "BOOK",
                "original_price": 250,
                "default_discount": 51,
            },
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["price_after_default"] == 199
        assert data["discount_amount"] == 19
        assert data["final_price"] == 180
        assert data["total_savings"] == 70

    async def test_should_return_validation_error(self, test_client, db_session):
        response = await test_client.post(
            "/api/v1/coupons/validate",
            json={"code": "MISSING", "resource_type": "COURSE", "original_price": 100},
        )

        error = assert_error_response(response, 400, "VALIDATION_ERROR")
        assert error["message"] == "Mã giảm giá không tồn tại"
