from decimal import Decimal

import pytest

from app.core.events import OrderPaid, event_bus
from app.core.security import create_access_token
from app.sales.models.saler import Commission, CommissionStatus
from app.sales.services.commission_service import CommissionService, compute_commission
from app.store.models.book import OrderStatus
from app.store.models.course_order import CourseOrder
from tests.utils.factories import (
    create_course_factory,
    create_saler_factory,
    create_user_factory,
    set_course_rate,
)
from tests.utils.helpers import set_access_token_cookie


def paid_order_event(db_session, course, buyer, saler_user_id, amount=1_000_000):
    order = CourseOrder(
        user_id=buyer.id,
        course_id=course.id,
        saler_id=saler_user_id,
        amount=amount,
        status=OrderStatus.PAID,
    )
    db_session.add(order)
    db_session.commit()
    return OrderPaid(
        order_id=order.id,
        user_id=buyer.id,
        course_id=course.id,
        saler_id=saler_user_id,
        amount=amount,
    )


@pytest.mark.parametrize(
    "amount, rate, expected",
    [
        (1_000_000, Decimal("10"), 100_000),
        (199_700, Decimal("12.5"), 24_963),
        (1_005, Decimal("10"), 101),
        (1_004, Decimal("10"), 100),
        (0, Decimal("50"), 0),
    ],
)
def test_compute_commission_rounds_half_up(amount, rate, expected):
    assert compute_commission(amount, rate) == expected


class TestCreateForOrder:
    def test_uses_default_rate(self, db_session, test_user):
        course = create_course_factory(db_session)
        saler = create_saler_factory(db_session, default_rate=Decimal("10"))
        event = paid_order_event(db_session, course, test_user, saler.user_id)

        commission = CommissionService.create_for_order(event, db_session)

        assert commission is not None
        assert commission.commission_rate == Decimal("10")
        assert commission.commission_amount == 100_000
        assert commission.status == CommissionStatus.AVAILABLE

    def test_course_override_wins(self, db_session, test_user):
        course = create_course_factory(db_session)
        saler = create_saler_factory(db_session, default_rate=Decimal("10"))
        set_course_rate(db_session, saler, course, Decimal("25"))
        event = paid_order_event(db_session, course, test_user, saler.user_id)

        commission = CommissionService.create_for_order(event, db_session)

        assert commission.commission_rate == Decimal("25")
        assert commission.commission_amount == 250_000

    def test_override_for_other_course_is_ignored(self, db_session, test_user):
        course = create_course_factory(db_session)
        other = create_course_factory(db_session)
        saler = create_saler_factory(db_session, default_rate=Decimal("10"))
        set_course_rate(db_session, saler, other, Decimal("40"))

        assert CommissionService.resolve_rate(saler, course.id, db_session) == Decimal("10")

    def test_redelivery_creates_no_duplicate(self, db_session, test_user):
        course = create_course_factory(db_session)
        saler = create_saler_factory(db_session)
        event = paid_order_event(db_session, course, test_user, saler.user_id)

        CommissionService.create_for_order(event, db_session)
        again = CommissionService.create_for_order(event, db_session)

        assert again is None
        assert db_session.query(Commission).count() == 1

    def test_order_without_saler_is_skipped(self, db_session, test_user):
        course = create_course_factory(db_session)
        event = paid_order_event(db_session, course, test_user, None)

        assert CommissionService.create_for_order(event, db_session) is None
        assert db_session.query(Commission).count() == 0

    def test_missing_saler_profile_is_skipped(self, db_session, test_user):
        course = create_course_factory(db_session)
        plain_user = create_user_factory(db_session, role="saler")
        event = paid_order_event(db_session, course, test_user, plain_user.id)

        assert CommissionService.create_for_order(event, db_session) is None

    async def test_listener_creates_commission_from_event(self, db_session, test_user):
        course = create_course_factory(db_session)
        saler = create_saler_factory(db_session)
        event = paid_order_event(db_session, course, test_user, saler.user_id)

        await event_bus.publish(event, db_session)

        assert db_session.query(Commission).one().order_id == event.order_id


class TestCommissionsEndpoint:
    async def test_lists_commissions_with_totals(self, test_client, db_session, test_user):
        course = create_course_factory(db_session)
        saler = create_saler_factory(db_session, email="saler@example.com")
        for amount in (1_000_000, 500_000):
            CommissionService.create_for_order(
                paid_order_event(db_session, course, test_user, saler.user_id, amount), db_session
            )
        paid = db_session.query(Commission).filter(Commission.order_amount == 500_000).one()
        paid.status = CommissionStatus.PAID
        db_session.commit()
        set_access_token_cookie(
            test_client,
            create_access_token(
                {"sub": str(saler.user_id), "email": "saler@example.com", "role": "saler"}
            ),
        )

        response = await test_client.get("/api/v1/saler/commissions")

        assert response.status_code == 200, response.text
        data = response.json()
        assert len(data["commissions"]) == 2
        assert data["totals_by_status"] == {"pending": 0, "available": 100_000, "paid": 50_000}
        assert data["total_amount"] == 150_000

    async def test_plain_user_is_forbidden(self, test_client, test_user_token):
        set_access_token_cookie(test_client, test_user_token)

        response = await test_client.get("/api/v1/saler/commissions")

        assert response.status_code == 403
