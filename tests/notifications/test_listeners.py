import uuid

import pytest

from app.core.datetime_utils import utcnow
from app.core.events import BuyerAccountCreated, PaymentConfirmed
from app.notifications.models.processed_event import ProcessedEvent
from app.notifications.services import listeners
from app.notifications.services.email_service import build_payment_confirmed_email


class RecordingEmailService:
    def __init__(self):
        self.sent = []
        self.failures = 0

    async def send_email(self, message):
        if self.failures:
            self.failures -= 1
            return False
        self.sent.append(message)
        return True


@pytest.fixture
def email_service(monkeypatch):
    service = RecordingEmailService()
    monkeypatch.setattr(listeners, "get_email_service", lambda: service)
    return service


@pytest.fixture
def outbox(email_service):
    return email_service.sent


async def test_credentials_email_is_sent_once(db_session, outbox):
    event = BuyerAccountCreated(
        user_id=uuid.uuid4(),
        email="new@example.com",
        name="Người mua",
        temporary_password="ZLP123456",
    )

    await listeners.send_account_credentials(event, db_session)
    await listeners.send_account_credentials(event, db_session)

    assert len(outbox) == 1
    assert outbox[0].to == "new@example.com"
    assert "ZLP123456" in outbox[0].body_text


async def test_credentials_email_is_retried_after_failed_send(db_session, email_service):
    email_service.failures = 1
    event = BuyerAccountCreated(
        user_id=uuid.uuid4(),
        email="retry@example.com",
        name="Người mua",
        temporary_password="ZLP654321",
    )

    await listeners.send_account_credentials(event, db_session)
    assert email_service.sent == []
    assert db_session.query(ProcessedEvent).count() == 0

    await listeners.send_account_credentials(event, db_session)
    await listeners.send_account_credentials(event, db_session)

    assert [message.to for message in email_service.sent] == ["retry@example.com"]


async def test_payment_email_is_retried_after_failed_send(db_session, email_service, test_user):
    email_service.failures = 1
    event = PaymentConfirmed(
        user_id=test_user.id,
        product_type="book",
        product_id=uuid.uuid4(),
        order_id=uuid.uuid4(),
        amount=199_700,
        paid_at=utcnow(),
    )

    await listeners.send_payment_confirmation(event, db_session)
    await listeners.send_payment_confirmation(event, db_session)

    assert [message.to for message in email_service.sent] == [test_user.email]


async def test_payment_email_goes_to_buyer_once_per_order(db_session, outbox, test_user):
    event = PaymentConfirmed(
        user_id=test_user.id,
        product_type="course",
        product_id=uuid.uuid4(),
        order_id=uuid.uuid4(),
        amount=1_000_700,
        paid_at=utcnow(),
    )

    await listeners.send_payment_confirmation(event, db_session)
    await listeners.send_payment_confirmation(event, db_session)

    assert [message.to for message in outbox] == [test_user.email]
    assert "1.000.700 VND" in outbox[0].body_text
    assert "khóa học" in outbox[0].body_text


async def test_payment_email_for_unknown_user_is_skipped(db_session, outbox):
    event = PaymentConfirmed(
        user_id=uuid.uuid4(),
        product_type="book",
        product_id=uuid.uuid4(),
        order_id=uuid.uuid4(),
        amount=199_700,
        paid_at=utcnow(),
    )

    await listeners.send_payment_confirmation(event, db_session)

    assert outbox == []


def test_unknown_product_type_falls_back_to_raw_label():
    message = build_payment_confirmed_email("A", "a@example.com", "bundle", 5000)

    assert "bundle" in message.body_text
    assert "5.000 VND" in message.body_text
