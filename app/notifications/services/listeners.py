"""E-mail subscribers for domain events."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.auth.models.user import User
from app.core.events import BuyerAccountCreated, EventBus, PaymentConfirmed
from app.notifications.models.processed_event import ProcessedEvent
from app.notifications.services.email_service import (
    build_account_credentials_email,
    build_payment_confirmed_email,
    get_email_service,
)

logger = logging.getLogger(__name__)


def claim_event(handler: str, idempotency_key: str, db: Session) -> bool:
    """
    Record that ``handler`` processed ``idempotency_key``.

    Returns False when it was already recorded, i.e. this is a redelivery.
    """
    db.add(ProcessedEvent(handler=handler, idempotency_key=idempotency_key))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return False
    return True


def release_event(handler: str, idempotency_key: str, db: Session) -> None:
    """Drop a claim so a later redelivery runs ``handler`` again."""
    db.query(ProcessedEvent).filter(
        ProcessedEvent.handler == handler,
        ProcessedEvent.idempotency_key == idempotency_key,
    ).delete(synchronize_session=False)
    db.commit()


async def send_account_credentials(event: BuyerAccountCreated, db: Session) -> None:
    key = str(event.user_id)
    if not claim_event("send_account_credentials", key, db):
        logger.info("credentials_email_already_sent user_id=%s", event.user_id)
        return

    message = build_account_credentials_email(event.name, event.email, event.temporary_password)
    if not await get_email_service().send_email(message):
        logger.warning("credentials_email_not_sent user_id=%s", event.user_id)
        release_event("send_account_credentials", key, db)


async def send_payment_confirmation(event: PaymentConfirmed, db: Session) -> None:
    key = str(event.order_id)
    if not claim_event("send_payment_confirmation", key, db):
        return

    user = db.query(User).filter(User.id == event.user_id).first()
    if user is None:
        logger.warning("payment_email_user_missing user_id=%s", event.user_id)
        return

    message = build_payment_confirmed_email(user.name, user.email, event.product_type, event.amount)
    if not await get_email_service().send_email(message):
        logger.warning("payment_email_not_sent order_id=%s", event.order_id)
        release_event("send_payment_confirmation", key, db)


def register_listeners(bus: EventBus) -> None:
    bus.subscribe(BuyerAccountCreated, send_account_credentials)
    bus.subscribe(PaymentConfirmed, send_payment_confirmation)
