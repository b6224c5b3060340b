"""In-process domain event bus.

Events are plain dataclasses; subscribers register per event class and are
awaited one after another with the publishing request's database session.
A failing subscriber is logged and does not stop the others, so delivery is
at-least-once and every subscriber has to tolerate redelivery.
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from app.core.datetime_utils import utcnow

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any, Session], Awaitable[None] | None]


@dataclass(frozen=True)
class DomainEvent:
    event_id: uuid.UUID = field(default_factory=uuid.uuid4, kw_only=True)
    occurred_at: datetime = field(default_factory=utcnow, kw_only=True)


@dataclass(frozen=True)
class BuyerAccountCreated(DomainEvent):
    user_id: uuid.UUID
    email: str
    name: str
    temporary_password: str


@dataclass(frozen=True)
class PaymentConfirmed(DomainEvent):
    user_id: uuid.UUID
    product_type: str
    product_id: uuid.UUID
    order_id: uuid.UUID
    amount: int
    paid_at: datetime


@dataclass(frozen=True)
class OrderPaid(DomainEvent):
    """A course order was paid; drives the affiliate commission."""

    order_id: uuid.UUID
    user_id: uuid.UUID
    course_id: uuid.UUID
    saler_id: uuid.UUID | None
    amount: int


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[type, list[EventHandler]] = {}

    def subscribe(self, event_type: type, handler: EventHandler) -> None:
        handlers = self._handlers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, event_type: type, handler: EventHandler) -> None:
        if handler in self._handlers.get(event_type, []):
            self._handlers[event_type].remove(handler)

    def clear(self) -> None:
        self._handlers.clear()

    def handlers_for(self, event_type: type) -> list[EventHandler]:
        return list(self._handlers.get(event_type, []))

    async def publish(self, event: DomainEvent, db: Session) -> None:
        for handler in self.handlers_for(type(event)):
            try:
                result = handler(event, db)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                db.rollback()
                logger.exception(
                    "Error in event handler %s for %s (event_id=%s)",
                    getattr(handler, "__name__", repr(handler)),
                    type(event).__name__,
                    event.event_id,
                )


event_bus = EventBus()
