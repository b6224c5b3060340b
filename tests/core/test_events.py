import uuid

from app.core.events import BuyerAccountCreated, EventBus, OrderPaid


def account_event():
    return BuyerAccountCreated(
        user_id=uuid.uuid4(), email="a@example.com", name="A", temporary_password="x"
    )


class TestEventBus:
    async def test_delivers_to_sync_and_async_handlers(self, db_session):
        bus = EventBus()
        received = []

        def sync_handler(event, db):
            received.append(("sync", event.email))

        async def async_handler(event, db):
            received.append(("async", event.email))

        bus.subscribe(BuyerAccountCreated, sync_handler)
        bus.subscribe(BuyerAccountCreated, async_handler)

        await bus.publish(account_event(), db_session)

        assert received == [("sync", "a@example.com"), ("async", "a@example.com")]

    async def test_failing_handler_does_not_stop_others(self, db_session):
        bus = EventBus()
        received = []

        async def broken(event, db):
            raise RuntimeError("boom")

        async def working(event, db):
            received.append(event.event_id)

        bus.subscribe(BuyerAccountCreated, broken)
        bus.subscribe(BuyerAccountCreated, working)
        event = account_event()

        await bus.publish(event, db_session)

        assert received == [event.event_id]

    async def test_handlers_are_keyed_by_event_type(self, db_session):
        bus = EventBus()
        received = []

        async def handler(event, db):
            received.append(event)

        bus.subscribe(OrderPaid, handler)

        await bus.publish(account_event(), db_session)

        assert received == []

    def test_subscribe_twice_registers_once(self):
        bus = EventBus()

        async def handler(event, db):
            pass

        bus.subscribe(OrderPaid, handler)
        bus.subscribe(OrderPaid, handler)
        assert bus.handlers_for(OrderPaid) == [handler]

        bus.unsubscribe(OrderPaid, handler)
        assert bus.handlers_for(OrderPaid) == []
