import uuid
from datetime import datetime

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.datetime_utils import utcnow
from app.db.session import Base


class ProcessedEvent(Base):
    """Marks an event as handled by one subscriber so redelivery is a no-op."""

    __tablename__ = "processed_events"
    __table_args__ = (
        UniqueConstraint("handler", "idempotency_key", name="uq_processed_event_handler_key"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    handler: Mapped[str] = mapped_column(String(100))
    idempotency_key: Mapped[str] = mapped_column(String(255))
    processed_at: Mapped[datetime] = mapped_column(default=utcnow)
