"""SePay webhook handling.

SePay posts one JSON document per bank transaction. Incoming transfers whose
description carries one of our transfer codes are handed to
PaymentConfirmationService; everything else is acknowledged and ignored so
SePay does not keep retrying.
"""

import hmac
import logging
import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.events import EventBus
from app.core.exceptions import UnauthorizedError
from app.store.services.payment_confirmation import (
    TRANSFER_PREFIXES,
    PaymentConfirmationService,
    PaymentNotice,
)

logger = logging.getLogger(__name__)

TRANSFER_CODE_PATTERN = re.compile(
    r"(" + "|".join(TRANSFER_PREFIXES) + r")[0-9A-F]{10}", re.IGNORECASE
)


@dataclass
class WebhookResult:
    """Result of webhook processing."""

    status: str
    order_id: str | None = None
    message: str | None = None

    def as_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": True, "status": self.status}
        if self.order_id:
            body["order_id"] = self.order_id
        if self.message:
            body["message"] = self.message
        return body


def verify_api_key(authorization: str | None) -> None:
    """
    Check the ``Authorization`` header SePay sends.

    Accepts ``Apikey <key>`` with any casing of the prefix, or the bare key.

    Raises:
        UnauthorizedError: header missing, key not configured, or key wrong
    """
    expected = settings.PAYMENT_WEBHOOK_SECRET_KEY
    if not expected:
        logger.error("PAYMENT_WEBHOOK_SECRET_KEY is not configured, rejecting webhook")
        raise UnauthorizedError("Webhook chưa được cấu hình")
    if not authorization:
        raise UnauthorizedError("Thiếu khóa xác thực webhook")

    provided = authorization.strip()
    if provided.lower().startswith("apikey "):
        provided = provided[len("apikey ") :].strip()

    if not hmac.compare_digest(provided.encode(), expected.encode()):
        logger.warning("webhook_invalid_api_key")
        raise UnauthorizedError("Khóa xác thực webhook không hợp lệ")


def extract_transfer_code(payload: dict[str, Any]) -> str | None:
    """Transfer code from SePay's ``code`` field, else searched in ``content``."""
    code = payload.get("code")
    if isinstance(code, str) and TRANSFER_CODE_PATTERN.fullmatch(code.strip()):
        return code.strip().upper()

    for key in ("content", "description"):
        text = payload.get(key)
        if isinstance(text, str):
            match = TRANSFER_CODE_PATTERN.search(text)
            if match:
                return match.group(0).upper()
    return None


class SePayWebhookHandler:
    def __init__(self, db: Session, bus: EventBus | None = None):
        self.db = db
        self.confirmation = PaymentConfirmationService(db, bus)

    async def handle(self, payload: dict[str, Any]) -> WebhookResult:
        transaction_id = payload.get("id")
        logger.info(
            "sepay_webhook_received transaction_id=%s type=%s",
            transaction_id,
            payload.get("transferType"),
        )

        if str(payload.get("transferType", "in")).lower() == "out":
            return WebhookResult(status="ignored", message="Outgoing transfer")

        transfer_code = extract_transfer_code(payload)
        if transfer_code is None:
            logger.info("sepay_webhook_no_transfer_code transaction_id=%s", transaction_id)
            return WebhookResult(status="ignored", message="No transfer code")

        try:
            amount = int(payload.get("transferAmount") or 0)
        except (TypeError, ValueError):
            amount = 0

        result = await self.confirmation.confirm(
            PaymentNotice(
                transfer_code=transfer_code,
                amount=amount,
                transaction_id=str(transaction_id) if transaction_id is not None else None,
            )
        )
        return WebhookResult(
            status=result.status,
            order_id=str(result.order_id) if result.order_id else None,
            message=result.message,
        )
