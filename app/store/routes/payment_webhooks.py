"""
Payment webhooks (CRITICAL!).

SePay calls this endpoint for every transaction on the receiving account.
Confirmed transfers mark orders paid and grant access.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.store.services.webhook_handler import SePayWebhookHandler, verify_api_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payment/webhook", tags=["webhooks"])


@router.post("/sepay")
async def sepay_webhook(
    request: Request,
    authorization: str | None = Header(None, alias="Authorization"),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """
    Handle a SePay transaction notification.

    Redeliveries and unrelated transfers are answered with 200 and a status
    string so SePay stops retrying; only a bad key or an amount mismatch is
    an error.
    """
    verify_api_key(authorization)

    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from None
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    result = await SePayWebhookHandler(db).handle(payload)
    return result.as_dict()
