"""SePay bank-transfer gateway client.

SePay shows the buyer a VietQR image encoding the receiving account, the
amount and a transfer description. The description is the order's transfer
code, which the payment webhook later uses to find the order.
"""

import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

import httpx

from app.core.config import settings
from app.core.exceptions import ExternalServiceError
from app.core.retry import CircuitBreaker, CircuitOpenError, async_retry

logger = logging.getLogger(__name__)


@dataclass
class BankAccount:
    acc_no: str
    bank_code: str
    bank_name: str = ""
    acc_name: str = ""


@dataclass
class QrCode:
    qr_url: str
    bank: BankAccount
    extra: dict[str, Any] = field(default_factory=dict)


class SePayService:
    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self.api_key = settings.SEPAY_API_KEY
        self.base_url = settings.SEPAY_BASE_URL.rstrip("/")
        self.qr_base_url = settings.SEPAY_QR_BASE_URL
        self.fallback_account = BankAccount(
            acc_no=settings.PAYMENT_QR_BANK_ACCOUNT,
            bank_code=settings.PAYMENT_QR_BANK_CODE,
        )
        self._client = client
        self.circuit = CircuitBreaker(
            "sepay",
            failure_threshold=settings.SEPAY_CIRCUIT_FAILURE_THRESHOLD,
            reset_timeout=settings.SEPAY_CIRCUIT_RESET_SECONDS,
        )

    @async_retry(
        max_attempts=settings.SEPAY_MAX_ATTEMPTS,
        delay=settings.SEPAY_RETRY_DELAY_SECONDS,
        exceptions=(httpx.TransportError, httpx.HTTPStatusError),
    )
    async def _fetch_bank_accounts(self) -> list[dict[str, Any]]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        url = f"{self.base_url}/userapi/bankaccounts/list"
        if self._client is not None:
            response = await self._client.get(url, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=settings.SEPAY_TIMEOUT_SECONDS) as client:
                response = await client.get(url, headers=headers)
        response.raise_for_status()
        data = response.json()
        accounts = data.get("bankaccounts") or []
        return list(accounts)

    async def get_bank_account(self) -> BankAccount:
        """
        Resolve the receiving account.

        Without an API key the configured account is used. With a key the
        first account from SePay wins and missing fields fall back to the
        configured values.

        Raises:
            ExternalServiceError: SePay kept failing or the circuit is open
        """
        if not self.api_key:
            return self.fallback_account

        try:
            accounts = await self.circuit.call(self._fetch_bank_accounts)
        except CircuitOpenError as e:
            logger.warning("sepay_circuit_open")
            raise ExternalServiceError(
                "Cổng thanh toán tạm thời không khả dụng", service="sepay"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("sepay_bank_accounts_failed error=%s", e)
            raise ExternalServiceError(
                "Không thể kết nối cổng thanh toán", service="sepay"
            ) from e

        if not accounts:
            return self.fallback_account

        first = accounts[0]
        fallback = self.fallback_account
        return BankAccount(
            acc_no=str(first.get("acc_no") or first.get("account_number") or fallback.acc_no),
            bank_code=str(first.get("bank_code") or first.get("bank_id") or fallback.bank_code),
            bank_name=str(first.get("bank_name") or ""),
            acc_name=str(first.get("acc_name") or first.get("account_name") or ""),
        )

    async def create_qr(self, amount: int, transfer_code: str) -> QrCode:
        bank = await self.get_bank_account()
        if not bank.acc_no or not bank.bank_code:
            raise ExternalServiceError(
                "Chưa cấu hình tài khoản nhận thanh toán", service="sepay"
            )

        query = urlencode(
            {"acc": bank.acc_no, "bank": bank.bank_code, "amount": amount, "des": transfer_code}
        )
        qr_url = f"{self.qr_base_url}?{query}"
        logger.info("sepay_qr_created transfer_code=%s amount=%s", transfer_code, amount)
        return QrCode(qr_url=qr_url, bank=bank)


_sepay_service: SePayService | None = None


def get_sepay_service() -> SePayService:
    """Get or create the SePay service instance."""
    global _sepay_service
    if _sepay_service is None:
        _sepay_service = SePayService()
    return _sepay_service
