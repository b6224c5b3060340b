from typing import Any

import httpx


def set_access_token_cookie(client: httpx.AsyncClient, access_token: str) -> None:
    """Set only the access token cookie on the test client."""
    client.cookies.set("access_token", access_token)


def assert_error_response(response: httpx.Response, status_code: int, code: str) -> dict[str, Any]:
    """Assert an AppError body and return its ``error`` object."""
    assert response.status_code == status_code, response.text
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == code
    return body["error"]


def sepay_payload(transfer_code: str, amount: int, transaction_id: int = 1001) -> dict[str, Any]:
    """A SePay incoming-transfer notification as posted to the webhook."""
    return {
        "id": transaction_id,
        "gateway": "MBBank",
        "transactionDate": "2026-10-17 10:15:00",
        "accountNumber": "0123456789",
        "code": None,
        "content": f"NGUYEN VAN A chuyen tien {transfer_code} FT2629",
        "transferType": "in",
        "transferAmount": amount,
        "accumulated": 0,
        "referenceCode": "FT2629",
        "description": "",
    }
