from app.core.log_config import mask_sensitive


def test_secrets_are_masked():
    event = {
        "event": "buyer_account_created",
        "temporary_password": "ZLP123456",
        "Authorization": "Apikey abc",
        "user_id": "42",
    }

    masked = mask_sensitive(None, "info", event)

    assert masked["temporary_password"] == "***"
    assert masked["Authorization"] == "***"
    assert masked["user_id"] == "42"
