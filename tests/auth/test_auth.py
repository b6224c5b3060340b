from app.core.security import create_access_token, verify_password
from tests.utils.factories import create_user_factory
from tests.utils.helpers import set_access_token_cookie


class TestLoginEndpoint:
    async def test_should_login_and_set_cookie(self, test_client, test_user):
        response = await test_client.post(
            "/api/v1/auth/login",
            json={"email": "TEST@example.com", "password": "testpass123"},
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["user"]["email"] == "test@example.com"
        assert data["must_change_password"] is False
        assert "access_token" in response.cookies

    async def test_should_return_401_for_wrong_password(self, test_client, test_user):
        response = await test_client.post(
            "/api/v1/auth/login",
            json={"email": test_user.email, "password": "wrong-password"},
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Email hoặc mật khẩu không đúng"

    async def test_should_return_403_for_inactive_user(self, test_client, db_session):
        user = create_user_factory(db_session, password="secret123", is_active=False)

        response = await test_client.post(
            "/api/v1/auth/login", json={"email": user.email, "password": "secret123"}
        )

        assert response.status_code == 403

    async def test_should_flag_temporary_password(self, test_client, db_session):
        user = create_user_factory(db_session, password="ZLP123456", must_change_password=True)

        response = await test_client.post(
            "/api/v1/auth/login", json={"email": user.email, "password": "ZLP123456"}
        )

        assert response.status_code == 200
        assert response.json()["must_change_password"] is True


class TestMeEndpoint:
    async def test_should_return_current_user(self, test_client, test_user, test_user_token):
        set_access_token_cookie(test_client, test_user_token)

        response = await test_client.get("/api/v1/auth/me")

        assert response.status_code == 200
        assert response.json()["id"] == str(test_user.id)
        assert response.json()["role"] == "user"

    async def test_should_return_401_without_cookie(self, test_client):
        response = await test_client.get("/api/v1/auth/me")

        assert response.status_code == 401

    async def test_should_return_401_for_garbage_token(self, test_client):
        set_access_token_cookie(test_client, "not-a-jwt")

        response = await test_client.get("/api/v1/auth/me")

        assert response.status_code == 401


class TestChangePasswordEndpoint:
    async def test_should_change_password_and_clear_flag(self, test_client, db_session):
        user = create_user_factory(db_session, password="ZLP654321", must_change_password=True)
        set_access_token_cookie(
            test_client, create_access_token({"sub": str(user.id), "email": user.email})
        )

        response = await test_client.post(
            "/api/v1/auth/change-password",
            json={"current_password": "ZLP654321", "new_password": "new-password-1"},
        )

        assert response.status_code == 200, response.text
        db_session.refresh(user)
        assert user.must_change_password is False
        assert verify_password("new-password-1", user.hashed_password)

    async def test_should_reject_wrong_current_password(
        self, test_client, test_user, test_user_token
    ):
        set_access_token_cookie(test_client, test_user_token)

        response = await test_client.post(
            "/api/v1/auth/change-password",
            json={"current_password": "nope", "new_password": "new-password-1"},
        )

        assert response.status_code == 400

    async def test_should_reject_short_password(self, test_client, test_user, test_user_token):
        set_access_token_cookie(test_client, test_user_token)

        response = await test_client.post(
            "/api/v1/auth/change-password",
            json={"current_password": "testpass123", "new_password": "short"},
        )

        assert response.status_code == 422
