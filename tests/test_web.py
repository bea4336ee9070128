"""Tests for the HTML pages linked from outgoing email."""

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.models.user import User


class TestVerifyEmailPage:
    """Tests for the verification landing page."""

    def test_verify_page_success(self, client: TestClient, registered_user: dict, db_session: Session):
        response = client.get(f"/verify-email?token={registered_user['token']}")
        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "Email Verified" in response.text
        assert "test@example.com" in response.text
        assert db_session.get(User, registered_user["id"]).is_verified is True

    def test_verify_page_invalid_token(self, client: TestClient):
        response = client.get("/verify-email?token=bogus")
        assert response.status_code == 400
        assert "Email Verification Failed" in response.text
        assert "Invalid verification link." in response.text

    def test_verify_page_expired_token(self, client: TestClient, registered_user: dict, clock):
        clock.advance(days=2)
        response = client.get(f"/verify-email?token={registered_user['token']}")
        assert response.status_code == 400
        assert "expired" in response.text


class TestResetPasswordPage:
    """Tests for the reset form and its submission."""

    def _reset_token(self, client: TestClient, mailer) -> str:
        client.post("/api/v1/auth/forgot-password", json={"email": "test@example.com"})
        return mailer.last_token()

    def test_form_without_token(self, client: TestClient):
        response = client.get("/reset-password")
        assert response.status_code == 400
        assert "No token provided" in response.text
        assert "<form" not in response.text

    def test_form_with_token(self, client: TestClient):
        response = client.get("/reset-password?token=abc123")
        assert response.status_code == 200
        assert "Reset Your Password" in response.text
        assert 'value="abc123"' in response.text

    def test_submit_success(self, client: TestClient, verified_user: dict, mailer):
        token = self._reset_token(client, mailer)
        response = client.post(
            "/reset-password",
            data={"token": token, "new_password": "newpassword456", "confirm_password": "newpassword456"},
        )
        assert response.status_code == 200
        assert "Password reset successful!" in response.text

        login = client.post("/api/v1/auth/login", json={"email": "test@example.com", "password": "newpassword456"})
        assert login.status_code == 200

    def test_submit_mismatch(self, client: TestClient, verified_user: dict, mailer):
        token = self._reset_token(client, mailer)
        response = client.post(
            "/reset-password",
            data={"token": token, "new_password": "newpassword456", "confirm_password": "different456"},
        )
        assert response.status_code == 400
        assert "Passwords do not match." in response.text

    def test_submit_short_password(self, client: TestClient, verified_user: dict, mailer):
        token = self._reset_token(client, mailer)
        response = client.post(
            "/reset-password",
            data={"token": token, "new_password": "123", "confirm_password": "123"},
        )
        assert response.status_code == 400
        assert "at least 6 characters" in response.text

    def test_submit_invalid_token(self, client: TestClient):
        response = client.post(
            "/reset-password",
            data={"token": "bogus", "new_password": "newpassword456", "confirm_password": "newpassword456"},
        )
        assert response.status_code == 400
        assert "Invalid or expired reset token." in response.text
