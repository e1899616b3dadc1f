"""
Unit tests for authentication and captcha endpoints.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from throwback.models.user import User
from throwback.models.security import AccountToken, LoginAttempt, UserSession
from throwback.models.activity import ActionType, LogAction
from throwback.models.enums import AccountStatus, TokenType, UserRole
from throwback.utils.security import verify_password, decode_access_token
from conftest import TEST_PASSWORD

NEW_USER = {
    "email": "NewUser@Example.com",
    "first_name": "Claire",
    "last_name": "Dubois",
    "password": "SecurePass123",
}


@pytest.mark.unit
@pytest.mark.auth
class TestUserRegistration:
    """Test user registration endpoint."""

    def test_register_new_user_success(self, client: TestClient, test_db: Session):
        """Test successful registration creates an unverified account."""
        response = client.post("/api/auth/register", json=NEW_USER)

        assert response.status_code == 201
        data = response.json()
        assert "verify" in data["message"].lower()
        assert data["user"]["email"] == "newuser@example.com"
        assert data["user"]["email_verified"] is False
        assert "hashed_password" not in data["user"]

        user = test_db.query(User).filter(User.email == "newuser@example.com").first()
        assert user is not None
        assert user.account_status == AccountStatus.ACTIVE.value
        assert user.role == UserRole.USER.value

        token = test_db.query(AccountToken).filter(
            AccountToken.user_id == user.id,
            AccountToken.token_type == TokenType.EMAIL_VERIFICATION.value
        ).first()
        assert token is not None

    def test_register_duplicate_email(self, client: TestClient, test_user: User):
        """Test registration with existing email fails."""
        response = client.post("/api/auth/register", json={**NEW_USER, "email": test_user.email})

        assert response.status_code == 400
        assert "already registered" in response.json()["detail"].lower()

    def test_register_weak_password(self, client: TestClient):
        """Test a password without digits or uppercase letters is rejected."""
        response = client.post("/api/auth/register", json={**NEW_USER, "password": "alllowercase"})

        assert response.status_code == 400

    def test_register_short_password(self, client: TestClient):
        """Test passwords under 8 characters fail validation."""
        response = client.post("/api/auth/register", json={**NEW_USER, "password": "Ab1"})

        assert response.status_code == 422

    def test_register_invalid_name(self, client: TestClient):
        """Test blank names are rejected."""
        response = client.post("/api/auth/register", json={**NEW_USER, "first_name": "   "})

        assert response.status_code == 400

    def test_register_invalid_email(self, client: TestClient):
        """Test registration with invalid email format."""
        response = client.post("/api/auth/register", json={**NEW_USER, "email": "not-an-email"})

        assert response.status_code == 422


@pytest.mark.unit
@pytest.mark.auth
class TestEmailVerification:
    """Test the verification link flow."""

    def test_verify_email_success(self, client: TestClient, test_db: Session):
        """Test the emailed link verifies the account and redirects to login."""
        client.post("/api/auth/register", json=NEW_USER)
        user = test_db.query(User).filter(User.email == "newuser@example.com").first()
        token = test_db.query(AccountToken).filter(AccountToken.user_id == user.id).first()

        response = client.get(f"/api/auth/verify/{user.id}/{token.token}", follow_redirects=False)

        assert response.status_code in (302, 307)
        assert "verified=true" in response.headers["location"]
        test_db.refresh(user)
        assert user.email_verified is True

    def test_verify_email_invalid_token(self, client: TestClient, test_user: User):
        """Test an unknown token redirects with an error."""
        response = client.get(f"/api/auth/verify/{test_user.id}/wrong-token", follow_redirects=False)

        assert response.status_code in (302, 307)
        assert "error=invalid_link" in response.headers["location"]

    def test_resend_verification_unknown_user(self, client: TestClient):
        """Test resending to an unknown address returns 404."""
        response = client.post("/api/auth/resend-verification", json={"email": "ghost@example.com"})

        assert response.status_code == 404

    def test_resend_verification_already_verified(self, client: TestClient, test_user: User):
        """Test resending to a verified account returns 400."""
        response = client.post("/api/auth/resend-verification", json={"email": test_user.email})

        assert response.status_code == 400

    def test_resend_verification_success(self, client: TestClient, make_user):
        """Test a pending account gets a fresh link."""
        make_user("pending@example.com", email_verified=False)

        response = client.post("/api/auth/resend-verification", json={"email": "pending@example.com"})

        assert response.status_code == 200


@pytest.mark.unit
@pytest.mark.auth
class TestUserLogin:
    """Test user login endpoint."""

    def test_login_success(self, client: TestClient, test_user: User, test_db: Session):
        """Test successful login returns a token bound to a session."""
        response = client.post(
            "/api/auth/login",
            json={"email": test_user.email, "password": TEST_PASSWORD}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["redirect_url"] == "/dashboard"
        assert data["user"]["email"] == test_user.email

        payload = decode_access_token(data["access_token"])
        assert payload["sub"] == str(test_user.id)
        assert test_db.query(UserSession).filter(UserSession.user_id == test_user.id).count() == 1

        log = test_db.query(LogAction).filter(LogAction.action_type == ActionType.LOGIN).first()
        assert log is not None

    def test_login_admin_redirects_to_dashboard(self, client: TestClient, admin_user: User):
        """Test admins are sent to the admin dashboard."""
        response = client.post(
            "/api/auth/login",
            json={"email": admin_user.email, "password": TEST_PASSWORD}
        )

        assert response.status_code == 200
        assert response.json()["redirect_url"] == "/admin-dashboard"

    def test_login_email_is_case_insensitive(self, client: TestClient, test_user: User):
        """Test login normalizes the email address."""
        response = client.post(
            "/api/auth/login",
            json={"email": "TEST@example.com", "password": TEST_PASSWORD}
        )

        assert response.status_code == 200

    def test_login_wrong_password(self, client: TestClient, test_user: User):
        """Test login with incorrect password reports the remaining attempts."""
        response = client.post(
            "/api/auth/login",
            json={"email": test_user.email, "password": "WrongPassword1"}
        )

        assert response.status_code == 401
        assert response.headers["X-Attempts-Left"] == "4"
        assert response.headers["X-Captcha-Required"] == "false"

    def test_login_nonexistent_user(self, client: TestClient):
        """Test login with non-existent email fails."""
        response = client.post(
            "/api/auth/login",
            json={"email": "nobody@example.com", "password": TEST_PASSWORD}
        )

        assert response.status_code == 401
        assert "invalid" in response.json()["detail"].lower()

    def test_login_unverified_email(self, client: TestClient, make_user):
        """Test unverified accounts cannot log in."""
        user = make_user("pending@example.com", email_verified=False)

        response = client.post(
            "/api/auth/login",
            json={"email": user.email, "password": TEST_PASSWORD}
        )

        assert response.status_code == 403
        assert "verify" in response.json()["detail"].lower()

    def test_login_suspended_account(self, client: TestClient, make_user):
        """Test suspended accounts cannot log in."""
        user = make_user("suspended@example.com", account_status=AccountStatus.SUSPENDED)

        response = client.post(
            "/api/auth/login",
            json={"email": user.email, "password": TEST_PASSWORD}
        )

        assert response.status_code == 403

    def test_login_success_resets_attempts(self, client: TestClient, test_user: User, test_db: Session):
        """Test a successful login clears previous failures."""
        client.post("/api/auth/login", json={"email": test_user.email, "password": "WrongPassword1"})
        client.post("/api/auth/login", json={"email": test_user.email, "password": TEST_PASSWORD})

        attempt = test_db.query(LoginAttempt).filter(LoginAttempt.user_id == test_user.id).first()
        test_db.refresh(attempt)
        assert attempt.attempts == 0


@pytest.mark.unit
@pytest.mark.auth
class TestLoginProtection:
    """Test captcha and lockout after repeated failures."""

    def _fail(self, client: TestClient, email: str, **captcha):
        return client.post(
            "/api/auth/login",
            json={"email": email, "password": "WrongPassword1", **captcha}
        )

    def test_captcha_required_after_three_failures(self, client: TestClient, test_user: User):
        """Test the third failure asks for a captcha on the next attempt."""
        for _ in range(2):
            self._fail(client, test_user.email)
        response = self._fail(client, test_user.email)

        assert response.status_code == 401
        assert response.headers["X-Captcha-Required"] == "true"

        response = client.post(
            "/api/auth/login",
            json={"email": test_user.email, "password": TEST_PASSWORD}
        )
        assert response.status_code == 400
        assert "captcha" in response.json()["detail"].lower()

    def test_login_with_captcha_after_failures(self, client: TestClient, test_user: User, solve_captcha):
        """Test a solved captcha lets the correct password through."""
        for _ in range(3):
            self._fail(client, test_user.email)

        response = client.post(
            "/api/auth/login",
            json={"email": test_user.email, "password": TEST_PASSWORD, **solve_captcha()}
        )

        assert response.status_code == 200

    def test_account_locked_after_five_failures(
        self, client: TestClient, test_user: User, test_db: Session, solve_captcha
    ):
        """Test the fifth failure locks the account."""
        for _ in range(3):
            self._fail(client, test_user.email)
        self._fail(client, test_user.email, **solve_captcha())
        response = self._fail(client, test_user.email, **solve_captcha())

        assert response.status_code == 403
        assert response.headers["X-Attempts-Left"] == "0"

        test_db.refresh(test_user)
        assert test_user.account_status == AccountStatus.LOCKED.value

        # Even the right password is refused while locked
        response = client.post(
            "/api/auth/login",
            json={"email": test_user.email, "password": TEST_PASSWORD, **solve_captcha()}
        )
        assert response.status_code == 403
        assert "locked" in response.json()["detail"].lower()


@pytest.mark.unit
@pytest.mark.auth
class TestCaptcha:
    """Test captcha endpoints."""

    def test_generate_captcha(self, client: TestClient):
        """Test a question is returned with its id."""
        response = client.get("/api/captcha/generate")

        assert response.status_code == 200
        data = response.json()
        assert data["question"].endswith("= ?")
        assert "captcha_id" in data
        assert "expires_at" in data

    def test_verify_correct_answer(self, client: TestClient, solve_captcha):
        """Test the right answer is accepted."""
        captcha = solve_captcha()

        response = client.post(
            "/api/captcha/verify",
            json={"captcha_id": captcha["captcha_id"], "answer": captcha["captcha_answer"]}
        )

        assert response.status_code == 200
        assert response.json()["valid"] is True

    def test_captcha_is_single_use(self, client: TestClient, solve_captcha):
        """Test a challenge cannot be answered twice."""
        captcha = solve_captcha()
        body = {"captcha_id": captcha["captcha_id"], "answer": captcha["captcha_answer"]}

        client.post("/api/captcha/verify", json=body)
        response = client.post("/api/captcha/verify", json=body)

        assert response.json()["valid"] is False

    def test_verify_unknown_captcha(self, client: TestClient):
        """Test garbage ids are rejected without error."""
        response = client.post("/api/captcha/verify", json={"captcha_id": "nope", "answer": "4"})

        assert response.status_code == 200
        assert response.json()["valid"] is False


@pytest.mark.unit
@pytest.mark.auth
class TestPasswordManagement:
    """Test password change and reset."""

    def test_change_password_success(self, client: TestClient, test_user: User, auth_headers: dict, test_db: Session):
        """Test changing password with the current one."""
        response = client.put(
            "/api/auth/change-password",
            headers=auth_headers,
            json={"current_password": TEST_PASSWORD, "new_password": "BrandNewPass9"}
        )

        assert response.status_code == 200
        test_db.refresh(test_user)
        assert verify_password("BrandNewPass9", test_user.hashed_password)

    def test_change_password_wrong_current(self, client: TestClient, auth_headers: dict):
        """Test the current password must match."""
        response = client.put(
            "/api/auth/change-password",
            headers=auth_headers,
            json={"current_password": "NotMyPass123", "new_password": "BrandNewPass9"}
        )

        assert response.status_code == 400

    def test_forgot_password_requires_captcha(self, client: TestClient, test_user: User):
        """Test a wrong captcha answer is rejected."""
        response = client.post(
            "/api/auth/forgot-password",
            json={"email": test_user.email, "captcha_id": "nope", "captcha_answer": "1"}
        )

        assert response.status_code == 400

    def test_forgot_password_unknown_email_same_answer(self, client: TestClient, solve_captcha):
        """Test account existence is not disclosed."""
        response = client.post(
            "/api/auth/forgot-password",
            json={"email": "ghost@example.com", **solve_captcha()}
        )

        assert response.status_code == 200

    def test_reset_password_flow(
        self, client: TestClient, test_user: User, auth_headers: dict,
        test_db: Session, solve_captcha, monkeypatch
    ):
        """Test the emailed token sets a new password and revokes sessions."""
        sent = {}

        def capture(user, token):
            sent["token"] = token
            return True

        monkeypatch.setattr("throwback.services.auth_service.send_password_reset_email", capture)

        response = client.post(
            "/api/auth/forgot-password",
            json={"email": test_user.email, **solve_captcha()}
        )
        assert response.status_code == 200
        assert "token" in sent

        response = client.get(f"/api/auth/verify-reset/{sent['token']}", follow_redirects=False)
        assert "reset-password" in response.headers["location"]

        response = client.put(
            "/api/auth/reset-password",
            json={"token": sent["token"], "password": "ResetPass123"}
        )
        assert response.status_code == 200

        test_db.refresh(test_user)
        assert verify_password("ResetPass123", test_user.hashed_password)
        assert client.get("/api/auth/me", headers=auth_headers).status_code == 401

    def test_reset_password_invalid_token(self, client: TestClient):
        """Test unknown reset tokens are rejected."""
        response = client.put(
            "/api/auth/reset-password",
            json={"token": "bogus", "password": "ResetPass123"}
        )

        assert response.status_code == 400


@pytest.mark.unit
@pytest.mark.auth
class TestSession:
    """Test current user and logout endpoints."""

    def test_get_current_user(self, client: TestClient, test_user: User, auth_headers: dict):
        """Test getting current user info."""
        response = client.get("/api/auth/me", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["email"] == test_user.email
        assert data["first_name"] == "Alice"

    def test_get_current_user_no_token(self, client: TestClient):
        """Test getting current user without token fails."""
        response = client.get("/api/auth/me")

        assert response.status_code in (401, 403)

    def test_get_current_user_invalid_token(self, client: TestClient):
        """Test getting current user with invalid token fails."""
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer invalid_token"})

        assert response.status_code == 401

    def test_logout_revokes_session(self, client: TestClient, auth_headers: dict):
        """Test the token stops working after logout."""
        response = client.post("/api/auth/logout", headers=auth_headers)

        assert response.status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers).status_code == 401

    def test_suspended_user_token_rejected(
        self, client: TestClient, test_user: User, auth_headers: dict, test_db: Session
    ):
        """Test existing tokens stop working once the account is suspended."""
        test_user.account_status = AccountStatus.SUSPENDED.value
        test_db.commit()

        response = client.get("/api/auth/me", headers=auth_headers)

        assert response.status_code == 401
