"""
HTTP tests for signup, login and logout.
"""

from datetime import timedelta

from app.models.banned_email import BannedEmail
from app.services import account_status
from app.services.account_status import Suspended, TimedOut

from conftest import PASSWORD


def _signup(client, email="newcomer@society.org"):
    return client.post(
        "/auth/signup",
        json={
            "email": email,
            "full_name": "New Comer",
            "password": "Newcomer@123",
            "confirm_password": "Newcomer@123",
        },
    )


class TestSignup:
    def test_signup_creates_member(self, client):
        response = _signup(client)
        assert response.status_code == 201
        body = response.json()
        assert body["user"]["role"] == "member"
        assert body["access_token"]

    def test_duplicate_email(self, client, member):
        response = _signup(client, email=member.email)
        assert response.status_code == 409

    def test_banned_email_is_refused(self, client, db):
        db.add(BannedEmail(email="gone@society.org", reason="Permanently Banned by Admin"))
        db.commit()

        response = _signup(client, email="Gone@Society.org")

        assert response.status_code == 403
        assert response.json()["message"] == (
            "This email is permanently prohibited from creating an account."
        )


class TestLogin:
    def test_login_success(self, client, member):
        response = client.post(
            "/auth/login", json={"email": member.email, "password": PASSWORD}
        )
        assert response.status_code == 200
        assert response.json()["user"]["id"] == member.id

    def test_wrong_password(self, client, member):
        response = client.post(
            "/auth/login", json={"email": member.email, "password": "wrong-password"}
        )
        assert response.status_code == 401

    def test_suspended_account_gets_no_tokens(self, client, make_user):
        user = make_user(status=Suspended())
        response = client.post(
            "/auth/login", json={"email": user.email, "password": PASSWORD}
        )
        assert response.status_code == 403
        body = response.json()
        assert body["message"] == "Account suspended. Contact administration."
        assert "access_token" not in body

    def test_timed_out_account_is_told_until_when(self, client, make_user):
        until = account_status.utcnow() + timedelta(hours=2)
        user = make_user(status=TimedOut(until))
        response = client.post(
            "/auth/login", json={"email": user.email, "password": PASSWORD}
        )
        assert response.status_code == 403
        assert response.json()["message"].startswith("Account timed out until")

    def test_expired_timeout_logs_in(self, client, make_user):
        until = account_status.utcnow() - timedelta(minutes=1)
        user = make_user(status=TimedOut(until))
        response = client.post(
            "/auth/login", json={"email": user.email, "password": PASSWORD}
        )
        assert response.status_code == 200

    def test_banned_email_login(self, client, db):
        db.add(BannedEmail(email="gone@society.org"))
        db.commit()
        response = client.post(
            "/auth/login", json={"email": "gone@society.org", "password": PASSWORD}
        )
        assert response.status_code == 403
        assert "permanently banned" in response.json()["message"]


class TestSession:
    def test_me(self, client, member, auth_headers):
        response = client.get("/auth/me", headers=auth_headers(member))
        assert response.status_code == 200
        assert response.json()["email"] == member.email

    def test_logout_revokes_token(self, client, member, auth_headers):
        headers = auth_headers(member)
        assert client.post("/auth/logout", headers=headers).status_code == 200
        assert client.get("/auth/me", headers=headers).status_code == 401

    def test_missing_token(self, client):
        assert client.get("/auth/me").status_code == 401
