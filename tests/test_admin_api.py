"""
HTTP tests for the president's dashboard and the reporting flow.
"""

from app.models.banned_email import BannedEmail
from app.models.notification import Notification
from app.models.post import Post
from app.models.user import User

from conftest import LONG_CONTENT


class TestUserManagement:
    def test_list_users_requires_president(
        self, client, media_manager, president, auth_headers
    ):
        assert (
            client.get("/admin/users", headers=auth_headers(media_manager)).status_code
            == 403
        )
        response = client.get("/admin/users", headers=auth_headers(president))
        assert response.status_code == 200
        assert response.json()["total"] == 2

    def test_listing_shows_standing_and_protection(
        self, client, president, protected_president, auth_headers
    ):
        response = client.get("/admin/users", headers=auth_headers(president))
        users = {u["email"]: u for u in response.json()["users"]}
        assert users[protected_president.email]["is_protected"] is True
        assert users[president.email]["status"] == "normal"

    def test_media_manager_cannot_promote_self(
        self, client, db, media_manager, auth_headers
    ):
        response = client.patch(
            f"/admin/users/{media_manager.id}/role",
            json={"role": "president"},
            headers=auth_headers(media_manager),
        )
        assert response.status_code == 403
        assert response.json()["error"] == "unauthorized"
        db.refresh(media_manager)
        assert media_manager.role == "media_manager"

    def test_timeout_rejects_zero_minutes(self, client, president, member, auth_headers):
        response = client.post(
            f"/admin/users/{member.id}/timeout",
            json={"minutes": 0},
            headers=auth_headers(president),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"

    def test_timeout_member(self, client, president, member, auth_headers):
        response = client.post(
            f"/admin/users/{member.id}/timeout",
            json={"minutes": 15},
            headers=auth_headers(president),
        )
        assert response.status_code == 200
        assert response.json()["message"] == "User masked for 15 minutes."
        assert response.json()["data"]["user"]["status"] == "timed_out"


class TestProtectedPresident:
    def test_delete_is_denied(
        self, client, db, president, protected_president, auth_headers
    ):
        response = client.delete(
            f"/admin/users/{protected_president.id}", headers=auth_headers(president)
        )

        assert response.status_code == 403
        assert response.json() == {
            "success": False,
            "message": "Action Denied: The Original President CANNOT be deleted.",
            "error": "protected_target",
            "data": None,
        }
        db.expire_all()
        assert db.query(User).filter(User.id == protected_president.id).first()
        assert db.query(BannedEmail).count() == 0

    def test_suspend_is_denied(self, client, president, protected_president, auth_headers):
        response = client.post(
            f"/admin/users/{protected_president.id}/suspend",
            headers=auth_headers(president),
        )
        assert response.status_code == 403
        assert response.json()["error"] == "protected_target"


class TestPermanentDelete:
    def test_deleted_user_is_signed_out_and_banned(
        self, client, db, president, make_user, auth_headers
    ):
        target = make_user(email="leaving@society.org")
        target_headers = auth_headers(target)

        response = client.delete(
            f"/admin/users/{target.id}", headers=auth_headers(president)
        )
        assert response.status_code == 200

        assert client.get("/auth/me", headers=target_headers).status_code == 401
        signup = client.post(
            "/auth/signup",
            json={
                "email": "leaving@society.org",
                "full_name": "Back Again",
                "password": "Comeback@123",
                "confirm_password": "Comeback@123",
            },
        )
        assert signup.status_code == 403


class TestReportingFlow:
    def _voice(self, client, headers):
        response = client.post(
            "/voices",
            json={
                "title": "Why the library should open later",
                "excerpt": "Late study hours would help everyone.",
                "category": "Opinion",
                "content": LONG_CONTENT,
            },
            headers=headers,
        )
        assert response.status_code == 201
        return response.json()["id"]

    def test_three_reports_hide_voice_and_notify_presidents(
        self, client, db, member, make_user, president, auth_headers
    ):
        post_id = self._voice(client, auth_headers(member))

        for _ in range(3):
            response = client.post(
                f"/voices/{post_id}/report",
                json={"reason": "misinformation", "notes": "not true"},
                headers=auth_headers(make_user()),
            )
            assert response.status_code == 201

        feed = client.get("/voices").json()
        assert post_id not in [v["id"] for v in feed["voices"]]
        assert client.get(f"/voices/{post_id}").status_code == 404

        flagged = client.get("/admin/posts/flagged", headers=auth_headers(president))
        assert flagged.json()["voices"][0]["report_count"] == 3

        reports = client.get(
            f"/admin/posts/{post_id}/reports", headers=auth_headers(president)
        ).json()
        assert reports["reports"][0]["reason"] == "misinformation: not true"

        # The notification is written by a background task after the response
        notes = db.query(Notification).filter(
            Notification.recipient_id == president.id
        ).all()
        assert len(notes) == 1
        assert notes[0].link == f"/admin/posts/{post_id}/reports"

    def test_duplicate_report_is_409(self, client, member, make_user, auth_headers):
        post_id = self._voice(client, auth_headers(member))
        headers = auth_headers(make_user())

        first = client.post(
            f"/voices/{post_id}/report", json={"reason": "spam"}, headers=headers
        )
        second = client.post(
            f"/voices/{post_id}/report", json={"reason": "spam"}, headers=headers
        )
        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json()["error"] == "already_reported"

    def test_restore_through_api(
        self, client, db, member, make_user, president, auth_headers
    ):
        post_id = self._voice(client, auth_headers(member))
        for _ in range(3):
            client.post(
                f"/voices/{post_id}/report",
                json={"reason": "spam"},
                headers=auth_headers(make_user()),
            )

        response = client.post(
            f"/admin/posts/{post_id}/restore", headers=auth_headers(president)
        )
        assert response.status_code == 200

        db.expire_all()
        post = db.query(Post).filter(Post.id == post_id).one()
        assert post.moderation_state == "normal"
        assert post.is_hidden is True

    def test_invalid_voice_is_rejected(self, client, member, auth_headers):
        response = client.post(
            "/voices",
            json={
                "title": "Hey",
                "excerpt": "Too short",
                "category": "Gossip",
                "content": "short",
            },
            headers=auth_headers(member),
        )
        assert response.status_code == 422

    def test_media_manager_toggles_visibility(
        self, client, member, media_manager, auth_headers
    ):
        post_id = self._voice(client, auth_headers(member))
        response = client.patch(
            f"/admin/posts/{post_id}/visibility",
            json={"is_hidden": True},
            headers=auth_headers(media_manager),
        )
        assert response.status_code == 200

        listing = client.get(
            "/admin/posts?hidden=true", headers=auth_headers(media_manager)
        ).json()
        assert [v["id"] for v in listing["voices"]] == [post_id]
