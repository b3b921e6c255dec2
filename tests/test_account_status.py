"""
Tests for the effective account status and the account transitions.
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.core.security import token_blacklist
from app.models.banned_email import BannedEmail
from app.models.post import Post
from app.models.report import Report
from app.models.user import User
from app.services import account_status
from app.services.account import AccountService
from app.services.account_status import Normal, Suspended, TimedOut
from app.services.events import StoredFileReleased

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestFromRecord:
    def test_plain_normal(self):
        assert account_status.from_record("normal", None, NOW) == Normal()

    def test_suspended_without_until(self):
        assert account_status.from_record("suspended", None, NOW) == Suspended()

    def test_future_until_is_timed_out(self):
        until = NOW + timedelta(minutes=5)
        assert account_status.from_record("suspended", until, NOW) == TimedOut(until)

    def test_expired_timeout_is_normal_even_with_marker(self):
        until = NOW - timedelta(seconds=1)
        assert account_status.from_record("suspended", until, NOW) == Normal()

    def test_naive_until_is_read_as_utc(self):
        naive = datetime(2026, 3, 1, 12, 30)
        status = account_status.from_record("suspended", naive, NOW)
        assert status == TimedOut(naive.replace(tzinfo=timezone.utc))

    def test_timed_out_is_stored_with_suspended_marker(self):
        until = NOW + timedelta(hours=1)
        assert account_status.to_record(TimedOut(until)) == ("suspended", until)

    def test_describe(self):
        assert (
            account_status.describe(Suspended())
            == "Account suspended. Contact administration."
        )
        assert account_status.describe(TimedOut(NOW)).startswith(
            "Account timed out until 2026-03-01 12:00"
        )


class TestTransitions:
    def test_timeout_expires_without_restore(self, db, president, member):
        result = AccountService(db).timeout(president, member.id, 60, now=NOW)
        assert result.success
        assert result.message == "User masked for 60 minutes."

        db.refresh(member)
        assert account_status.as_utc(member.timeout_until) == NOW + timedelta(minutes=60)
        assert account_status.is_blocked(member, NOW + timedelta(minutes=30))
        assert not account_status.is_blocked(member, NOW + timedelta(minutes=61))

    @pytest.mark.parametrize("minutes", [0, -5])
    def test_timeout_needs_positive_minutes(self, db, president, member, minutes):
        result = AccountService(db).timeout(president, member.id, minutes)
        assert not result.success
        assert result.error == "invalid_request"
        db.refresh(member)
        assert not account_status.is_blocked(member)

    def test_suspend_then_restore(self, db, president, member):
        service = AccountService(db)

        assert service.suspend(president, member.id).success
        db.refresh(member)
        assert account_status.effective_status(member) == Suspended()

        assert service.restore(president, member.id).success
        db.refresh(member)
        assert member.account_status == "normal"
        assert member.timeout_until is None

    def test_suspend_clears_previous_timeout(self, db, president, make_user):
        user = make_user(status=TimedOut(account_status.utcnow() + timedelta(hours=2)))
        AccountService(db).suspend(president, user.id)
        db.refresh(user)
        assert user.timeout_until is None
        assert account_status.effective_status(user) == Suspended()

    def test_media_manager_cannot_suspend(self, db, media_manager, member):
        result = AccountService(db).suspend(media_manager, member.id)
        assert not result.success
        assert result.error == "unauthorized"
        assert result.status_code == 403

    def test_missing_target(self, db, president):
        result = AccountService(db).restore(president, 9999)
        assert result.error == "not_found"
        assert result.status_code == 404

    @pytest.mark.parametrize("actor_role", ["member", "media_manager"])
    def test_role_change_requires_president(self, db, make_user, member, actor_role):
        actor = make_user(role=actor_role)
        result = AccountService(db).update_role(actor, member.id, "president")
        assert result.error == "unauthorized"
        db.refresh(member)
        assert member.role == "member"

    def test_president_changes_role(self, db, president, member):
        result = AccountService(db).update_role(president, member.id, "media_manager")
        assert result.success
        assert result.data["user"]["role"] == "media_manager"


class TestProtectedPresident:
    @pytest.mark.parametrize(
        "operation, args",
        [
            ("suspend", ()),
            ("timeout", (30,)),
            ("restore", ()),
            ("update_role", ("member",)),
            ("permanently_delete", ()),
        ],
    )
    def test_every_mutation_is_refused(
        self, db, president, protected_president, operation, args
    ):
        before = (
            protected_president.role,
            protected_president.account_status,
            protected_president.timeout_until,
        )
        result = getattr(AccountService(db), operation)(
            president, protected_president.id, *args
        )

        assert not result.success
        assert result.error == "protected_target"
        db.expire_all()
        target = db.query(User).filter(User.id == protected_president.id).one()
        assert (target.role, target.account_status, target.timeout_until) == before

    def test_delete_refusal_creates_no_ban(self, db, president, protected_president):
        result = AccountService(db).permanently_delete(president, protected_president.id)
        assert result.message == "Action Denied: The Original President CANNOT be deleted."
        assert db.query(BannedEmail).count() == 0


class TestPermanentDelete:
    def test_delete_bans_email_and_releases_files(
        self, db, president, make_user, make_post
    ):
        target = make_user(email="leaving@society.org", avatar_url="avatars/a.png")
        reporter = make_user()
        post = make_post(target, image_url="voices/cover.jpg")
        make_post(target)
        db.add(Report(post_id=post.id, reporter_id=reporter.id, reason="spam"))
        db.commit()
        target_id = target.id

        result = AccountService(db).permanently_delete(president, target_id)

        assert result.success
        assert result.message == "User permanently deleted and email banned."
        assert set(result.events) == {
            StoredFileReleased("voices/cover.jpg"),
            StoredFileReleased("avatars/a.png"),
        }
        db.expire_all()
        assert db.query(User).filter(User.id == target_id).first() is None
        assert db.query(Post).filter(Post.author_id == target_id).count() == 0
        assert db.query(Report).count() == 0
        ban = db.query(BannedEmail).one()
        assert ban.email == "leaving@society.org"
        assert ban.banned_by == president.id

    def test_delete_revokes_sessions(self, db, president, member):
        member_id = member.id
        AccountService(db).permanently_delete(president, member_id)
        assert token_blacklist.is_user_logged_out(member_id, 0)

    def test_member_cannot_delete(self, db, member, make_user):
        other = make_user()
        result = AccountService(db).permanently_delete(member, other.id)
        assert result.error == "unauthorized"
        assert db.query(User).filter(User.id == other.id).first() is not None
