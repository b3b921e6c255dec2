"""
Tests for voice submission, removal, visibility and the public feed.
"""

from datetime import timedelta

import pytest

from app.core.errors import AccountBlocked, NotFound
from app.models.post import Post
from app.schemas.post import VoiceCreate
from app.services import account_status
from app.services.account_status import Suspended, TimedOut
from app.services.events import StoredFileReleased
from app.services.moderation import ModerationService


def _feed_ids(db):
    posts, _ = ModerationService(db).list_public_feed()
    return {post.id for post in posts}


class TestPublicFeed:
    def test_feed_excludes_hidden_and_under_review(self, db, member, make_post):
        visible = make_post(member)
        hidden = make_post(member, is_hidden=True)
        reviewed = make_post(member, moderation_state="under_review")

        ids = _feed_ids(db)
        assert visible.id in ids
        assert hidden.id not in ids
        assert reviewed.id not in ids

    def test_feed_excludes_blocked_authors(self, db, make_user, make_post):
        later = account_status.utcnow() + timedelta(hours=1)
        suspended = make_post(make_user(status=Suspended()))
        timed_out = make_post(make_user(status=TimedOut(later)))
        fine = make_post(make_user())

        ids = _feed_ids(db)
        assert ids == {fine.id}
        assert suspended.id not in ids
        assert timed_out.id not in ids

    def test_expired_timeout_author_is_back_in_feed(self, db, make_user, make_post):
        earlier = account_status.utcnow() - timedelta(minutes=1)
        post = make_post(make_user(status=TimedOut(earlier)))
        assert post.id in _feed_ids(db)

    def test_feed_filters_by_category(self, db, member, make_post):
        poem = make_post(member, category="Poetry")
        make_post(member, category="Opinion")

        posts, pagination = ModerationService(db).list_public_feed(category="Poetry")
        assert [p.id for p in posts] == [poem.id]
        assert pagination["total"] == 1

    def test_hidden_post_visible_to_author_only(self, db, member, make_user, make_post):
        post = make_post(member, is_hidden=True)
        service = ModerationService(db)

        assert service.get_public_post(post.id, viewer=member).id == post.id
        with pytest.raises(NotFound):
            service.get_public_post(post.id, viewer=make_user())


class TestSubmission:
    def test_blocked_member_cannot_submit(self, db, make_user):
        author = make_user(status=Suspended())
        data = VoiceCreate(
            title="A fair title",
            excerpt="An excerpt long enough.",
            category="Opinion",
            content="x" * 60,
        )
        with pytest.raises(AccountBlocked):
            ModerationService(db).create_post(author, data)
        assert db.query(Post).count() == 0


class TestRemoval:
    def test_author_removes_own_post(self, db, member, make_post):
        post = make_post(member, image_url="voices/own.png")
        post_id = post.id

        result = ModerationService(db).remove_post(member, post_id)

        assert result.success
        assert result.events == [StoredFileReleased("voices/own.png")]
        assert db.query(Post).filter(Post.id == post_id).first() is None

    def test_other_member_cannot_remove(self, db, member, make_user, make_post):
        post = make_post(make_user())
        result = ModerationService(db).remove_post(member, post.id)
        assert result.error == "unauthorized"
        assert db.query(Post).count() == 1

    def test_media_manager_cannot_remove(self, db, media_manager, member, make_post):
        post = make_post(member)
        result = ModerationService(db).remove_post(media_manager, post.id)
        assert result.error == "unauthorized"

    def test_president_removes_any_post(self, db, president, member, make_post):
        post = make_post(member)
        result = ModerationService(db).remove_post(president, post.id)
        assert result.success
        assert result.events == []


class TestVisibility:
    def test_member_cannot_hide(self, db, member, make_post):
        post = make_post(member)
        result = ModerationService(db).set_hidden(member, post.id, True)
        assert result.error == "unauthorized"

    def test_media_manager_hides_and_unhides(self, db, media_manager, member, make_post):
        post = make_post(member)
        service = ModerationService(db)

        assert service.set_hidden(media_manager, post.id, True).success
        assert post.id not in _feed_ids(db)

        assert service.set_hidden(media_manager, post.id, False).success
        assert post.id in _feed_ids(db)

    def test_moderator_listing_includes_hidden(self, db, media_manager, member, make_post):
        make_post(member)
        make_post(member, is_hidden=True)

        rows, pagination = ModerationService(db).list_all(media_manager, hidden=True)
        assert pagination["total"] == 1
        post, report_count = rows[0]
        assert post.is_hidden is True
        assert report_count == 0
