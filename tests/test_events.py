"""
Tests for post-commit event delivery, storage cleanup and notifications.
"""

import threading
from pathlib import Path

from app.core.config import settings
from app.models.notification import Notification
from app.services.events import EventDispatcher, PostFlagged, StoredFileReleased
from app.services.notification import NotificationService, notify_presidents_of_flag
from app.services.policy import Role
from app.utils.file_upload import FileStorageService, release_stored_file


class TestDispatcher:
    def test_failing_handler_does_not_stop_others(self):
        dispatcher = EventDispatcher()
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        async def recorder(event):
            seen.append(event)

        dispatcher.subscribe(StoredFileReleased, broken)
        dispatcher.subscribe(StoredFileReleased, recorder)

        event = StoredFileReleased("voices/a.png")
        failures = dispatcher.dispatch_sync([event, event])

        assert failures == 2
        assert seen == [event, event]

    def test_events_without_handlers_are_ignored(self):
        dispatcher = EventDispatcher()

        @dispatcher.on(PostFlagged)
        def handler(event):
            raise AssertionError("should not run")

        assert dispatcher.dispatch_sync([StoredFileReleased("x.png")]) == 0

    def test_sync_handlers_run_off_the_event_loop(self):
        dispatcher = EventDispatcher()
        threads = {}

        def sync_handler(event):
            threads["sync"] = threading.get_ident()

        async def async_handler(event):
            threads["loop"] = threading.get_ident()

        dispatcher.subscribe(StoredFileReleased, sync_handler)
        dispatcher.subscribe(StoredFileReleased, async_handler)

        assert dispatcher.dispatch_sync([StoredFileReleased("y.png")]) == 0
        assert threads["sync"] != threads["loop"]


class TestStorageCleanup:
    def test_release_removes_file(self):
        folder = Path(settings.upload_dir) / "voices"
        folder.mkdir(parents=True, exist_ok=True)
        stored = folder / "release-me.png"
        stored.write_bytes(b"png")

        release_stored_file(StoredFileReleased("voices/release-me.png"))

        assert not stored.exists()

    def test_missing_file_is_not_an_error(self, tmp_path):
        assert FileStorageService(str(tmp_path)).delete("voices/nothing.png") is False

    def test_paths_outside_storage_are_refused(self, tmp_path):
        outside = tmp_path / "secret.txt"
        outside.write_text("keep")
        storage = FileStorageService(str(tmp_path / "storage"))

        assert storage.delete("../secret.txt") is False
        assert outside.exists()


class TestNotifications:
    def test_flag_notifies_every_president(self, db, president, make_user, member):
        second = make_user(role="president")

        notify_presidents_of_flag(PostFlagged(7, "A voice", 3))

        recipients = {n.recipient_id for n in db.query(Notification).all()}
        assert recipients == {president.id, second.id}

    def test_mark_read_only_own(self, db, president, member):
        service = NotificationService(db)
        service.notify_role(Role.PRESIDENT, "Title", "Message")
        note = db.query(Notification).one()

        assert service.mark_read(note.id, member.id) is None
        assert service.mark_read(note.id, president.id).is_read is True
        assert service.list_for_user(president.id, unread_only=True) == []
