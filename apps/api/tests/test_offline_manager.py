import threading
import unittest
from typing import Callable

from app.core.errors import DojoError, ErrorKind
from app.offline import (
    CREATE_DRILL,
    SAVE_CODE,
    SYNC_CONTENT,
    OfflineManager,
    SqliteOfflineStore,
    StaticPlatform,
)


class _Clock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class _RecordingTransport:
    def __init__(self) -> None:
        self.posts: list[tuple[str, object]] = []
        self.fail_with: DojoError | None = None
        self.on_post: Callable[[], None] | None = None

    def post(self, endpoint: str, payload: object) -> dict:
        if self.on_post is not None:
            hook, self.on_post = self.on_post, None
            hook()
        if self.fail_with is not None:
            raise self.fail_with
        self.posts.append((endpoint, payload))
        return {}


class OfflineManagerTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = _Clock()
        self.platform = StaticPlatform(online=False)
        self.transport = _RecordingTransport()
        self.manager = OfflineManager(
            SqliteOfflineStore(":memory:"),
            self.transport,
            self.platform,
            clock=self.clock,
        )
        self.manager.start()

    def tearDown(self) -> None:
        self.manager.close()


class OutboxTests(OfflineManagerTestCase):
    def test_enqueue_offline_persists_action(self) -> None:
        action_id = self.manager.enqueue(CREATE_DRILL, {"title": "Loops"})

        self.assertTrue(action_id.startswith("create-drill-1700000000000-"))
        pending = self.manager.pending_actions()
        self.assertEqual([a.id for a in pending], [action_id])
        self.assertEqual(pending[0].retry_count, 0)
        self.assertEqual(self.transport.posts, [])

    def test_reconnect_replays_in_insertion_order(self) -> None:
        self.manager.enqueue(CREATE_DRILL, {"title": "Loops"})
        self.manager.enqueue(SAVE_CODE, {"code": "print(1)"})

        self.platform.set_online(True)

        self.assertEqual(
            self.transport.posts,
            [("/api/drills", {"title": "Loops"}), ("/api/code-snippets", {"code": "print(1)"})],
        )
        self.assertEqual(self.manager.pending_actions(), [])

    def test_enqueue_online_replays_immediately(self) -> None:
        self.platform.set_online(True)

        self.manager.enqueue(SAVE_CODE, {"code": "x"})

        self.assertEqual(self.transport.posts, [("/api/code-snippets", {"code": "x"})])
        self.assertFalse(self.manager.status().has_offline_actions)

    def test_failures_increment_retry_count(self) -> None:
        self.manager.enqueue(CREATE_DRILL, {"title": "Loops"})
        self.transport.fail_with = DojoError(ErrorKind.SERVICE, "remote_http_503:/api/drills")

        self.platform.set_online(True)

        self.assertEqual(self.manager.pending_actions()[0].retry_count, 1)
        report = self.manager.replay_all()
        self.assertEqual(report.retried, 1)
        self.assertEqual(self.manager.pending_actions()[0].retry_count, 2)

    def test_action_dropped_on_fourth_failure(self) -> None:
        self.manager.enqueue(CREATE_DRILL, {"title": "Loops"})
        self.transport.fail_with = DojoError(ErrorKind.NETWORK, "remote_unreachable")

        self.platform.set_online(True)
        self.assertEqual(self.manager.pending_actions()[0].retry_count, 1)
        for expected in (2, 3):
            self.manager.replay_all()
            self.assertEqual(self.manager.pending_actions()[0].retry_count, expected)

        with self.assertLogs("dojo.offline", level="WARNING") as logs:
            report = self.manager.replay_all()

        self.assertEqual(report.dropped, 1)
        self.assertEqual(self.manager.pending_actions(), [])
        self.assertIn("Dropping offline action", logs.output[0])

    def test_replay_while_offline_does_not_spend_retries(self) -> None:
        action_id = self.manager.enqueue(CREATE_DRILL, {"title": "Loops"})
        self.transport.fail_with = DojoError(ErrorKind.NETWORK, "remote_unreachable")

        for _ in range(5):
            self.assertTrue(self.manager.replay_all().skipped)

        pending = self.manager.pending_actions()
        self.assertEqual([a.id for a in pending], [action_id])
        self.assertEqual(pending[0].retry_count, 0)

    def test_unknown_action_type_is_removed(self) -> None:
        self.manager.enqueue("launch-rocket", {})
        self.platform.set_online(True)

        report = self.manager.replay_all()

        self.assertFalse(report.skipped)
        self.assertEqual(self.manager.pending_actions(), [])
        self.assertEqual(self.transport.posts, [])


class _BlockingTransport(_RecordingTransport):
    def __init__(self) -> None:
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def post(self, endpoint: str, payload: object) -> dict:
        self.entered.set()
        self.release.wait(timeout=5)
        return super().post(endpoint, payload)


class SingleFlightTests(unittest.TestCase):
    def test_replay_is_single_flight(self) -> None:
        platform = StaticPlatform(online=False)
        blocking = _BlockingTransport()
        manager = OfflineManager(SqliteOfflineStore(":memory:"), blocking, platform)
        manager.enqueue(CREATE_DRILL, {"title": "Loops"})
        platform.set_online(True)
        reports = []

        worker = threading.Thread(target=lambda: reports.append(manager.replay_all()))
        worker.start()
        self.assertTrue(blocking.entered.wait(timeout=5))

        self.assertTrue(manager.status().replay_in_progress)
        concurrent = manager.replay_all()
        blocking.release.set()
        worker.join(timeout=5)
        manager.close()

        self.assertTrue(concurrent.skipped)
        self.assertFalse(reports[0].skipped)
        self.assertEqual(len(blocking.posts), 1)

    def test_reconnect_during_a_pass_is_dropped(self) -> None:
        platform = StaticPlatform(online=False)
        blocking = _BlockingTransport()
        manager = OfflineManager(SqliteOfflineStore(":memory:"), blocking, platform)
        manager.start()
        manager.enqueue(CREATE_DRILL, {"title": "Loops"})

        worker = threading.Thread(target=platform.set_online, args=(True,))
        worker.start()
        self.assertTrue(blocking.entered.wait(timeout=5))

        platform.set_online(False)
        queued_mid_pass = manager.enqueue(SAVE_CODE, {"code": "x"})
        platform.set_online(True)
        self.assertTrue(manager.replay_all().skipped)

        blocking.release.set()
        worker.join(timeout=5)

        self.assertEqual(blocking.posts, [("/api/drills", {"title": "Loops"})])
        self.assertEqual([a.id for a in manager.pending_actions()], [queued_mid_pass])
        self.assertEqual(manager.pending_actions()[0].retry_count, 0)
        manager.close()


class UserContentTests(OfflineManagerTestCase):
    def test_offline_save_queues_one_sync_action_per_record(self) -> None:
        self.manager.save_user_content("n1", "note", {"title": "draft"})
        self.clock.now += 5
        self.manager.save_user_content("n1", "note", {"title": "final"})

        pending = self.manager.pending_actions()
        self.assertEqual(len(pending), 1)
        self.assertEqual(pending[0].type, SYNC_CONTENT)
        self.assertEqual(pending[0].payload["content"], {"title": "final"})
        self.assertFalse(self.manager.get_user_content("n1").synced)

    def test_sync_marks_record_synced_after_remote_write(self) -> None:
        self.manager.save_user_content("d1", "drill", {"title": "Loops"})

        self.platform.set_online(True)

        self.assertEqual(self.transport.posts, [("/api/drills", {"title": "Loops"})])
        record = self.manager.get_user_content("d1")
        self.assertTrue(record.synced)
        self.assertFalse(self.manager.status().has_unsynced_content)

    def test_failed_sync_leaves_record_unsynced(self) -> None:
        self.manager.save_user_content("c1", "code", {"code": "x"})
        self.transport.fail_with = DojoError(ErrorKind.SERVICE, "down")

        self.platform.set_online(True)

        self.assertFalse(self.manager.get_user_content("c1").synced)
        self.assertEqual(self.manager.pending_actions()[0].retry_count, 1)

    def test_save_during_failed_replay_keeps_newer_payload(self) -> None:
        self.manager.save_user_content("n1", "note", {"title": "draft"})
        self.clock.now += 5
        self.transport.fail_with = DojoError(ErrorKind.SERVICE, "down")
        self.transport.on_post = lambda: self.manager.save_user_content("n1", "note", {"title": "newer"})

        self.platform.set_online(True)

        pending = self.manager.pending_actions()
        self.assertEqual(len(pending), 1)
        self.assertEqual(pending[0].payload["content"], {"title": "newer"})
        self.assertEqual(pending[0].retry_count, 1)
        self.assertEqual(self.manager.get_user_content("n1").payload, {"title": "newer"})

    def test_online_save_is_pushed_directly(self) -> None:
        self.platform.set_online(True)

        self.manager.save_user_content("c2", "code", {"code": "y"})

        self.assertEqual(self.transport.posts, [("/api/code-snippets", {"code": "y"})])
        self.assertEqual(self.manager.pending_actions(), [])
        self.assertTrue(self.manager.get_user_content("c2").synced)

    def test_list_by_kind(self) -> None:
        self.manager.save_user_content("d1", "drill", {})
        self.manager.save_user_content("n1", "note", {})

        self.assertEqual([r.id for r in self.manager.list_user_content("note")], ["n1"])
        self.assertEqual(len(self.manager.list_user_content()), 2)

    def test_rejects_unknown_kind(self) -> None:
        with self.assertRaises(ValueError):
            self.manager.save_user_content("x", "video", {})


class ResponseCacheTests(OfflineManagerTestCase):
    def test_expired_entry_is_a_miss(self) -> None:
        self.manager.cache_response("drills:u1", [{"id": "d1"}], ttl=60)

        self.clock.now += 60
        self.assertEqual(self.manager.get_cached_response("drills:u1"), [{"id": "d1"}])

        self.clock.now += 1
        self.assertIsNone(self.manager.get_cached_response("drills:u1"))
        self.assertEqual(self.manager.export()["cache"], [])

    def test_entry_without_ttl_never_expires(self) -> None:
        self.manager.cache_response("profile", {"name": "Ada"})
        self.clock.now += 10**8

        self.assertEqual(self.manager.get_cached_response("profile"), {"name": "Ada"})

    def test_none_payload_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            self.manager.cache_response("empty", None)

        self.assertEqual(self.manager.export()["cache"], [])

    def test_clear_and_export(self) -> None:
        self.manager.enqueue(CREATE_DRILL, {"title": "Loops"})
        self.manager.save_user_content("n1", "note", {})
        self.manager.cache_response("k", 1)

        exported = self.manager.export()
        self.assertEqual(len(exported["actions"]), 2)
        self.assertEqual(exported["userContent"][0]["id"], "n1")
        self.assertIn("exportDate", exported)

        self.manager.clear()
        status = self.manager.status()
        self.assertEqual((status.pending_actions, status.unsynced_content), (0, 0))
        self.assertIsNone(self.manager.get_cached_response("k"))


if __name__ == "__main__":
    unittest.main()
