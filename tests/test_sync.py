"""
Unit tests for the remote attendance mirror.

No network: the client gets a fake session that records requests and
returns canned responses.
"""

import unittest

import requests

from classbuddy.errors import SyncError
from classbuddy.ledger import AttendanceLedger
from classbuddy.sync import AttendanceSyncClient, SyncedLedger


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None):
        self.status_code = status_code
        self._payload = payload

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON")
        return self._payload


class FakeSession:
    def __init__(self, responses=None, fail: bool = False):
        self.calls = []
        self.responses = list(responses or [])
        self.fail = fail

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.fail:
            raise requests.ConnectionError("connection refused")
        if self.responses:
            return self.responses.pop(0)
        return FakeResponse(200, {"success": True})


class TestClient(unittest.TestCase):
    def test_mark_posts_json_body(self) -> None:
        session = FakeSession()
        client = AttendanceSyncClient("http://api/", user_id=7, session=session)
        client.mark("2026-01-05", "block_m1", "present")

        method, url, kwargs = session.calls[0]
        self.assertEqual((method, url), ("POST", "http://api/attendance"))
        self.assertEqual(
            kwargs["json"],
            {"date": "2026-01-05", "blockId": "block_m1", "status": "present", "userId": 7},
        )

    def test_clear_uses_path_parameters(self) -> None:
        session = FakeSession()
        AttendanceSyncClient("http://api", session=session).clear("2026-01-05", "block_m1")
        method, url, _ = session.calls[0]
        self.assertEqual((method, url), ("DELETE", "http://api/attendance/2026-01-05/block_m1"))

    def test_http_error_uses_server_message(self) -> None:
        session = FakeSession([FakeResponse(400, {"error": "Invalid status"})])
        client = AttendanceSyncClient("http://api", session=session)
        with self.assertRaises(SyncError) as ctx:
            client.mark("2026-01-05", "block_m1", "present")
        self.assertIn("Invalid status", str(ctx.exception))

    def test_connection_error_becomes_sync_error(self) -> None:
        client = AttendanceSyncClient("http://api", session=FakeSession(fail=True))
        with self.assertRaises(SyncError):
            client.health()

    def test_bulk_import_count(self) -> None:
        session = FakeSession([FakeResponse(200, {"success": True, "recordsImported": 3})])
        client = AttendanceSyncClient("http://api", session=session)
        self.assertEqual(client.bulk_import({"2026-01-05": {"block_m1": "present"}}), 3)


class TestSyncedLedger(unittest.TestCase):
    def test_without_client_only_local(self) -> None:
        ledger = AttendanceLedger()
        result = SyncedLedger(ledger).mark("2026-01-05", "block_m1", "present")
        self.assertTrue(result.ok)
        self.assertTrue(result.skipped)
        self.assertEqual(ledger.status_of("2026-01-05", "block_m1"), "present")

    def test_remote_failure_keeps_local_change(self) -> None:
        ledger = AttendanceLedger()
        synced = SyncedLedger(ledger, AttendanceSyncClient("http://api", session=FakeSession(fail=True)))

        result = synced.mark("2026-01-05", "block_m1", "absent")
        self.assertFalse(result.ok)
        self.assertIn("Data saved locally", result.message)
        self.assertEqual(ledger.status_of("2026-01-05", "block_m1"), "absent")

        self.assertFalse(synced.reset_all().ok)
        self.assertEqual(len(ledger), 0)

    def test_pull_replaces_local_marks(self) -> None:
        remote = {"2026-01-07": {"block_w1": "present"}}
        ledger = AttendanceLedger()
        ledger.mark("2026-01-05", "block_m1", "absent")
        synced = SyncedLedger(ledger, AttendanceSyncClient("http://api", session=FakeSession([FakeResponse(200, remote)])))

        result = synced.pull()
        self.assertTrue(result.ok)
        self.assertEqual(ledger.as_dict(), remote)

    def test_failed_pull_keeps_local_marks(self) -> None:
        ledger = AttendanceLedger()
        ledger.mark("2026-01-05", "block_m1", "absent")
        synced = SyncedLedger(ledger, AttendanceSyncClient("http://api", session=FakeSession(fail=True)))

        self.assertFalse(synced.pull().ok)
        self.assertEqual(ledger.as_dict(), {"2026-01-05": {"block_m1": "absent"}})


if __name__ == "__main__":
    unittest.main()
