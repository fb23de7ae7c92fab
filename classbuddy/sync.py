"""
Remote attendance store.

The local ledger is always the source of truth. The remote API only mirrors
it (same REST shape as the ClassBuddy backend):

    GET    /attendance                   -> {date: {block: status}}
    POST   /attendance                   {date, blockId, status, userId}
    DELETE /attendance/<date>/<block>
    DELETE /attendance
    POST   /attendance/bulk              {attendanceByDate, userId}
    GET    /health

Sync is fire-and-forget: a failed request is logged and returned as a
non-fatal SyncResult, local changes are never rolled back.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import requests

from classbuddy.errors import SyncError
from classbuddy.ledger import AttendanceLedger
from classbuddy.log import get_logger

log = get_logger(__name__)


class AttendanceSyncClient:
    def __init__(
        self,
        base_url: str,
        user_id: int = 1,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.user_id = user_id
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{endpoint}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise SyncError(f"{method} {url} failed: {e}") from e

        if not resp.ok:
            try:
                detail = resp.json().get("error")
            except ValueError:
                detail = None
            raise SyncError(detail or f"{method} {url} -> HTTP {resp.status_code}")

        try:
            return resp.json()
        except ValueError as e:
            raise SyncError(f"{method} {url} returned invalid JSON") from e

    def health(self) -> dict[str, Any]:
        return self._request("GET", "/health")

    def fetch_all(self) -> dict[str, dict[str, str]]:
        data = self._request("GET", "/attendance", params={"userId": self.user_id})
        if not isinstance(data, dict):
            raise SyncError("Unexpected response for GET /attendance")
        return data

    def mark(self, date_key: str, block_id: str, status: str) -> None:
        self._request(
            "POST",
            "/attendance",
            json={"date": date_key, "blockId": block_id, "status": status, "userId": self.user_id},
        )

    def clear(self, date_key: str, block_id: str) -> None:
        self._request("DELETE", f"/attendance/{date_key}/{block_id}", params={"userId": self.user_id})

    def reset_all(self) -> None:
        self._request("DELETE", "/attendance", params={"userId": self.user_id})

    def bulk_import(self, attendance: dict[str, dict[str, str]]) -> int:
        data = self._request(
            "POST",
            "/attendance/bulk",
            json={"attendanceByDate": attendance, "userId": self.user_id},
        )
        return int(data.get("recordsImported", 0)) if isinstance(data, dict) else 0


@dataclass(frozen=True)
class SyncResult:
    ok: bool
    message: str = ""
    skipped: bool = False


_SKIPPED = SyncResult(ok=True, message="Backend is not enabled", skipped=True)


class SyncedLedger:
    """
    Applies every change to the local ledger first, then mirrors it remotely.

    Local validation errors (bad date, unknown block) still raise, since
    nothing was applied. Remote errors only produce a warning result.
    """

    def __init__(self, ledger: AttendanceLedger, client: Optional[AttendanceSyncClient] = None):
        self.ledger = ledger
        self.client = client

    def _mirror(self, action: str, *args: Any) -> SyncResult:
        if self.client is None:
            return _SKIPPED
        try:
            getattr(self.client, action)(*args)
        except SyncError as e:
            log.warning("sync_failed", action=action, error=str(e))
            return SyncResult(ok=False, message=f"Failed to sync with server ({e}). Data saved locally.")
        return SyncResult(ok=True, message="Synced")

    def mark(self, date_key: str, block_id: str, status: str) -> SyncResult:
        self.ledger.mark(date_key, block_id, status)
        return self._mirror("mark", date_key, block_id, status)

    def clear(self, date_key: str, block_id: str) -> SyncResult:
        self.ledger.clear(date_key, block_id)
        return self._mirror("clear", date_key, block_id)

    def reset_all(self) -> SyncResult:
        self.ledger.reset_all()
        return self._mirror("reset_all")

    def push_all(self) -> SyncResult:
        """Upload the whole local ledger (migration / manual resync)."""
        if self.client is None:
            return _SKIPPED
        try:
            n = self.client.bulk_import(self.ledger.as_dict())
        except SyncError as e:
            log.warning("sync_failed", action="push_all", error=str(e))
            return SyncResult(ok=False, message=str(e))
        return SyncResult(ok=True, message=f"Synced {n} records")

    def pull(self) -> SyncResult:
        """
        Replace local marks with the remote ones. On failure the local
        ledger is left untouched.
        """
        if self.client is None:
            return _SKIPPED
        try:
            remote = self.client.fetch_all()
        except SyncError as e:
            log.warning("sync_failed", action="pull", error=str(e))
            return SyncResult(ok=False, message=f"Failed to load attendance from server ({e}). Keeping local data.")

        self.ledger.reset_all()
        n = self.ledger.load_mapping(remote)
        return SyncResult(ok=True, message=f"Loaded {n} records from server")


def client_from_settings(settings) -> Optional[AttendanceSyncClient]:
    """Build a client when CLASSBUDDY_USE_BACKEND is on, else None."""
    if not settings.use_backend:
        return None
    return AttendanceSyncClient(settings.api_url, user_id=settings.user_id, timeout=settings.request_timeout)
