"""File-based per-user notification store.

Each user's notifications live in ``{user_id}.json`` under
``~/.whistlespace/notifications/``.  Kept apart from the user record so that
appending a notification never bumps the user's version.
"""

from __future__ import annotations

import json
import math
import re
import threading
import uuid
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

from whistlespace.auth.models import utcnow


def _safe_filename(name: str) -> str:
    """Sanitise a name for use as part of a filename."""
    return re.sub(r"[^\w\-.]", "_", name)


@dataclass
class Notification:
    """A single in-app notification."""

    id: str
    user_id: str
    title: str
    message: str
    type: str
    severity: str
    template_key: str = ""
    read: bool = False
    timestamp: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.id:
            self.id = uuid.uuid4().hex[:16]
        if not self.timestamp:
            self.timestamp = utcnow().isoformat()


@dataclass
class NotificationPage:
    notifications: list[Notification]
    total_count: int
    unread_count: int
    current_page: int
    total_pages: int


class NotificationStore:
    """JSON-backed notification lists, one file per user."""

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        self._base = Path(base_dir) if base_dir else Path.home() / ".whistlespace" / "notifications"
        self._base.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    # -- helpers -------------------------------------------------------------

    def _file_for(self, user_id: str) -> Path:
        return self._base / f"{_safe_filename(user_id)}.json"

    def _read(self, user_id: str) -> list[Notification]:
        path = self._file_for(user_id)
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return []
        items: list[Notification] = []
        for d in data if isinstance(data, list) else []:
            try:
                items.append(Notification(**d))
            except TypeError:
                continue
        return items

    def _write(self, user_id: str, items: list[Notification]) -> None:
        path = self._file_for(user_id)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(
            json.dumps([asdict(n) for n in items], indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        tmp.replace(path)

    # -- public API ----------------------------------------------------------

    def append(self, notification: Notification) -> Notification:
        with self._lock:
            items = self._read(notification.user_id)
            items.append(notification)
            self._write(notification.user_id, items)
        return notification

    def list_for_user(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 10,
        unread_only: bool = False,
    ) -> NotificationPage:
        """Return one page of a user's notifications, newest first."""
        page = max(page, 1)
        limit = max(limit, 1)
        all_items = self._read(user_id)
        items = [n for n in all_items if not n.read] if unread_only else list(all_items)
        items.sort(key=lambda n: n.timestamp, reverse=True)

        start = (page - 1) * limit
        return NotificationPage(
            notifications=items[start:start + limit],
            total_count=len(items),
            unread_count=sum(1 for n in all_items if not n.read),
            current_page=page,
            total_pages=math.ceil(len(items) / limit),
        )

    def mark_read(self, user_id: str, notification_ids: Optional[list[str]] = None) -> int:
        """Mark the given notifications read; an empty list marks all of them.

        Returns the number of notifications that changed.
        """
        wanted = set(notification_ids or [])
        changed = 0
        with self._lock:
            items = self._read(user_id)
            for n in items:
                if n.read:
                    continue
                if not wanted or n.id in wanted:
                    n.read = True
                    changed += 1
            if changed:
                self._write(user_id, items)
        return changed
