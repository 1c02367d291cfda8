"""File-based feedback store.

Feedback entries are kept in a single ``feedback.json`` list under
``~/.whistlespace/feedback/``.
"""

from __future__ import annotations

import json
import math
import threading
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from whistlespace.errors import NotFoundError
from whistlespace.feedback.models import (
    AdminAction,
    Feedback,
    FeedbackPage,
    FeedbackQuery,
    FeedbackStatus,
)


class FeedbackStore:
    """JSON-backed store for feedback submissions."""

    def __init__(self, base_dir: str | Path | None = None) -> None:
        self._base = Path(base_dir) if base_dir else Path.home() / ".whistlespace" / "feedback"
        self._base.mkdir(parents=True, exist_ok=True)
        self._path = self._base / "feedback.json"
        self._lock = threading.Lock()

    # -- helpers -------------------------------------------------------------

    def _read(self) -> list[Feedback]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return []
        items: list[Feedback] = []
        for d in data if isinstance(data, list) else []:
            try:
                items.append(Feedback(**d))
            except (TypeError, ValueError):
                continue
        return items

    def _write(self, items: list[Feedback]) -> None:
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(
            json.dumps([asdict(f) for f in items], indent=2, ensure_ascii=False, default=str),
            encoding="utf-8",
        )
        tmp.replace(self._path)

    @staticmethod
    def _matches(fb: Feedback, query: FeedbackQuery) -> bool:
        if query.search and query.search.lower() not in fb.text.lower():
            return False
        if query.status and fb.status != query.status:
            return False
        if query.category and fb.category != query.category:
            return False
        if query.sentiment and fb.sentiment != query.sentiment:
            return False
        if query.date_from and fb.timestamp < query.date_from:
            return False
        if query.date_to and fb.timestamp > query.date_to:
            return False
        return True

    # -- public API ----------------------------------------------------------

    def save_feedback(self, feedback: Feedback) -> Feedback:
        """Insert or replace *feedback* by id."""
        with self._lock:
            items = [f for f in self._read() if f.id != feedback.id]
            items.append(feedback)
            self._write(items)
        return feedback

    def get_feedback(self, feedback_id: str) -> Optional[Feedback]:
        for fb in self._read():
            if fb.id == feedback_id:
                return fb
        return None

    def list_feedback(self, query: Optional[FeedbackQuery] = None) -> FeedbackPage:
        """Return one page of matching feedback, newest first."""
        query = query or FeedbackQuery()
        page = max(query.page, 1)
        limit = max(query.limit, 1)
        matches = [f for f in self._read() if self._matches(f, query)]
        matches.sort(key=lambda f: f.timestamp, reverse=True)
        start = (page - 1) * limit
        return FeedbackPage(
            items=matches[start:start + limit],
            total=len(matches),
            page=page,
            total_pages=math.ceil(len(matches) / limit),
        )

    def list_for_user(self, user_id: str) -> list[Feedback]:
        items = [f for f in self._read() if f.user_id == user_id]
        items.sort(key=lambda f: f.timestamp, reverse=True)
        return items

    def update_status(
        self,
        feedback_id: str,
        status: FeedbackStatus,
        admin_id: str = "",
        reason: str = "",
    ) -> Feedback:
        with self._lock:
            items = self._read()
            for fb in items:
                if fb.id == feedback_id:
                    fb.status = FeedbackStatus(status)
                    fb.admin_actions.append(
                        AdminAction(action=fb.status.value, admin_id=admin_id, reason=reason)
                    )
                    self._write(items)
                    return fb
        raise NotFoundError(f"Feedback not found: {feedback_id}")

    def delete_feedback(self, feedback_id: str) -> bool:
        with self._lock:
            items = self._read()
            remaining = [f for f in items if f.id != feedback_id]
            if len(remaining) == len(items):
                return False
            self._write(remaining)
        return True
