"""File-based JSON storage for users and sessions.

Provides a DB-ready interface backed by simple JSON files under
``~/.whistlespace/auth/``.  User updates go through :meth:`UserStore.save_user`,
which is a compare-and-set on the record's ``version``.
"""

from __future__ import annotations

import json
import secrets
import threading
import uuid
from dataclasses import replace
from datetime import timedelta
from pathlib import Path
from typing import Optional

from whistlespace.auth.models import FlagEntry, Role, Session, User, utcnow
from whistlespace.errors import ConflictError, NotFoundError, ValidationError


class UserStore:
    """File-based storage for users and sessions.

    Storage path: ``<base_dir>`` with:
    - ``users.json`` -- list of user dicts
    - ``sessions.json`` -- list of session dicts

    A single process-wide lock serialises every read-modify-write on the
    files, so the version check and the write in :meth:`save_user` happen
    as one step.
    """

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        if base_dir is None:
            self._base = Path.home() / ".whistlespace" / "auth"
        else:
            self._base = Path(base_dir)
        self._base.mkdir(parents=True, exist_ok=True)
        self._users_path = self._base / "users.json"
        self._sessions_path = self._base / "sessions.json"
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read_json(self, path: Path) -> list[dict]:
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text())
            return data if isinstance(data, list) else []
        except (json.JSONDecodeError, OSError):
            return []

    def _write_json(self, path: Path, data: list[dict]) -> None:
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, indent=2, default=str))
        tmp.replace(path)

    @staticmethod
    def _flag_to_dict(f: FlagEntry) -> dict:
        return {
            "reason": f.reason,
            "timestamp": f.timestamp.isoformat(),
            "action_taken": f.action_taken.value,
            "feedback_ref": f.feedback_ref,
        }

    @staticmethod
    def _user_from_dict(d: dict) -> User:
        role_val = d.get("role", "user")
        try:
            role = Role(role_val)
        except ValueError:
            role = Role.user
        return User(
            id=d["id"],
            email=d.get("email", ""),
            role=role,
            warning_count=d.get("warning_count", 0),
            ban_until=d.get("ban_until") or None,
            flag_history=[FlagEntry(**f) for f in d.get("flag_history", [])],
            is_active=d.get("is_active", True),
            version=d.get("version", 0),
            created_at=d.get("created_at", ""),
            last_login=d.get("last_login", ""),
        )

    @classmethod
    def _user_to_dict(cls, u: User) -> dict:
        return {
            "id": u.id,
            "email": u.email,
            "role": u.role.value,
            "warning_count": u.warning_count,
            "ban_until": u.ban_until.isoformat() if u.ban_until else None,
            "flag_history": [cls._flag_to_dict(f) for f in u.flag_history],
            "is_active": u.is_active,
            "version": u.version,
            "created_at": u.created_at,
            "last_login": u.last_login,
        }

    # ------------------------------------------------------------------
    # User CRUD
    # ------------------------------------------------------------------

    def create_user(self, email: str, role: Role = Role.user) -> User:
        """Persist a new user.  The first user ever created becomes admin."""
        email = email.strip().lower()
        if not email:
            raise ValidationError("Email is required")
        with self._lock:
            users = self._read_json(self._users_path)
            if any(d.get("email") == email for d in users):
                raise ValidationError("User already exists with this email")
            if not users:
                role = Role.admin
            user = User(id=str(uuid.uuid4()), email=email, role=role, version=1)
            users.append(self._user_to_dict(user))
            self._write_json(self._users_path, users)
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        for d in self._read_json(self._users_path):
            if d["id"] == user_id:
                return self._user_from_dict(d)
        return None

    def require_user(self, user_id: str) -> User:
        user = self.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}")
        return user

    def get_user_by_email(self, email: str) -> Optional[User]:
        for d in self._read_json(self._users_path):
            if d.get("email", "").lower() == email.lower():
                return self._user_from_dict(d)
        return None

    def list_users(self) -> list[User]:
        return [self._user_from_dict(d) for d in self._read_json(self._users_path)]

    def list_admins(self) -> list[User]:
        return [u for u in self.list_users() if u.role == Role.admin]

    def save_user(self, user: User, expected_version: int) -> User:
        """Write *user* only if the stored version still equals *expected_version*.

        Returns the stored copy with its version bumped.  Raises
        :class:`ConflictError` when another writer got there first.
        """
        with self._lock:
            users = self._read_json(self._users_path)
            for i, d in enumerate(users):
                if d["id"] != user.id:
                    continue
                current = d.get("version", 0)
                if current != expected_version:
                    raise ConflictError(user.id, expected_version, current)
                stored = replace(user, version=current + 1)
                users[i] = self._user_to_dict(stored)
                self._write_json(self._users_path, users)
                return stored
        raise NotFoundError(f"User not found: {user.id}")

    def touch_login(self, user_id: str) -> None:
        with self._lock:
            users = self._read_json(self._users_path)
            for d in users:
                if d["id"] == user_id:
                    d["last_login"] = utcnow().isoformat()
                    d["version"] = d.get("version", 0) + 1
                    self._write_json(self._users_path, users)
                    return

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, user_id: str, expires_in_hours: int = 24 * 7) -> Session:
        """Create a new session for a user."""
        now = utcnow()
        session = Session(
            id=str(uuid.uuid4()),
            user_id=user_id,
            token=secrets.token_urlsafe(48),
            created_at=now.isoformat(),
            expires_at=(now + timedelta(hours=expires_in_hours)).isoformat(),
        )
        with self._lock:
            sessions = self._read_json(self._sessions_path)
            sessions.append({
                "id": session.id,
                "user_id": session.user_id,
                "token": session.token,
                "created_at": session.created_at,
                "expires_at": session.expires_at,
            })
            self._write_json(self._sessions_path, sessions)
        return session

    def validate_session(self, token: str) -> Optional[User]:
        """Validate a session token and return the associated user, or None."""
        now = utcnow().isoformat()
        for d in self._read_json(self._sessions_path):
            if d["token"] == token:
                if d.get("expires_at") and d["expires_at"] < now:
                    # Expired -- clean it up
                    self.delete_session(token)
                    return None
                return self.get_user(d["user_id"])
        return None

    def delete_session(self, token: str) -> bool:
        with self._lock:
            sessions = self._read_json(self._sessions_path)
            original_len = len(sessions)
            sessions = [d for d in sessions if d["token"] != token]
            if len(sessions) < original_len:
                self._write_json(self._sessions_path, sessions)
                return True
        return False
