from whistlespace.auth.models import ActionTaken, FlagEntry, Role, Session, User
from whistlespace.auth.store import UserStore

__all__ = ["ActionTaken", "FlagEntry", "Role", "Session", "User", "UserStore"]
