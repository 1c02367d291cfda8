"""Role checks for the HTTP layer.

Role hierarchy: admin > user
"""

from __future__ import annotations

from fastapi import HTTPException, status

from whistlespace.auth.models import Role, User


def has_permission(user: User, required_role: Role) -> bool:
    """Return True if the user's role level is at least *required_role*'s."""
    return user.role.level >= required_role.level


def require_role(user: User, role: Role) -> None:
    """Raise ``HTTPException(403)`` unless *user* has at least *role*.

    Usage in a router::

        @router.post("/users/{user_id}/unban")
        async def unban(user_id: str, admin: User = Depends(get_current_user)):
            require_role(admin, Role.admin)
            ...
    """
    if not has_permission(user, role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Requires role '{role.value}'",
        )
