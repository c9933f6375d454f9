"""
auth/policy.py -- Role-rank authorization decisions.

RoleTag is closed. role_rank() raises UnknownRoleError for anything outside
it instead of ranking it 0, so a typo in a required role surfaces as an error
rather than silently granting or denying access. The only place that denies
by default is can_access_session(): no session means no access.

Layer rule: no imports from api/, web/, core/, or storage/.
"""

from __future__ import annotations

from auth.exceptions import AuthorizationError
from auth.models import RoleTag, Session, User

ROLE_RANKS: dict[RoleTag, int] = {
    RoleTag.admin: 4,
    RoleTag.empleado: 3,
    RoleTag.cajero: 2,
    RoleTag.viewer: 1,
}


def role_rank(role: RoleTag | str) -> int:
    return ROLE_RANKS[RoleTag.parse(role)]


def can_access(user: User, required_role: RoleTag | str) -> bool:
    """Return True iff the user's role ranks at or above required_role."""
    return role_rank(user.role) >= role_rank(required_role)


def can_access_session(session: Session | None, required_role: RoleTag | str) -> bool:
    """Like can_access(), but denies when nobody is logged in."""
    if session is None:
        # Still validate the requirement so unknown roles are not hidden.
        role_rank(required_role)
        return False
    return can_access(session.user, required_role)


def require_role(user: User, required_role: RoleTag | str) -> User:
    """Return user unchanged, or raise AuthorizationError if it ranks too low."""
    if not can_access(user, required_role):
        raise AuthorizationError(
            f"{user.username!r} has role {user.role.value!r}; {RoleTag.parse(required_role).value!r} required"
        )
    return user


def is_admin(user: User | None) -> bool:
    return user is not None and user.role is RoleTag.admin
