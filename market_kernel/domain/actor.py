"""
Admin actor identity and role gate.

The kernel does not authenticate anybody.  Callers resolve the admin's
identity and hand the kernel an ``Actor``; the kernel only checks that the
actor's role is allowed to mutate state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class AdminRole(str, Enum):
    """Admin panel roles, most privileged first."""

    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    MODERATOR = "MODERATOR"


DEFAULT_MUTATING_ROLES: frozenset[AdminRole] = frozenset({
    AdminRole.SUPER_ADMIN,
    AdminRole.ADMIN,
})


@dataclass(frozen=True)
class Actor:
    """The admin performing an action.

    ``ip_address`` and ``user_agent`` are carried through to the activity
    record only; they play no part in authorization.
    """

    actor_id: UUID
    role: AdminRole
    ip_address: str | None = None
    user_agent: str | None = None


def check_mutation_allowed(
    actor: Actor,
    allowed_roles: frozenset[AdminRole] = DEFAULT_MUTATING_ROLES,
) -> tuple[bool, str]:
    """Check whether the actor may perform a state-changing admin action.

    Returns:
        (allowed, reason). reason is empty when allowed.
    """
    if actor.role not in allowed_roles:
        return (False, f"role '{actor.role.value}' may not mutate state")
    return (True, "")
