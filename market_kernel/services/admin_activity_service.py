"""
Admin activity recording.

Responsibility:
    ``AdminActivityService`` appends one activity row inside the caller's
    unit (flush-only).  ``DatabaseActivitySink`` is the engine-facing,
    fire-and-forget wrapper: it writes in its OWN unit after the admin
    transition has committed and never raises.

Architecture position:
    Kernel > Services.  The ``ActivitySink`` protocol is the seam callers
    can replace (e.g. to ship activity to an external log).

Invariants enforced:
    - Append-only rows (db/immutability.py).
    - payload_hash = hash_payload(details) computed at write time.
    - A sink failure is logged at ERROR with exc_info and reported as
      ``False``; it never rolls back or re-raises into the admin action.
"""

from __future__ import annotations

from typing import Any, Protocol
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from market_kernel.db.engine import session_scope
from market_kernel.domain.actor import Actor
from market_kernel.domain.clock import Clock, SystemClock
from market_kernel.logging_config import get_logger
from market_kernel.models.admin_activity import ActivityAction, AdminActivity
from market_kernel.services.base import BaseService
from market_kernel.utils.hashing import hash_payload, to_json_safe

logger = get_logger("services.admin_activity")


class ActivitySink(Protocol):
    """Write-only, best-effort consumer of admin activity."""

    def record(
        self,
        *,
        actor: Actor,
        action: ActivityAction,
        resource: str,
        resource_id: str | None,
        details: dict[str, Any],
    ) -> bool: ...


class AdminActivityService(BaseService[AdminActivity]):
    """Append activity rows in the caller's transaction."""

    model = AdminActivity
    entity_type = "AdminActivity"

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def record(
        self,
        *,
        admin_id: UUID,
        action: ActivityAction,
        resource: str,
        resource_id: str | None,
        details: dict[str, Any],
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AdminActivity:
        safe_details = to_json_safe(details)
        activity = AdminActivity(
            admin_id=admin_id,
            action=action.value,
            resource=resource,
            resource_id=resource_id,
            details=safe_details,
            payload_hash=hash_payload(safe_details),
            ip_address=ip_address,
            user_agent=user_agent,
            created_at=self._clock.now(),
        )
        self.session.add(activity)
        self.session.flush()
        return activity


class DatabaseActivitySink:
    """Default ActivitySink: one short transaction per record."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    def record(
        self,
        *,
        actor: Actor,
        action: ActivityAction,
        resource: str,
        resource_id: str | None,
        details: dict[str, Any],
    ) -> bool:
        try:
            with session_scope(self._session_factory) as session:
                AdminActivityService(session, self._clock).record(
                    admin_id=actor.actor_id,
                    action=action,
                    resource=resource,
                    resource_id=resource_id,
                    details=details,
                    ip_address=actor.ip_address,
                    user_agent=actor.user_agent,
                )
        except Exception:
            logger.error(
                "admin_activity_write_failed",
                extra={
                    "admin_id": str(actor.actor_id),
                    "activity_action": action.value,
                    "resource": resource,
                    "resource_id": resource_id,
                },
                exc_info=True,
            )
            return False
        return True
