"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor, row loading, and the compare-and-set
    claim used by every state transition.  Concrete services receive a
    SQLAlchemy ``Session`` and use ``session.flush()`` -- never
    ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or rollback themselves.  The caller
      (ApprovalEngine, BulkProcessor, or test harness) owns commit/rollback.
    - Exactly-once transitions: ``_claim`` issues
      ``UPDATE ... WHERE id = :id AND status IN (:sources)`` and requires
      exactly one affected row.  Two callers racing on the same row cannot
      both succeed, even where ``FOR UPDATE`` is a no-op (SQLite).

Failure modes:
    - NotFoundError subclass when the id is malformed or absent.
    - AlreadyProcessedError (or the caller's conflict error) when the claim
      matches zero rows.
"""

from abc import ABC
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from market_kernel.db.base import Base, coerce_uuid
from market_kernel.exceptions import AlreadyProcessedError, MarketKernelError, NotFoundError

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.

    Non-goals:
        - Does NOT provide list/search methods -- those belong in
          ``market_kernel/selectors/``.
    """

    model: type[ModelType]
    entity_type: str = "Entity"

    def __init__(self, session: Session):
        self.session = session

    def _load_for_update(
        self,
        entity_id: UUID | str,
        not_found: type[NotFoundError],
    ) -> ModelType:
        """Load the row with ``SELECT ... FOR UPDATE``, refreshing any cached copy."""
        parsed = coerce_uuid(entity_id)
        if parsed is None:
            raise not_found(str(entity_id))
        instance = self.session.execute(
            select(self.model)
            .where(self.model.id == parsed)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if instance is None:
            raise not_found(str(entity_id))
        return instance

    def _claim(
        self,
        instance: ModelType,
        sources: Iterable[Enum],
        values: dict[str, Any],
        on_conflict: Callable[[str], MarketKernelError] | None = None,
        guards: Iterable[Any] = (),
    ) -> ModelType:
        """
        Move ``instance`` to a new state iff it is still in one of ``sources``.

        ``values`` holds the new status and every stamp that goes with it,
        written in the same statement.  On success the instance is refreshed
        from the database.  On zero affected rows the instance is refreshed
        and ``on_conflict(current_status)`` (default AlreadyProcessedError)
        is raised.

        ``guards`` are extra WHERE clauses the row must also satisfy, for
        invariants that do not live in the status column.
        """
        source_values = [s.value for s in sources]
        stmt = (
            update(self.model)
            .where(self.model.id == instance.id)
            .where(self.model.status.in_(source_values))
        )
        for guard in guards:
            stmt = stmt.where(guard)
        result = self.session.execute(
            stmt.values(**values).execution_options(synchronize_session=False)
        )
        self.session.refresh(instance)
        if result.rowcount != 1:
            if on_conflict is not None:
                raise on_conflict(instance.status)
            raise AlreadyProcessedError(
                self.entity_type, str(instance.id), instance.status,
            )
        return instance
