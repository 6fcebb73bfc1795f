"""
TaskService -- admin review of submitted tasks.

Approve or reject a task the doer has submitted, stamping who reviewed it
and when.  Flush-only; no ledger effect.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from market_kernel.domain.clock import Clock, SystemClock
from market_kernel.domain.task import REVIEWABLE_FROM, TaskStatus
from market_kernel.domain.validation import DEFAULT_MIN_REASON_LENGTH, require_reason
from market_kernel.exceptions import AlreadyProcessedError, TaskNotFoundError
from market_kernel.logging_config import get_logger
from market_kernel.models.task import Task
from market_kernel.services.base import BaseService

logger = get_logger("services.task")


class TaskService(BaseService[Task]):
    model = Task
    entity_type = "Task"

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        min_reason_length: int = DEFAULT_MIN_REASON_LENGTH,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._min_reason_length = min_reason_length

    def approve(
        self, task_id: UUID | str, actor_id: UUID, notes: str | None = None,
    ) -> Task:
        """submitted -> approved."""
        task = self._load_submitted(task_id)
        now = self._clock.now()
        values = {
            "status": TaskStatus.APPROVED.value,
            "approved_at": now,
            "admin_reviewed_by": actor_id,
            "admin_reviewed_at": now,
            "updated_by_id": actor_id,
        }
        if notes is not None:
            values["admin_notes"] = notes
        self._claim(task, REVIEWABLE_FROM, values)
        logger.info("task_approved", extra={"task_id": str(task.id)})
        return task

    def reject(
        self,
        task_id: UUID | str,
        actor_id: UUID,
        reason: str | None,
        notes: str | None = None,
    ) -> Task:
        """submitted -> rejected."""
        cleaned = require_reason(reason, self._min_reason_length)
        task = self._load_submitted(task_id)
        now = self._clock.now()
        values = {
            "status": TaskStatus.REJECTED.value,
            "rejected_at": now,
            "rejection_reason": cleaned,
            "admin_reviewed_by": actor_id,
            "admin_reviewed_at": now,
            "updated_by_id": actor_id,
        }
        if notes is not None:
            values["admin_notes"] = notes
        self._claim(task, REVIEWABLE_FROM, values)
        logger.info(
            "task_rejected", extra={"task_id": str(task.id), "reason": cleaned},
        )
        return task

    def _load_submitted(self, task_id: UUID | str) -> Task:
        task = self._load_for_update(task_id, TaskNotFoundError)
        if TaskStatus(task.status) not in REVIEWABLE_FROM:
            raise AlreadyProcessedError(self.entity_type, str(task.id), task.status)
        return task
