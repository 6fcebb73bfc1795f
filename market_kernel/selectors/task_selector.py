"""
TaskSelector -- read side of the task review queue.

``pending_review`` is what moderators work through: submitted tasks,
oldest submission first.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import or_, select

from market_kernel.db.base import coerce_uuid
from market_kernel.domain.order import Platform
from market_kernel.domain.task import REVIEWABLE_FROM, TaskRecord, TaskStatus
from market_kernel.exceptions import TaskNotFoundError
from market_kernel.models.task import Task
from market_kernel.models.user import UserAccount
from market_kernel.selectors.base import BaseSelector, Page


class TaskSelector(BaseSelector[Task]):

    def get(self, task_id: UUID | str) -> TaskRecord:
        parsed = coerce_uuid(task_id)
        task = self.session.get(Task, parsed) if parsed is not None else None
        if task is None:
            raise TaskNotFoundError(str(task_id))
        return task.to_dto()

    def pending_review(
        self,
        platform: str | Platform | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page:
        """Submitted tasks awaiting review, oldest submission first."""
        stmt = select(Task).where(Task.status.in_([s.value for s in REVIEWABLE_FROM]))
        if platform is not None:
            stmt = stmt.where(
                Task.platform == self._enum(Platform, platform, "platform").value,
            )
        if search:
            pattern = f"%{search}%"
            stmt = stmt.join(Task.user).where(or_(
                Task.target_url.ilike(pattern),
                Task.description.ilike(pattern),
                UserAccount.email.ilike(pattern),
                UserAccount.username.ilike(pattern),
            ))
        stmt = stmt.order_by(Task.submitted_at.asc(), Task.id)
        return self._paginate(stmt, page, limit)

    def list_tasks(
        self,
        status: str | TaskStatus | None = None,
        platform: str | Platform | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page:
        stmt = select(Task)
        if status is not None:
            stmt = stmt.where(Task.status == self._enum(TaskStatus, status, "status").value)
        if platform is not None:
            stmt = stmt.where(
                Task.platform == self._enum(Platform, platform, "platform").value,
            )
        stmt = stmt.order_by(Task.created_at.desc(), Task.id)
        return self._paginate(stmt, page, limit)
