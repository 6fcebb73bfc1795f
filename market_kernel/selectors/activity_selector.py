"""
ActivitySelector -- read side of the admin activity log.

Newest entries first.  Filters combine with AND.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from market_kernel.db.base import coerce_uuid
from market_kernel.models.admin_activity import ActivityAction, AdminActivity
from market_kernel.selectors.base import BaseSelector, Page


class ActivitySelector(BaseSelector[AdminActivity]):

    def list_activities(
        self,
        resource: str | None = None,
        resource_id: UUID | str | None = None,
        admin_id: UUID | str | None = None,
        action: str | ActivityAction | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page:
        stmt = select(AdminActivity)
        if resource is not None:
            stmt = stmt.where(AdminActivity.resource == resource)
        if resource_id is not None:
            stmt = stmt.where(AdminActivity.resource_id == str(resource_id))
        if admin_id is not None:
            # An unparseable admin id matches nothing
            stmt = stmt.where(AdminActivity.admin_id == coerce_uuid(admin_id))
        if action is not None:
            stmt = stmt.where(
                AdminActivity.action == self._enum(ActivityAction, action, "action").value,
            )
        stmt = stmt.order_by(AdminActivity.created_at.desc(), AdminActivity.id)
        return self._paginate(stmt, page, limit)

    def for_resource(self, resource: str, resource_id: UUID | str) -> tuple:
        """Every entry for one resource, oldest first."""
        rows = self.session.execute(
            select(AdminActivity)
            .where(AdminActivity.resource == resource)
            .where(AdminActivity.resource_id == str(resource_id))
            .order_by(AdminActivity.created_at.asc(), AdminActivity.id)
        ).scalars().all()
        return tuple(row.to_dto() for row in rows)
