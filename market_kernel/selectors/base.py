"""
Module: market_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors, plus
    the ``Page`` result type and pagination checks shared by the admin list
    views.
Architecture position: Kernel > Selectors.  May import from db/, domain/ and
    models/.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only access: selectors MUST NOT call session.add(),
      session.delete(), session.commit(), or session.flush().
    - DTO return convention: selectors return frozen dataclasses, never ORM
      instances.
    - Pagination bounds: page >= 1 and 1 <= limit <= max_limit, else
      ValidationError.
"""

from __future__ import annotations

import math
from abc import ABC
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from market_kernel.db.base import Base
from market_kernel.domain.settings import ApprovalSettings
from market_kernel.exceptions import ValidationError

ModelType = TypeVar("ModelType", bound=Base)
E = TypeVar("E", bound=Enum)


@dataclass(frozen=True)
class Page:
    """One page of a list view."""

    items: tuple[Any, ...]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only queries,
        and return DTOs or computed results.  They MUST NOT mutate any data.
    """

    def __init__(self, session: Session, settings: ApprovalSettings | None = None):
        self.session = session
        self.settings = settings or ApprovalSettings()

    def _page_bounds(self, page: int, limit: int | None) -> tuple[int, int]:
        if limit is None:
            limit = self.settings.default_limit
        if page < 1:
            raise ValidationError("page", "must be >= 1")
        if not 1 <= limit <= self.settings.max_limit:
            raise ValidationError(
                "limit", f"must be between 1 and {self.settings.max_limit}",
            )
        return page, limit

    @staticmethod
    def _enum(enum_cls: type[E], value: Any, field: str) -> E:
        """Parse a filter value, turning a bad one into ValidationError."""
        try:
            return enum_cls(value)
        except ValueError as exc:
            raise ValidationError(field, f"unknown value: {value!r}") from exc

    def _paginate(self, stmt: Select, page: int, limit: int | None) -> Page:
        """Run ``stmt`` for one page and convert rows with ``to_dto()``."""
        page, limit = self._page_bounds(page, limit)
        total = self.session.execute(
            select(func.count()).select_from(stmt.order_by(None).subquery())
        ).scalar_one()
        rows = self.session.execute(
            stmt.offset((page - 1) * limit).limit(limit)
        ).scalars().all()
        return Page(
            items=tuple(row.to_dto() for row in rows),
            page=page,
            limit=limit,
            total=total,
        )
