"""
BulkProcessor -- apply one admin action to many entities.

Responsibility:
    Run the same single-item transition for every requested id, in request
    order, each in its own atomic unit, and collect exactly one outcome per
    id.  Modelled on a batch executor: per-item failures are captured, the
    run never aborts early, and counters are reported at the end.

Architecture position:
    Kernel > Services.  Orchestration only: the per-item work (including
    its own commit and activity record) is delegated to an ``ItemHandler``
    supplied by the ApprovalEngine.  Authorization is the engine's job and
    happens once, before the processor runs.

Invariants enforced:
    - ``len(result.outcomes) == len(ids)``; duplicates produce their own
      outcome (the second one normally fails with ALREADY_PROCESSED).
    - Item-level problems never raise out of ``run``.
    - No cross-item atomicity: item N's failure leaves items < N committed.

Failure modes (captured per item):
    - <KIND>_NOT_FOUND, ALREADY_PROCESSED, VALIDATION_ERROR,
      INVALID_TRANSACTION_TYPE, INSUFFICIENT_FUNDS, INTERNAL_ERROR
    - UNSUPPORTED_ACTION for an action the entity kind does not support
    - UNHANDLED_EXCEPTION for anything that is not a kernel error
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from typing import Any
from uuid import UUID

from market_kernel.domain.actor import Actor
from market_kernel.domain.bulk import (
    SUCCESS_STATUS,
    SUPPORTED_ACTIONS,
    BulkAction,
    BulkItemOutcome,
    BulkItemStatus,
    BulkResult,
    EntityKind,
)
from market_kernel.exceptions import MarketKernelError, NotFoundError
from market_kernel.logging_config import get_logger

logger = get_logger("services.bulk")

ItemHandler = Callable[[EntityKind, BulkAction, str, Actor, "str | None"], Any]

UNSUPPORTED_ACTION = "UNSUPPORTED_ACTION"
UNHANDLED_EXCEPTION = "UNHANDLED_EXCEPTION"


class BulkProcessor:
    """Sequential per-item executor for bulk admin actions."""

    def __init__(self, handler: ItemHandler):
        self._handler = handler

    def run(
        self,
        entity_kind: EntityKind | str,
        ids: Sequence[UUID | str],
        action: BulkAction | str,
        actor: Actor,
        reason: str | None = None,
    ) -> BulkResult:
        start_time = time.monotonic()
        kind = EntityKind(entity_kind)
        action_name = action.value if isinstance(action, BulkAction) else str(action)

        try:
            parsed_action = BulkAction(action_name)
        except ValueError:
            parsed_action = None

        if parsed_action is None or parsed_action not in SUPPORTED_ACTIONS[kind]:
            outcomes = tuple(
                BulkItemOutcome(
                    entity_id=str(entity_id),
                    status=BulkItemStatus.ERROR,
                    error_code=UNSUPPORTED_ACTION,
                    error=f"Action '{action_name}' is not supported for {kind.value}",
                )
                for entity_id in ids
            )
        else:
            outcomes = tuple(
                self._run_item(kind, parsed_action, str(entity_id), actor, reason)
                for entity_id in ids
            )

        result = BulkResult(entity_kind=kind, action=action_name, outcomes=outcomes)
        logger.info(
            "bulk_action_completed",
            extra={
                "entity_kind": kind.value,
                "bulk_action": action_name,
                "total": result.total,
                "succeeded": result.succeeded,
                "failed": result.failed,
                "duration_ms": int((time.monotonic() - start_time) * 1000),
            },
        )
        return result

    def _run_item(
        self,
        kind: EntityKind,
        action: BulkAction,
        entity_id: str,
        actor: Actor,
        reason: str | None,
    ) -> BulkItemOutcome:
        try:
            self._handler(kind, action, entity_id, actor, reason)
        except NotFoundError as exc:
            return BulkItemOutcome(
                entity_id=entity_id,
                status=BulkItemStatus.ERROR,
                error_code=exc.code,
                error=f"{exc.entity_type} not found",
            )
        except MarketKernelError as exc:
            return BulkItemOutcome(
                entity_id=entity_id,
                status=BulkItemStatus.ERROR,
                error_code=exc.code,
                error=str(exc),
            )
        except Exception as exc:
            logger.error(
                "bulk_item_unhandled_exception",
                extra={"entity_kind": kind.value, "item_id": entity_id},
                exc_info=True,
            )
            return BulkItemOutcome(
                entity_id=entity_id,
                status=BulkItemStatus.ERROR,
                error_code=UNHANDLED_EXCEPTION,
                error=str(exc),
            )
        return BulkItemOutcome(entity_id=entity_id, status=SUCCESS_STATUS[action])
