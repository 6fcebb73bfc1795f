"""Pure tests for bulk result aggregation and action support."""

from market_kernel.domain.bulk import (
    SUCCESS_STATUS,
    SUPPORTED_ACTIONS,
    BulkAction,
    BulkItemOutcome,
    BulkItemStatus,
    BulkResult,
    EntityKind,
)


class TestBulkResult:

    def test_counts(self):
        result = BulkResult(
            entity_kind=EntityKind.ORDER,
            action="approve",
            outcomes=(
                BulkItemOutcome("a", BulkItemStatus.APPROVED),
                BulkItemOutcome("b", BulkItemStatus.ERROR, "ALREADY_PROCESSED", "done"),
                BulkItemOutcome("c", BulkItemStatus.ERROR, "ORDER_NOT_FOUND", "Order not found"),
            ),
        )
        assert result.total == 3
        assert result.succeeded == 1
        assert result.failed == 2
        assert [o.entity_id for o in result.errors] == ["b", "c"]
        assert [o.entity_id for o in result.successes] == ["a"]

    def test_empty_result(self):
        result = BulkResult(EntityKind.TASK, "reject", ())
        assert (result.total, result.succeeded, result.failed) == (0, 0, 0)


class TestSupportedActions:

    def test_cancel_is_order_only(self):
        assert BulkAction.CANCEL in SUPPORTED_ACTIONS[EntityKind.ORDER]
        assert BulkAction.CANCEL not in SUPPORTED_ACTIONS[EntityKind.TRANSACTION]
        assert BulkAction.CANCEL not in SUPPORTED_ACTIONS[EntityKind.TASK]

    def test_every_action_has_a_success_status(self):
        assert set(SUCCESS_STATUS) == set(BulkAction)
        assert BulkItemStatus.ERROR not in SUCCESS_STATUS.values()
