from opsdesk.bulk.errors import (
    BulkActionError,
    BulkActionInProgressError,
    BulkActionParamsError,
    BulkSelectionTooLargeError,
    EmptyBulkSelectionError,
    UnknownBulkActionError,
)
from opsdesk.bulk.executor import (
    BulkAction,
    BulkActionResult,
    BulkExecutor,
    BulkSummary,
    ItemOutcome,
    collect_outcomes,
    describe_failure,
    summarize,
)
from opsdesk.bulk.guard import BulkActionGuard, bulk_action_guard, reset_bulk_action_guard

__all__ = [
    "BulkAction",
    "BulkActionError",
    "BulkActionGuard",
    "BulkActionInProgressError",
    "BulkActionParamsError",
    "BulkActionResult",
    "BulkExecutor",
    "BulkSelectionTooLargeError",
    "BulkSummary",
    "EmptyBulkSelectionError",
    "ItemOutcome",
    "UnknownBulkActionError",
    "bulk_action_guard",
    "collect_outcomes",
    "describe_failure",
    "reset_bulk_action_guard",
    "summarize",
]
