from __future__ import annotations

from collections.abc import Iterable


class BulkActionError(Exception):
    """Raised when a bulk action is rejected before any record is touched."""

    code = "BULK_ACTION_FAILED"
    status_code = 400

    def __init__(self, entity_type: str, message: str) -> None:
        self.entity_type = entity_type
        super().__init__(message)

    @property
    def details(self) -> dict[str, object] | None:
        return None


class UnknownBulkActionError(BulkActionError):
    code = "UNKNOWN_BULK_ACTION"

    def __init__(self, entity_type: str, action: str, allowed: Iterable[str]) -> None:
        self.action = action
        self.allowed = sorted(allowed)
        super().__init__(entity_type, f"Unknown action '{action}' for {entity_type}")

    @property
    def details(self) -> dict[str, object]:
        return {"action": self.action, "allowed_actions": self.allowed}


class BulkActionParamsError(BulkActionError):
    code = "INVALID_BULK_PARAMS"

    def __init__(self, entity_type: str, action: str, missing: list[str]) -> None:
        self.action = action
        self.missing = missing
        super().__init__(entity_type, f"{', '.join(missing)} required for {action} action")

    @property
    def details(self) -> dict[str, object]:
        return {"action": self.action, "missing_params": self.missing}


class EmptyBulkSelectionError(BulkActionError):
    code = "EMPTY_SELECTION"
    status_code = 422

    def __init__(self, entity_type: str) -> None:
        super().__init__(entity_type, "At least one id is required")


class BulkSelectionTooLargeError(BulkActionError):
    code = "TOO_MANY_IDS"
    status_code = 422

    def __init__(self, entity_type: str, count: int, limit: int) -> None:
        self.count = count
        self.limit = limit
        super().__init__(entity_type, f"{count} ids exceeds the bulk limit of {limit}")

    @property
    def details(self) -> dict[str, object]:
        return {"count": self.count, "limit": self.limit}


class BulkActionInProgressError(BulkActionError):
    code = "BULK_ACTION_IN_PROGRESS"
    status_code = 409

    def __init__(self, entity_type: str) -> None:
        super().__init__(entity_type, f"A bulk action on {entity_type} is already running")
