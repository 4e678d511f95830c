from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Literal

from opsdesk.bulk import BulkActionError, BulkActionInProgressError, BulkActionResult, BulkExecutor, summarize
from opsdesk.bulk.executor import pluralize
from opsdesk.listing import ListingSpec, ListQuery, Page, SortOrder, apply_query, filtered_view, read_field
from opsdesk.screens.optimistic import Holder, optimistic_update
from opsdesk.selection import SelectionStore

logger = logging.getLogger("opsdesk.screens")

NoticeLevel = Literal["success", "error", "info"]
ConfirmCallback = Callable[[str], bool]


@dataclass(frozen=True, slots=True)
class Notice:
    level: NoticeLevel
    message: str


def apply_patch(record: Any, patch: Mapping[str, Any]) -> Any:
    if isinstance(record, Mapping):
        return {**record, **patch}
    model_copy = getattr(record, "model_copy", None)
    if model_copy is not None:
        return model_copy(update=dict(patch))
    raise TypeError(f"cannot patch {type(record).__name__}")


class ListScreen:
    """Headless list screen: load, filter/sort/paginate, select, act in bulk, reload.

    ``records`` is anything with ``list()`` and ``update(id, patch)``; bulk
    handlers receive it unchanged. The selection always tracks the full
    filtered list, not just the current page.
    """

    def __init__(
        self,
        records: Any,
        listing: ListingSpec,
        executor: BulkExecutor,
        noun: str | None = None,
        *,
        actor_user_id: str = "system",
    ) -> None:
        self.records = records
        self.listing = listing
        self.executor = executor
        self.noun = noun or executor.noun
        self.actor_user_id = actor_user_id
        self.query = ListQuery()
        self.selection = SelectionStore()
        self.notices: list[Notice] = []
        self.loading = False
        self.bulk_action_loading = False
        self._items: Holder[list[Any]] = Holder([])

    @property
    def items(self) -> list[Any]:
        return self._items.value

    @property
    def filtered(self) -> list[Any]:
        return filtered_view(self.items, self.query, self.listing)

    @property
    def view(self) -> Page[Any]:
        return apply_query(self.items, self.query, self.listing)

    def load(self) -> None:
        self.loading = True
        try:
            items = list(self.records.list())
        finally:
            self.loading = False
        self._items.value = items
        self._sync_selection()

    def set_search(self, search_term: str) -> None:
        self._set_query(self.query.with_search(search_term))

    def set_status_filter(self, status_filter: str) -> None:
        self._set_query(self.query.with_status(status_filter))

    def set_sort(self, sort_by: str | None, sort_order: SortOrder = "asc") -> None:
        self.listing.resolve_sort_key(sort_by)
        self._set_query(self.query.with_sort(sort_by, sort_order))

    def set_page(self, page: int) -> None:
        self._set_query(self.query.with_page(page))

    def run_bulk_action(
        self,
        action: str,
        params: Mapping[str, Any] | None = None,
        confirm: ConfirmCallback | None = None,
    ) -> BulkActionResult | None:
        if self.bulk_action_loading:
            raise BulkActionInProgressError(self.executor.entity_type)

        ids = self.selection.selected_ids
        if not ids:
            return None

        try:
            bulk_action = self.executor.get_action(action)
        except BulkActionError as exc:
            self._notify("error", str(exc))
            return None

        if bulk_action.destructive:
            count = len(ids)
            prompt = f"Are you sure you want to {action} {count} {pluralize(self.noun, count)}?"
            if confirm is None or not confirm(prompt):
                return None

        self.bulk_action_loading = True
        try:
            result = self.executor.execute(
                action,
                ids,
                params or {},
                self.records,
                actor_user_id=self.actor_user_id,
            )
        except BulkActionError as exc:
            self._notify("error", str(exc))
            return None
        finally:
            self.bulk_action_loading = False

        summary = summarize(bulk_action, result, self.noun)
        self._notify("success", summary.message)
        if summary.failure_message:
            self._notify("error", summary.failure_message)

        self.selection.clear_selection()
        try:
            self.load()
        except Exception as exc:
            logger.warning("list_screen.reload_failed", extra={"entity_type": self.executor.entity_type, "error": str(exc)})
            self._notify("error", f"Failed to reload {pluralize(self.noun, 2)}")
        return result

    def update_optimistically(self, record_id: str, patch: Mapping[str, Any]) -> Any:
        """Show ``patch`` immediately; put the old list back if the remote update fails."""

        def apply(items: list[Any]) -> list[Any]:
            return [apply_patch(item, patch) if self._id_of(item) == str(record_id) else item for item in items]

        try:
            updated = optimistic_update(self._items, apply, lambda: self.records.update(str(record_id), dict(patch)))
        except Exception as exc:
            self._notify("error", f"Failed to update {self.noun}: {exc}")
            self._sync_selection()
            raise

        if updated is not None:
            self._items.value = [updated if self._id_of(item) == str(record_id) else item for item in self.items]
        self._sync_selection()
        return updated

    def _set_query(self, query: ListQuery) -> None:
        self.query = query
        self._sync_selection()

    def _sync_selection(self) -> None:
        self.selection.sync([self._id_of(record) for record in self.filtered])

    def _notify(self, level: NoticeLevel, message: str) -> None:
        self.notices.append(Notice(level=level, message=message))

    @staticmethod
    def _id_of(record: Any) -> str:
        return str(read_field(record, "id"))
