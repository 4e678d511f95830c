from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace


@dataclass(frozen=True, slots=True)
class SelectionState:
    """Selected ids, always a subset of the ids currently visible in the filtered list."""

    visible_ids: tuple[str, ...] = ()
    selected: frozenset[str] = frozenset()

    @property
    def selected_count(self) -> int:
        return len(self.selected)

    @property
    def selected_ids(self) -> list[str]:
        return [record_id for record_id in self.visible_ids if record_id in self.selected]

    @property
    def is_all_selected(self) -> bool:
        return bool(self.visible_ids) and all(record_id in self.selected for record_id in self.visible_ids)

    @property
    def is_some_selected(self) -> bool:
        return bool(self.selected) and not self.is_all_selected

    def is_selected(self, record_id: str) -> bool:
        return record_id in self.selected


def _unique(ids: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(ids))


def toggle(state: SelectionState, record_id: str) -> SelectionState:
    if record_id not in state.visible_ids:
        return state
    if record_id in state.selected:
        return replace(state, selected=state.selected - {record_id})
    return replace(state, selected=state.selected | {record_id})


def toggle_all(state: SelectionState) -> SelectionState:
    if state.is_all_selected:
        return replace(state, selected=frozenset())
    return replace(state, selected=frozenset(state.visible_ids))


def clear(state: SelectionState) -> SelectionState:
    return replace(state, selected=frozenset())


def sync(state: SelectionState, visible_ids: Iterable[str]) -> SelectionState:
    visible = _unique(visible_ids)
    return SelectionState(visible_ids=visible, selected=state.selected.intersection(visible))


class SelectionStore:
    """Mutable holder over the pure selection transitions, one per list screen."""

    def __init__(self, visible_ids: Iterable[str] = ()) -> None:
        self._state = SelectionState(visible_ids=_unique(visible_ids))

    @property
    def state(self) -> SelectionState:
        return self._state

    def sync(self, visible_ids: Iterable[str]) -> None:
        self._state = sync(self._state, visible_ids)

    def toggle_selection(self, record_id: str) -> None:
        self._state = toggle(self._state, record_id)

    def toggle_all(self) -> None:
        self._state = toggle_all(self._state)

    def clear_selection(self) -> None:
        self._state = clear(self._state)

    def is_selected(self, record_id: str) -> bool:
        return self._state.is_selected(record_id)

    @property
    def is_all_selected(self) -> bool:
        return self._state.is_all_selected

    @property
    def is_some_selected(self) -> bool:
        return self._state.is_some_selected

    @property
    def selected_count(self) -> int:
        return self._state.selected_count

    @property
    def selected_ids(self) -> list[str]:
        return self._state.selected_ids
