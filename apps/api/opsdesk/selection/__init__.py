from opsdesk.selection.store import SelectionState, SelectionStore, clear, sync, toggle, toggle_all

__all__ = ["SelectionState", "SelectionStore", "clear", "sync", "toggle", "toggle_all"]
