from opsdesk.screens.list_screen import ListScreen, Notice, apply_patch
from opsdesk.screens.optimistic import Holder, optimistic_update

__all__ = ["Holder", "ListScreen", "Notice", "apply_patch", "optimistic_update"]
