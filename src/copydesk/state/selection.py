"""Single-slot selections: at most one item of a group is active at a time.

``Selection`` holds ``None`` or one id and is changed through a single
setter, so there are never per-item flags that can disagree with each other.
``ExclusiveGroup`` is the accordion built on top of it.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Selection:
    """``None`` (nothing selected) or the selected id."""

    selected: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.selected is None

    def is_selected(self, item_id: str) -> bool:
        return self.selected == item_id

    def set(self, item_id: str | None) -> bool:
        """Replace the selection; return True when it changed."""
        if item_id == self.selected:
            return False
        self.selected = item_id
        return True

    def clear(self) -> bool:
        return self.set(None)


class ExclusiveGroup:
    """Accordion: opening one group closes every other."""

    def __init__(self, open_id: str | None = None) -> None:
        self._selection = Selection(open_id)

    @property
    def open_id(self) -> str | None:
        return self._selection.selected

    def is_open(self, group_id: str) -> bool:
        return self._selection.is_selected(group_id)

    def open_ids(self) -> set[str]:
        return set() if self._selection.is_empty else {self._selection.selected}  # type: ignore[arg-type]

    def toggle(self, group_id: str) -> None:
        """Close everything if ``group_id`` is the open one, else open only it."""
        if self._selection.is_selected(group_id):
            self._selection.clear()
        else:
            self._selection.set(group_id)

    def open(self, group_id: str) -> None:
        self._selection.set(group_id)

    def reset(self) -> None:
        """Fully closed; used whenever the containing panel is reopened."""
        self._selection.clear()
