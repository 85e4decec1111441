"""Selected-branch state."""

from __future__ import annotations

from typing import Any, Optional

from hrms.client.store import BRANCHES_KEY, SELECTED_BRANCH_KEY, LocalStore


class BranchState:
    def __init__(self, store: LocalStore) -> None:
        self.store = store

    @property
    def selected(self) -> Optional[dict[str, Any]]:
        return self.store.get(SELECTED_BRANCH_KEY)

    def select(self, branch: dict[str, Any]) -> None:
        self.store.set(SELECTED_BRANCH_KEY, branch)

    def clear(self) -> None:
        self.store.remove(SELECTED_BRANCH_KEY)

    @property
    def branches(self) -> list[dict[str, Any]]:
        return self.store.get(BRANCHES_KEY, [])

    def remember(self, branches: list[dict[str, Any]]) -> None:
        """Cache the branch list; a selection no longer in it is dropped."""
        self.store.set(BRANCHES_KEY, branches)
        current = self.selected
        if current and current.get("id") not in {b.get("id") for b in branches}:
            self.clear()
