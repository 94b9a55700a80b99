"""Expanded/collapsed state of sidebar tree nodes.

Keys are ``section:<id>``, ``unit:<unit id>`` or ``dept:<department id>``;
department keys inside a child unit are namespaced as
``dept:<unit id>:<department id>`` so one department offered by several
units toggles independently per unit.

State is held per session and never persisted.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

MAIN_DEPARTMENTS = "main-departments"
REGIONAL_UNITS = "regional-units"
ACCOUNT_SECTION = "account-section"


def section_key(section_id: str) -> str:
    return f"section:{section_id}"


def unit_key(unit_id: str) -> str:
    return f"unit:{unit_id}"


def dept_key(department_id: str, *, unit_id: str | None = None) -> str:
    if unit_id is None:
        return f"dept:{department_id}"
    return f"dept:{unit_id}:{department_id}"


# Fixed defaults: the two navigation sections open, the account section closed.
DEFAULT_EXPANSION: Mapping[str, bool] = {
    section_key(MAIN_DEPARTMENTS): True,
    section_key(REGIONAL_UNITS): True,
    section_key(ACCOUNT_SECTION): False,
}


class ExpansionStateStore:
    """Mapping of node key to expanded flag.

    Any key that was never seeded or toggled reads as collapsed.

    Args:
        seed_expanded: Extra keys that start expanded on top of
            :data:`DEFAULT_EXPANSION`.
    """

    def __init__(self, seed_expanded: Iterable[str] = ()) -> None:
        self._seed_expanded = tuple(seed_expanded)
        self._state: dict[str, bool] = {}
        self.reset()

    def is_expanded(self, key: str) -> bool:
        return self._state.get(key, False)

    def toggle(self, key: str) -> bool:
        """Flip *key* and return its new state."""
        expanded = not self.is_expanded(key)
        self._state[key] = expanded
        return expanded

    def set(self, key: str, expanded: bool) -> None:
        self._state[key] = expanded

    def reset(self) -> None:
        """Drop every toggle and restore the seeded defaults."""
        self._state = dict(DEFAULT_EXPANSION)
        for key in self._seed_expanded:
            self._state[key] = True

    def snapshot(self) -> dict[str, bool]:
        return dict(self._state)

    def __contains__(self, key: object) -> bool:
        return key in self._state

    def __len__(self) -> int:
        return len(self._state)
