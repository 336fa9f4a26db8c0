"""Parent-chain walking for recursive types."""

from __future__ import annotations

from collections.abc import Mapping


def find_parent_cycle(start: str, parent_map: Mapping[str, str]) -> list[str] | None:
    """Return the cycle path when walking parents from *start* loops back to it.

    The returned path begins and ends with *start* (``[A, B, C, A]``). A
    cycle further up the chain that never returns to *start* is ignored:
    it belongs to the documents on that loop, not to this one.
    """
    path = [start]
    visited = {start}
    current = parent_map.get(start)
    while current is not None:
        if current in visited:
            if current == start:
                return [*path, current]
            return None
        visited.add(current)
        path.append(current)
        current = parent_map.get(current)
    return None
