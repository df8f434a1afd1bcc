"""
Linear undo/redo history of full assignment snapshots.

entries[0..cursor]   undo side (entries[cursor] is the state on screen)
entries[cursor+1..]  redo side, discarded by the next push_state()

With no limit every entry is kept, so N pushes followed by N undos always
land back on the seed. A limit caps memory by dropping the oldest entries.

One history belongs to one planning session; it is passed to whoever
mutates the store rather than shared at module level.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from referent_engine.models import AssignmentState
from referent_engine.store import copy_state


@dataclass(frozen=True)
class HistoryEntry:
    state:    AssignmentState
    position: int


class CommandHistory:
    def __init__(
        self,
        seed_state: Optional[AssignmentState] = None,
        limit:      Optional[int]             = None,
    ) -> None:
        if limit is not None and limit < 1:
            raise ValueError("history limit must be >= 1")
        self._limit    = limit
        self._entries: List[HistoryEntry] = []
        self._cursor   = 0
        self._next_pos = 0
        self.clear(seed_state)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def limit(self) -> Optional[int]:
        return self._limit

    def __len__(self) -> int:
        return len(self._entries)

    def _entry(self, state: AssignmentState) -> HistoryEntry:
        entry = HistoryEntry(state=copy_state(state), position=self._next_pos)
        self._next_pos += 1
        return entry

    def clear(self, seed_state: Optional[AssignmentState] = None) -> None:
        self._entries = [self._entry(seed_state or {})]
        self._cursor  = 0

    def current(self) -> AssignmentState:
        return copy_state(self._entries[self._cursor].state)

    def push_state(self, state: AssignmentState) -> None:
        del self._entries[self._cursor + 1:]
        self._entries.append(self._entry(state))
        # oldest entries fall off once a limit is set and reached
        if self._limit is not None:
            overflow = len(self._entries) - self._limit
            if overflow > 0:
                del self._entries[:overflow]
        self._cursor = len(self._entries) - 1

    def can_undo(self) -> bool:
        return self._cursor > 0

    def can_redo(self) -> bool:
        return self._cursor < len(self._entries) - 1

    def _sync(self, current_state: Optional[AssignmentState]) -> None:
        # A live state that was never pushed would be lost by stepping away
        # from it; record it as the newest entry first.
        if current_state is not None and current_state != self._entries[self._cursor].state:
            self.push_state(current_state)

    def undo(self, current_state: Optional[AssignmentState] = None) -> Optional[AssignmentState]:
        self._sync(current_state)
        if not self.can_undo():
            return None
        self._cursor -= 1
        return self.current()

    def redo(self, current_state: Optional[AssignmentState] = None) -> Optional[AssignmentState]:
        if current_state is not None and current_state != self._entries[self._cursor].state:
            # the live state moved on without a push; the redo tail no longer applies
            return None
        if not self.can_redo():
            return None
        self._cursor += 1
        return self.current()
