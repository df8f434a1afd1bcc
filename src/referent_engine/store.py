"""
In-memory assignment state for one planning session.

Invariant: a student id appears under at most one referent. assign() removes
any previous placement before appending, and restore() repairs snapshots that
break the rule (first placement wins).

The store never recomputes workloads itself; callers do that after each
mutation.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from referent_engine.models import AssignmentState, Referent, Student

logger = logging.getLogger(__name__)


class InvalidReference(ValueError):
    """Raised when a student or referent id is not in the current pool."""

    def __init__(self, kind: str, ref_id: str) -> None:
        super().__init__(f"Unknown {kind} '{ref_id}'")
        self.kind   = kind
        self.ref_id = ref_id


def copy_state(state: AssignmentState) -> AssignmentState:
    return {rid: list(sids) for rid, sids in state.items()}


class AssignmentStore:
    def __init__(
        self,
        students:  Sequence[Student],
        referents: Sequence[Referent],
        state:     Optional[AssignmentState] = None,
    ) -> None:
        self._students:  Dict[str, Student]  = {}
        self._referents: Dict[str, Referent] = {}
        self._state:     AssignmentState     = {}
        self.reseed(students, referents, state or {})

    # ---- pool ----------------------------------------------------------------

    @property
    def students(self) -> List[Student]:
        return list(self._students.values())

    @property
    def referents(self) -> List[Referent]:
        return list(self._referents.values())

    def get_student(self, sid: str) -> Optional[Student]:
        return self._students.get(sid)

    def get_referent(self, rid: str) -> Optional[Referent]:
        return self._referents.get(rid)

    def reseed(
        self,
        students:  Sequence[Student],
        referents: Sequence[Referent],
        state:     AssignmentState,
    ) -> None:
        """Replace the pools and the state in one go (new session or external change)."""
        self._students  = {s.id: s for s in students}
        self._referents = {r.id: r for r in referents}
        self.restore(state)

    # ---- queries -------------------------------------------------------------

    @property
    def state(self) -> AssignmentState:
        return self.snapshot()

    def referent_of(self, student_id: str) -> Optional[str]:
        for rid, sids in self._state.items():
            if student_id in sids:
                return rid
        return None

    def students_of(self, referent_id: str) -> List[Student]:
        return [self._students[sid] for sid in self._state.get(referent_id, [])]

    def assigned_count(self) -> int:
        return sum(len(sids) for sids in self._state.values())

    def unassigned_students(self) -> List[Student]:
        placed = {sid for sids in self._state.values() for sid in sids}
        return [s for s in self._students.values() if s.id not in placed]

    # ---- validation ----------------------------------------------------------

    def check(self, student_id: str, referent_id: Optional[str] = None) -> None:
        if student_id not in self._students:
            raise InvalidReference("student", student_id)
        if referent_id is not None and referent_id not in self._referents:
            raise InvalidReference("referent", referent_id)

    # ---- transitions ---------------------------------------------------------

    @staticmethod
    def _apply_assign(state: AssignmentState, student_id: str, referent_id: str) -> bool:
        if student_id in state.get(referent_id, ()):
            return False
        for sids in state.values():
            if student_id in sids:
                sids.remove(student_id)
        state.setdefault(referent_id, []).append(student_id)
        return True

    @staticmethod
    def _apply_unassign(state: AssignmentState, student_id: str) -> bool:
        changed = False
        for sids in state.values():
            if student_id in sids:
                sids.remove(student_id)
                changed = True
        return changed

    def assign(self, student_id: str, referent_id: str) -> bool:
        """Move student_id under referent_id. Returns False if it was already there."""
        self.check(student_id, referent_id)
        changed = self._apply_assign(self._state, student_id, referent_id)
        if changed:
            logger.debug(f"Assigned {student_id} -> {referent_id}")
        return changed

    def unassign(self, student_id: str) -> bool:
        """Remove student_id from its referent. Returns False if it had none."""
        self.check(student_id)
        changed = self._apply_unassign(self._state, student_id)
        if changed:
            logger.debug(f"Unassigned {student_id}")
        return changed

    def preview_assign(self, student_id: str, referent_id: str) -> AssignmentState:
        """The state assign() would produce, without touching the store."""
        self.check(student_id, referent_id)
        state = self.snapshot()
        self._apply_assign(state, student_id, referent_id)
        return state

    def preview_unassign(self, student_id: str) -> AssignmentState:
        self.check(student_id)
        state = self.snapshot()
        self._apply_unassign(state, student_id)
        return state

    # ---- snapshots -----------------------------------------------------------

    def snapshot(self) -> AssignmentState:
        return copy_state(self._state)

    def restore(self, snapshot: AssignmentState) -> None:
        """
        Replace the state wholesale with a copy of snapshot.

        Snapshots can come from drafts saved against an older roster, so ids
        no longer in the pool are dropped (with a warning) rather than
        rejected, and a student listed twice keeps its first placement.
        """
        state: AssignmentState = {rid: [] for rid in self._referents}
        placed: set = set()
        for rid, sids in snapshot.items():
            if rid not in self._referents:
                if sids:
                    logger.warning(f"Dropping {len(sids)} student(s) under unknown referent '{rid}'")
                continue
            for sid in sids:
                if sid not in self._students:
                    logger.warning(f"Dropping unknown student '{sid}' under referent '{rid}'")
                elif sid in placed:
                    logger.warning(f"Student '{sid}' listed twice; keeping first placement")
                else:
                    state[rid].append(sid)
                    placed.add(sid)
        self._state = state
