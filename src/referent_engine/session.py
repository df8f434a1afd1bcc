"""
One planning session: the assignment store, its undo history and (optionally)
a draft repository for a single program.

Every user mutation follows the same order:
  1. validate            InvalidReference is raised before anything changes
  2. history.push_state  the state the mutation will produce
  3. store mutation      the live state catches up with the history

so the history never holds a state the store could not reach, and undo
always lands on the state from before the mutation.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Union

from referent_engine.drafts import DraftRepository, DraftResult
from referent_engine.export import ExportRow, build_rows
from referent_engine.history import CommandHistory
from referent_engine.models import (AssignmentState, EngineSettings, Program, Referent,
    Roster, Student, Workload, with_default_capacity)
from referent_engine.planner.api import plan
from referent_engine.planner.result import PlanResult
from referent_engine.scoring import ScoreMatrix, score_all
from referent_engine.store import AssignmentStore
from referent_engine.workload import compute_workloads

logger = logging.getLogger(__name__)


class PlanningSession:
    def __init__(
        self,
        students:  Sequence[Student],
        referents: Sequence[Referent],
        state:     Optional[AssignmentState] = None,
        *,
        program:   Optional[Program]         = None,
        settings:  Optional[EngineSettings]  = None,
        drafts:    Optional[DraftRepository] = None,
    ) -> None:
        self.program  = program or Program()
        self.settings = settings or EngineSettings()
        self._drafts  = drafts
        self._store   = AssignmentStore(students, self._with_defaults(referents), state)
        self._history = CommandHistory(self._store.snapshot(), limit=self.settings.history_limit)

    @classmethod
    def from_roster(
        cls,
        roster: Roster,
        drafts: Optional[DraftRepository] = None,
    ) -> "PlanningSession":
        return cls(
            roster.students,
            roster.referents,
            roster.assignments,
            program  = roster.program,
            settings = roster.settings,
            drafts   = drafts,
        )

    def _with_defaults(self, referents: Sequence[Referent]) -> List[Referent]:
        return with_default_capacity(referents, self.settings.default_max_students)

    # ---- read side -----------------------------------------------------------

    @property
    def store(self) -> AssignmentStore:
        return self._store

    @property
    def history(self) -> CommandHistory:
        return self._history

    @property
    def state(self) -> AssignmentState:
        return self._store.snapshot()

    def workloads(self) -> Dict[str, Workload]:
        return compute_workloads(self._store.referents, self._store.snapshot())

    def scores(self) -> ScoreMatrix:
        return score_all(self._store.students, self._store.referents, self.settings.weights)

    def can_undo(self) -> bool:
        return self._history.can_undo()

    def can_redo(self) -> bool:
        return self._history.can_redo()

    # ---- manual edits --------------------------------------------------------

    def assign(self, student_id: str, referent_id: str) -> bool:
        """Drag-and-drop move. May overload a referent; that is the caller's call."""
        next_state = self._store.preview_assign(student_id, referent_id)
        if next_state == self._store.snapshot():
            return False
        self._history.push_state(next_state)
        return self._store.assign(student_id, referent_id)

    def unassign(self, student_id: str) -> bool:
        next_state = self._store.preview_unassign(student_id)
        if next_state == self._store.snapshot():
            return False
        self._history.push_state(next_state)
        return self._store.unassign(student_id)

    # ---- auto-assign ---------------------------------------------------------

    def auto_assign(self, strategy: Optional[str] = None) -> PlanResult:
        strategy = strategy or self.settings.planner.strategy
        result = plan(
            self._store.unassigned_students(),
            self._store.referents,
            self._store.snapshot(),
            strategy,
            weights = self.settings.weights,
            params  = self.settings.planner,
        )
        if not result.assignments:
            return result

        next_state = self._store.snapshot()
        for a in result.assignments:
            next_state.setdefault(a.referent_id, []).append(a.student_id)
        self._history.push_state(next_state)
        self._store.restore(next_state)
        logger.info(
            f"Auto-assign ({strategy}) placed {len(result.assignments)} student(s) "
            f"in program {self.program.id or '-'}"
        )
        return result

    # ---- history -------------------------------------------------------------

    def undo(self) -> bool:
        previous = self._history.undo(self._store.snapshot())
        if previous is None:
            return False
        self._store.restore(previous)
        return True

    def redo(self) -> bool:
        following = self._history.redo(self._store.snapshot())
        if following is None:
            return False
        self._store.restore(following)
        return True

    # ---- external changes ----------------------------------------------------

    def reseed(
        self,
        students:  Sequence[Student],
        referents: Sequence[Referent],
        state:     AssignmentState,
    ) -> None:
        """
        Accept a full replacement from outside (change feed, reload).

        Old history entries may mention students that are gone, so the
        history restarts from the new seed.
        """
        self._store.reseed(students, self._with_defaults(referents), state)
        self._history.clear(self._store.snapshot())
        logger.info(
            f"Session reseeded: {len(students)} student(s), {len(referents)} referent(s)"
        )

    # ---- drafts --------------------------------------------------------------

    def _no_drafts(self) -> DraftResult:
        return DraftResult(success=False, error="No draft repository configured")

    def save_draft(self, name: str) -> DraftResult:
        if self._drafts is None:
            return self._no_drafts()
        return self._drafts.save(name, self._store.snapshot(), self.program.id)

    def list_drafts(self) -> DraftResult:
        if self._drafts is None:
            return self._no_drafts()
        return self._drafts.list(self.program.id)

    def load_draft(self, draft_id: str) -> DraftResult:
        """Load a draft into the live state; undo returns to the pre-load state."""
        if self._drafts is None:
            return self._no_drafts()
        result = self._drafts.load(draft_id)
        if result.success and result.state is not None:
            self._history.push_state(self._normalised(result.state))
            self._store.restore(result.state)
        return result

    def delete_draft(self, draft_id: str) -> DraftResult:
        if self._drafts is None:
            return self._no_drafts()
        return self._drafts.delete(draft_id)

    def _normalised(self, state: AssignmentState) -> AssignmentState:
        # what restore() would turn state into, so history and store agree
        scratch = AssignmentStore(self._store.students, self._store.referents, state)
        return scratch.snapshot()

    # ---- export --------------------------------------------------------------

    def export_rows(
        self,
        assigned_at:   Union[str, datetime, date, None] = None,
        include_score: bool                             = True,
    ) -> List[ExportRow]:
        return build_rows(
            self._store.snapshot(),
            self._store.students,
            self._store.referents,
            self.program.name,
            assigned_at = assigned_at,
            scores      = self.scores() if include_score else None,
        )
