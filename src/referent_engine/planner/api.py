from __future__ import annotations

from typing import Optional, Sequence

from referent_engine.models import AssignmentState, PlannerParams, Referent, Student, Weights
from referent_engine.planner.greedy import plan_auto_assignment
from referent_engine.planner.optimal import plan_optimal_assignment
from referent_engine.planner.result import PlanResult
from referent_engine.scoring import ScoreMatrix


def plan(
    unassigned_students: Sequence[Student],
    referents:           Sequence[Referent],
    current_state:       AssignmentState,
    strategy:            str                     = "greedy",
    *,
    weights:             Optional[Weights]       = None,
    scores:              Optional[ScoreMatrix]   = None,
    params:              Optional[PlannerParams] = None,
) -> PlanResult:
    strategy = (strategy or "").lower()
    if strategy == "greedy":
        return plan_auto_assignment(
            unassigned_students, referents, current_state,
            weights=weights, scores=scores,
        )
    if strategy in ("optimal", "cp-sat"):
        return plan_optimal_assignment(
            unassigned_students, referents, current_state,
            weights=weights, scores=scores, params=params,
        )
    raise ValueError(f"Unknown planner strategy: {strategy!r}")
