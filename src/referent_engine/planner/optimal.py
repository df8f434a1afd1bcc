"""
Optimal auto-assignment — capacity-bounded maximum-weight bipartite matching.

Variables:
  x[s,r] = 1  iff  student s is proposed for referent r
           (only created for referents with free capacity)

Constraints:
  sum_r x[s,r] <= 1                  each student placed at most once
  sum_s x[s,r] <= free seats of r    never pushes a referent into overload

Objective (maximise, lexicographic via a big coefficient):
  K * (number of students placed) + total compatibility score
  with K = 100 * |students| + 1, so coverage always dominates score.

OR-Tools CP-SAT API used here:
  new_bool_var()      create a 0/1 decision variable
  add()               post a linear constraint
  add_at_most_one()   efficient at-most-one propagator for BoolVars
  maximize()          linear objective

Reference: OR-Tools CP-SAT Python API
https://developers.google.com/optimization/reference/python/sat/python/cp_model
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ortools.sat.python import cp_model

from referent_engine.models import AssignmentState, PlannerParams, Referent, Student, Weights
from referent_engine.planner.greedy import remaining_capacity, unique_students
from referent_engine.planner.result import PlanResult, ProposedAssignment
from referent_engine.scoring import ScoreMatrix, score_all

logger = logging.getLogger(__name__)


def _status_str(s: object) -> str:
    """Convert a CP-SAT solver status value to a readable string."""
    mapping = {
        int(cp_model.OPTIMAL):       "OPTIMAL",
        int(cp_model.FEASIBLE):      "FEASIBLE",
        int(cp_model.INFEASIBLE):    "INFEASIBLE",
        int(cp_model.MODEL_INVALID): "MODEL_INVALID",
    }
    return mapping.get(int(s), "UNKNOWN")  # type: ignore[call-overload]


def plan_optimal_assignment(
    unassigned_students: Sequence[Student],
    referents:           Sequence[Referent],
    current_state:       AssignmentState,
    *,
    weights: Optional[Weights]       = None,
    scores:  Optional[ScoreMatrix]   = None,
    params:  Optional[PlannerParams] = None,
) -> PlanResult:
    params    = params or PlannerParams(strategy="optimal")
    students  = unique_students(unassigned_students)
    remaining = remaining_capacity(referents, current_state)
    matrix    = scores if scores is not None else score_all(students, referents, weights)
    open_refs = [r for r in referents if remaining[r.id] > 0]

    if not students:
        return PlanResult(status="OPTIMAL")
    if not open_refs:
        return PlanResult(
            status      = "OPTIMAL",
            unresolved  = [s.id for s in students],
            diagnostics = ["No referent has free capacity."],
        )

    model = cp_model.CpModel()

    x = {
        (si, ri): model.new_bool_var(f"x_s{si}_r{ri}")
        for si in range(len(students)) for ri in range(len(open_refs))
    }

    for si in range(len(students)):
        model.add_at_most_one(x[si, ri] for ri in range(len(open_refs)))

    for ri, ref in enumerate(open_refs):
        model.add(sum(x[si, ri] for si in range(len(students))) <= remaining[ref.id])

    def pair_score(si: int, ri: int) -> int:
        return int(matrix.get(students[si].id, {}).get(open_refs[ri].id, 0))

    big_k = 100 * len(students) + 1
    model.maximize(sum(
        (big_k + pair_score(si, ri)) * var for (si, ri), var in x.items()
    ))

    solver = cp_model.CpSolver()
    solver.parameters.max_time_in_seconds = params.max_time_in_seconds
    solver.parameters.num_workers         = params.num_workers
    status = solver.solve(model)
    name   = _status_str(status)

    if name not in ("OPTIMAL", "FEASIBLE"):
        logger.warning(f"CP-SAT returned {name}; no assignments proposed")
        return PlanResult(
            status      = name,
            unresolved  = [s.id for s in students],
            diagnostics = [f"No assignment found (solver status {name})."],
        )

    accepted = [
        ProposedAssignment(
            student_id  = students[si].id,
            referent_id = open_refs[ri].id,
            score       = pair_score(si, ri),
        )
        for (si, ri), var in sorted(x.items())
        if solver.value(var) == 1
    ]
    placed     = {a.student_id for a in accepted}
    unresolved = [s.id for s in students if s.id not in placed]
    diagnostics = []
    if unresolved:
        diagnostics.append(
            f"{len(unresolved)} student(s) left unassigned: no referent with free capacity."
        )
    logger.info(
        f"CP-SAT plan ({name}): {len(accepted)} assignment(s), {len(unresolved)} unresolved"
    )
    return PlanResult(
        status      = name,
        assignments = accepted,
        unresolved  = unresolved,
        diagnostics = diagnostics,
        stats       = {
            "total_score": sum(a.score for a in accepted),
            "wall_time_s": round(solver.wall_time, 3),
        },
    )
