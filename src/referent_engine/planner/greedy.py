"""
Greedy capacity-bounded auto-assignment.

1. workloads of every referent from the current state
2. score_all(unassigned students, referents)
3. candidates = every (student, referent, score) with current < max_students
4. sort: score desc, remaining capacity desc, referent id, student id
5. walk the list, accept when the student is still free and the referent
   still has room in this pass
6. students left over are unresolved

This is a heuristic, not a maximum-weight matching: each accepted pair is the
best one still available at that point of the walk, which keeps the result
easy to explain ("this was the student's best open referent") and runs in
O(n*m log(n*m)). planner.optimal solves the same problem exactly.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from referent_engine.models import AssignmentState, Referent, Student, Weights
from referent_engine.planner.result import PlanResult, ProposedAssignment
from referent_engine.scoring import ScoreMatrix, score_all
from referent_engine.workload import compute_workloads

logger = logging.getLogger(__name__)


def remaining_capacity(
    referents: Sequence[Referent],
    state:     AssignmentState,
) -> Dict[str, int]:
    """Free seats per referent; overloaded referents have 0, never negative."""
    workloads = compute_workloads(referents, state)
    return {rid: w.available_capacity for rid, w in workloads.items()}


def unique_students(students: Sequence[Student]) -> List[Student]:
    seen: set = set()
    out:  List[Student] = []
    for s in students:
        if s.id not in seen:
            seen.add(s.id)
            out.append(s)
    return out


def plan_auto_assignment(
    unassigned_students: Sequence[Student],
    referents:           Sequence[Referent],
    current_state:       AssignmentState,
    *,
    weights: Optional[Weights]     = None,
    scores:  Optional[ScoreMatrix] = None,
) -> PlanResult:
    students  = unique_students(unassigned_students)
    remaining = remaining_capacity(referents, current_state)
    matrix    = scores if scores is not None else score_all(students, referents, weights)

    candidates = [
        (matrix.get(s.id, {}).get(r.id, 0), r.id, s.id)
        for s in students
        for r in referents
        if remaining[r.id] > 0
    ]
    # capacity tie-break uses the free seats before this pass starts
    start = dict(remaining)
    candidates.sort(key=lambda c: (-c[0], -start[c[1]], c[1], c[2]))

    placed: set = set()
    accepted: List[ProposedAssignment] = []
    for sc, rid, sid in candidates:
        if sid in placed or remaining[rid] <= 0:
            continue
        accepted.append(ProposedAssignment(student_id=sid, referent_id=rid, score=sc))
        placed.add(sid)
        remaining[rid] -= 1

    unresolved = [s.id for s in students if s.id not in placed]
    diagnostics: List[str] = []
    if unresolved:
        diagnostics.append(
            f"{len(unresolved)} student(s) left unassigned: no referent with free capacity."
        )
    logger.info(
        f"Greedy plan: {len(accepted)} assignment(s), {len(unresolved)} unresolved"
    )
    return PlanResult(
        status      = "GREEDY",
        assignments = accepted,
        unresolved  = unresolved,
        diagnostics = diagnostics,
        stats       = {
            "candidates":  len(candidates),
            "total_score": sum(a.score for a in accepted),
        },
    )
