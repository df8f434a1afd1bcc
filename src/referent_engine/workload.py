"""
Referent workload derived from an assignment state.

Workloads are never stored: every caller recomputes them from the state it
is looking at, so they cannot drift from the assignments they describe.
Overload is a warning, not an error: a manual move may push a referent past
max_students, only the planners are forbidden from doing so.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

from referent_engine.models import AssignmentState, Referent, Workload

AT_CAPACITY_PCT = 80.0
OVERLOADED_PCT  = 100.0


def workload_level(capacity_percentage: float) -> str:
    if capacity_percentage >= OVERLOADED_PCT:
        return "overloaded"
    if capacity_percentage >= AT_CAPACITY_PCT:
        return "warning"
    return "ok"


def compute_workloads(
    referents: Sequence[Referent],
    state:     AssignmentState,
) -> Dict[str, Workload]:
    """referent_id -> Workload for every referent, assigned students or not."""
    workloads: Dict[str, Workload] = {}
    for r in referents:
        current = len(state.get(r.id, ()))
        maximum = r.capacity
        pct     = current * 100.0 / maximum
        workloads[r.id] = Workload(
            referent_id         = r.id,
            current_students    = current,
            max_students        = maximum,
            capacity_percentage = pct,
            available_capacity  = max(0, maximum - current),
            is_at_capacity      = pct >= AT_CAPACITY_PCT,
            is_overloaded       = pct >= OVERLOADED_PCT,
            level               = workload_level(pct),
        )
    return workloads


def overloaded_referents(workloads: Dict[str, Workload]) -> List[str]:
    return sorted(rid for rid, w in workloads.items() if w.is_overloaded)
