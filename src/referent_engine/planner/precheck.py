"""
Roster checks that run before a planning session is opened.

Catching broken rosters here means the coordinator sees plain-English
messages rather than an InvalidReference halfway through a session.
errors   = the roster cannot be planned as-is
warnings = planning works, but the result will disappoint
"""

from __future__ import annotations

from collections import Counter
from typing import Dict, List, Tuple

from referent_engine.models import Roster
from referent_engine.workload import compute_workloads


class PrecheckError(ValueError):
    """Raised by ensure_ok() when hard errors are present."""


def _duplicates(ids: List[str]) -> List[str]:
    return sorted(i for i, n in Counter(ids).items() if n > 1)


def precheck(roster: Roster) -> Tuple[List[str], List[str]]:
    """Return (errors, warnings)."""
    errors:   List[str] = []
    warnings: List[str] = []

    student_ids  = [s.id for s in roster.students]
    referent_ids = [r.id for r in roster.referents]

    dup = _duplicates(student_ids)
    if dup:
        errors.append(f"Duplicate student ids: {dup}")
    dup = _duplicates(referent_ids)
    if dup:
        errors.append(f"Duplicate referent ids: {dup}")

    known_students  = set(student_ids)
    known_referents = set(referent_ids)
    seen_under: Dict[str, str] = {}

    for rid, sids in roster.assignments.items():
        if rid not in known_referents:
            errors.append(f"Assignments reference unknown referent '{rid}'.")
        for sid in sids:
            if sid not in known_students:
                errors.append(f"Referent '{rid}' lists unknown student '{sid}'.")
            elif sid in seen_under:
                errors.append(
                    f"Student '{sid}' is assigned to both '{seen_under[sid]}' and '{rid}'."
                )
            else:
                seen_under[sid] = rid

    if not roster.referents:
        if roster.students:
            warnings.append("No referents — every student will stay unassigned.")
        return errors, warnings

    workloads = compute_workloads(roster.referents, roster.assignments)
    for rid, w in workloads.items():
        if w.is_overloaded:
            warnings.append(
                f"Referent '{rid}' is over capacity "
                f"({w.current_students}/{w.max_students})."
            )

    for r in roster.referents:
        if r.expertise.is_empty():
            warnings.append(
                f"Referent '{r.id}' has no expertise data — "
                f"every compatibility score against them will be 0."
            )

    unassigned = len(known_students - set(seen_under))
    free       = sum(w.available_capacity for w in workloads.values())
    if unassigned > free:
        warnings.append(
            f"Not enough capacity: {unassigned} unassigned student(s) but only "
            f"{free} free seat(s); {unassigned - free} will stay unresolved."
        )

    return errors, warnings


def ensure_ok(roster: Roster) -> None:
    errors, _ = precheck(roster)
    if errors:
        raise PrecheckError("\n".join(errors))
