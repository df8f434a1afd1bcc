from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Tuple


@dataclass(frozen=True)
class ProposedAssignment:
    student_id:  str
    referent_id: str
    score:       int = 0


@dataclass
class PlanResult:
    status:      str                       # GREEDY/OPTIMAL/FEASIBLE/INFEASIBLE/UNKNOWN
    assignments: List[ProposedAssignment] = field(default_factory=list)
    unresolved:  List[str]                = field(default_factory=list)
    diagnostics: List[str]                = field(default_factory=list)
    stats:       Dict[str, Any]           = field(default_factory=dict)

    def pairs(self) -> List[Tuple[str, str]]:
        return [(a.student_id, a.referent_id) for a in self.assignments]

    def total_score(self) -> int:
        return sum(a.score for a in self.assignments)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
