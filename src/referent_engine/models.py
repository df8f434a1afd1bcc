"""
Data model layer for the referent assignment engine.

Every domain object is a plain Python dataclass. Students and referents are
frozen because they are read-only inputs for the duration of a planning
session; the roster and its settings stay mutable so callers (and tests) can
build them up field by field.

Design note — assignments hold IDs, not records:
  An AssignmentState maps a referent id to an ordered list of student ids.
  The Student and Referent records live once in the roster and are looked up
  by id, so a snapshot of the state is a cheap dict of lists.

Reference: Python Software Foundation. "dataclasses — Data Classes."
https://docs.python.org/3/library/dataclasses.html
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, List, Optional, Sequence

# referent id -> ordered student ids
AssignmentState = Dict[str, List[str]]

DEFAULT_MAX_STUDENTS = 10


def _as_str_list(value: Any) -> List[str]:
    """Metadata values may be a single string or a list of strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(v) for v in value if v is not None and str(v).strip()]
    return []


@dataclass(frozen=True)
class Student:
    id:       str
    name:     str
    email:    str            = ""
    metadata: Dict[str, Any] = field(default_factory=dict, hash=False)

    @property
    def project_domains(self) -> List[str]:
        return _as_str_list(self.metadata.get("projectDomain"))

    @property
    def languages(self) -> List[str]:
        return _as_str_list(self.metadata.get("language"))

    @property
    def availability(self) -> List[str]:
        return _as_str_list(self.metadata.get("availability"))

    @property
    def previous_referent_ids(self) -> List[str]:
        return _as_str_list(self.metadata.get("previousReferentIds"))


@dataclass(frozen=True)
class Expertise:
    domains:      FrozenSet[str] = frozenset()
    languages:    FrozenSet[str] = frozenset()
    availability: FrozenSet[str] = frozenset()

    def is_empty(self) -> bool:
        return not (self.domains or self.languages or self.availability)


@dataclass(frozen=True)
class Referent:
    id:           str
    name:         str
    email:        str           = ""
    expertise:    Expertise     = field(default_factory=Expertise)
    max_students: Optional[int] = None

    @property
    def capacity(self) -> int:
        """max_students, falling back to the default when unset or non-positive."""
        if self.max_students is None or self.max_students <= 0:
            return DEFAULT_MAX_STUDENTS
        return self.max_students


def with_default_capacity(referents: Sequence[Referent], default: int) -> List[Referent]:
    """Referents with an unset or non-positive max_students given `default` instead."""
    return [
        r if r.max_students is not None and r.max_students > 0
        else replace(r, max_students=default)
        for r in referents
    ]


@dataclass(frozen=True)
class Workload:
    referent_id:         str
    current_students:    int
    max_students:        int
    capacity_percentage: float
    available_capacity:  int
    is_at_capacity:      bool
    is_overloaded:       bool
    level:               str   # ok / warning / overloaded


@dataclass(frozen=True)
class Program:
    id:   str = ""
    name: str = ""


@dataclass
class Weights:
    """Sub-score weights for the compatibility score. Must sum to 100."""
    domain:       int = 40
    language:     int = 25
    availability: int = 20
    history:      int = 15

    def total(self) -> int:
        return self.domain + self.language + self.availability + self.history


@dataclass
class PlannerParams:
    strategy:            str   = "greedy"   # greedy | optimal
    max_time_in_seconds: float = 10.0
    # 0 = use all available cores (OR-Tools default).
    num_workers:         int   = 0


@dataclass
class EngineSettings:
    weights:              Weights       = field(default_factory=Weights)
    planner:              PlannerParams = field(default_factory=PlannerParams)
    # None keeps every entry; a number caps the undo depth.
    history_limit:        Optional[int] = None
    default_max_students: int           = DEFAULT_MAX_STUDENTS


@dataclass
class Roster:
    meta:        Dict[str, Any]  = field(default_factory=dict)
    program:     Program         = field(default_factory=Program)
    students:    List[Student]   = field(default_factory=list)
    referents:   List[Referent]  = field(default_factory=list)
    assignments: AssignmentState = field(default_factory=dict)
    settings:    EngineSettings  = field(default_factory=EngineSettings)

    def validate(self) -> None:
        w = self.settings.weights
        if min(w.domain, w.language, w.availability, w.history) < 0:
            raise ValueError("All compatibility weights must be >= 0")
        if w.total() != 100:
            raise ValueError(f"Compatibility weights must sum to 100, got {w.total()}")
        if self.settings.history_limit is not None and self.settings.history_limit < 1:
            raise ValueError("settings.history_limit must be >= 1")
        if self.settings.default_max_students < 1:
            raise ValueError("settings.default_max_students must be >= 1")
        if self.settings.planner.strategy not in ("greedy", "optimal"):
            raise ValueError(
                f"settings.planner.strategy must be 'greedy' or 'optimal', "
                f"got {self.settings.planner.strategy!r}"
            )

    def get_student(self, sid: str) -> Optional[Student]:
        return next((s for s in self.students if s.id == sid), None)

    def get_referent(self, rid: str) -> Optional[Referent]:
        return next((r for r in self.referents if r.id == rid), None)
