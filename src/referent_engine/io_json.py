"""
JSON serialisation / deserialisation for rosters and assignment states.

Uses only the Python standard-library json module. Basic structural
validation is applied before domain objects are built, so a malformed roster
fails with a ConfigError naming the offending key instead of a KeyError deep
inside the planner.

Reference: Python docs — json
https://docs.python.org/3/library/json.html
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from referent_engine.models import (AssignmentState, EngineSettings, Expertise,
    PlannerParams, Program, Referent, Roster, Student, Weights)


class ConfigError(ValueError):
    """Raised when the roster JSON is structurally invalid."""


def _require(obj: Dict[str, Any], key: str, ctx: str) -> Any:
    if key not in obj:
        raise ConfigError(f"Missing required key '{key}' in {ctx}")
    return obj[key]


def _as_list(obj: Any, ctx: str) -> List[Any]:
    if not isinstance(obj, list):
        raise ConfigError(f"Expected a JSON array in {ctx}, got {type(obj).__name__}")
    return obj


def _as_dict(obj: Any, ctx: str) -> Dict[str, Any]:
    if not isinstance(obj, dict):
        raise ConfigError(
            f"Expected a JSON object in {ctx}, got {type(obj).__name__}"
        )
    return obj


def _check_unique_ids(items: list, ctx: str) -> None:
    seen: set = set()
    dupes: set = set()
    for item in items:
        item_id = getattr(item, "id", None)
        if not item_id:
            raise ConfigError(f"Empty or missing 'id' in {ctx}")
        if item_id in seen:
            dupes.add(item_id)
        seen.add(item_id)
    if dupes:
        raise ConfigError(f"Duplicate ids in {ctx}: {sorted(dupes)}")


def _str_set(raw: Any, ctx: str) -> frozenset:
    return frozenset(str(x) for x in _as_list(raw, ctx))


def settings_from_dict(raw: Dict[str, Any]) -> EngineSettings:
    raw = _as_dict(raw, "settings")
    weights_raw = _as_dict(raw.get("weights") or {}, "settings.weights")
    planner_raw = _as_dict(raw.get("planner") or {}, "settings.planner")
    defaults = Weights()
    return EngineSettings(
        weights = Weights(
            domain       = int(weights_raw.get("domain",       defaults.domain)),
            language     = int(weights_raw.get("language",     defaults.language)),
            availability = int(weights_raw.get("availability", defaults.availability)),
            history      = int(weights_raw.get("history",      defaults.history)),
        ),
        planner = PlannerParams(
            strategy            = str(planner_raw.get("strategy", "greedy")),
            max_time_in_seconds = float(planner_raw.get("max_time_in_seconds", 10.0)),
            num_workers         = int(planner_raw.get("num_workers", 0)),
        ),
        history_limit        = (
            int(raw["history_limit"]) if raw.get("history_limit") is not None else None
        ),
        default_max_students = int(raw.get("default_max_students", 10)),
    )


def state_from_dict(raw: Any, ctx: str = "assignments") -> AssignmentState:
    """Parse a {referent_id: [student_id, ...]} object."""
    raw = _as_dict(raw, ctx)
    return {
        str(rid): [str(sid) for sid in _as_list(sids, f"{ctx}.{rid}")]
        for rid, sids in raw.items()
    }


def state_to_dict(state: AssignmentState) -> Dict[str, List[str]]:
    return {rid: list(sids) for rid, sids in state.items()}


def roster_from_dict(raw: Any) -> Roster:
    raw  = _as_dict(raw, "root")
    meta = _as_dict(raw.get("meta") or {}, "meta")

    program_raw   = _as_dict(raw.get("program") or {}, "program")
    students_raw  = _as_list(_require(raw, "students",  "root"), "students")
    referents_raw = _as_list(_require(raw, "referents", "root"), "referents")
    settings      = settings_from_dict(raw.get("settings") or {})

    students = []
    for i, s in enumerate(students_raw):
        s = _as_dict(s, f"students[{i}]")
        students.append(Student(
            id       = str(_require(s, "id",   f"students[{i}]")),
            name     = str(_require(s, "name", f"students[{i}]")),
            email    = str(s.get("email") or ""),
            metadata = dict(_as_dict(s.get("metadata") or {}, f"students[{i}].metadata")),
        ))

    referents = []
    for i, r in enumerate(referents_raw):
        r   = _as_dict(r, f"referents[{i}]")
        ctx = f"referents[{i}].expertise"
        exp = _as_dict(r.get("expertise") or {}, ctx)
        max_students = r.get("max_students")
        referents.append(Referent(
            id        = str(_require(r, "id",   f"referents[{i}]")),
            name      = str(_require(r, "name", f"referents[{i}]")),
            email     = str(r.get("email") or ""),
            expertise = Expertise(
                domains      = _str_set(exp.get("domains")      or [], f"{ctx}.domains"),
                languages    = _str_set(exp.get("languages")    or [], f"{ctx}.languages"),
                availability = _str_set(exp.get("availability") or [], f"{ctx}.availability"),
            ),
            # unset, 0 or negative all mean "use the roster default"
            max_students = (
                int(max_students) if max_students is not None and int(max_students) > 0
                else settings.default_max_students
            ),
        ))

    roster = Roster(
        meta        = meta,
        program     = Program(
            id   = str(program_raw.get("id", "")),
            name = str(program_raw.get("name", "")),
        ),
        students    = students,
        referents   = referents,
        assignments = state_from_dict(raw.get("assignments") or {}),
        settings    = settings,
    )
    try:
        roster.validate()
    except ValueError as e:
        raise ConfigError(str(e)) from e
    _check_unique_ids(roster.students,  "students")
    _check_unique_ids(roster.referents, "referents")
    return roster


def roster_to_dict(roster: Roster) -> Dict[str, Any]:
    s = roster.settings
    return {
        "meta":    dict(roster.meta),
        "program": {"id": roster.program.id, "name": roster.program.name},
        "students": [
            {"id": st.id, "name": st.name, "email": st.email, "metadata": dict(st.metadata)}
            for st in roster.students
        ],
        "referents": [
            {
                "id":           r.id,
                "name":         r.name,
                "email":        r.email,
                "max_students": r.max_students,
                "expertise": {
                    # sorted so the file is stable across runs
                    "domains":      sorted(r.expertise.domains),
                    "languages":    sorted(r.expertise.languages),
                    "availability": sorted(r.expertise.availability),
                },
            }
            for r in roster.referents
        ],
        "assignments": state_to_dict(roster.assignments),
        "settings": {
            "weights": {
                "domain":       s.weights.domain,
                "language":     s.weights.language,
                "availability": s.weights.availability,
                "history":      s.weights.history,
            },
            "planner": {
                "strategy":            s.planner.strategy,
                "max_time_in_seconds": s.planner.max_time_in_seconds,
                "num_workers":         s.planner.num_workers,
            },
            "history_limit":        s.history_limit,
            "default_max_students": s.default_max_students,
        },
    }


def load_roster(path: str | Path) -> Roster:
    """Load and validate a Roster from a JSON file."""
    with Path(path).open("r", encoding="utf-8") as f:
        try:
            raw = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    return roster_from_dict(raw)


def save_roster(roster: Roster, path: str | Path) -> None:
    """Serialise a Roster to JSON, creating parent directories if needed."""
    roster.validate()
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        # ensure_ascii=False preserves accented names.
        json.dump(roster_to_dict(roster), f, ensure_ascii=False, indent=2)
