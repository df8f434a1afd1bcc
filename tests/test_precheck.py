"""Tests for roster precheck."""
import pytest

from referent_engine.models import Expertise, Referent, Roster, Student
from referent_engine.planner.precheck import PrecheckError, ensure_ok, precheck


def _roster_ok() -> Roster:
    roster = Roster()
    roster.students  = [Student(id="S1", name="Amy"), Student(id="S2", name="Bao")]
    roster.referents = [
        Referent(id="R1", name="Alice", max_students=2,
                 expertise=Expertise(domains=frozenset({"fintech"}))),
    ]
    roster.assignments = {"R1": ["S1"]}
    return roster


def test_ok_roster_passes() -> None:
    errors, warnings = precheck(_roster_ok())
    assert errors == []
    assert warnings == []


def test_unknown_ids_in_assignments() -> None:
    roster = _roster_ok()
    roster.assignments = {"R1": ["S1", "GHOST"], "R9": []}
    errors, _ = precheck(roster)
    assert any("GHOST" in e for e in errors)
    assert any("R9" in e for e in errors)


def test_student_under_two_referents() -> None:
    roster = _roster_ok()
    roster.referents.append(Referent(id="R2", name="Bob", expertise=Expertise(domains=frozenset({"x"}))))
    roster.assignments = {"R1": ["S1"], "R2": ["S1"]}
    errors, _ = precheck(roster)
    assert any("both" in e for e in errors)


def test_duplicate_ids() -> None:
    roster = _roster_ok()
    roster.students.append(Student(id="S1", name="Again"))
    errors, _ = precheck(roster)
    assert any("Duplicate student" in e for e in errors)


def test_capacity_warning() -> None:
    roster = _roster_ok()
    roster.students += [Student(id="S3", name="Cy"), Student(id="S4", name="Di")]
    errors, warnings = precheck(roster)
    assert errors == []
    assert any("not enough capacity" in w.lower() for w in warnings)


def test_overloaded_and_empty_expertise_warnings() -> None:
    roster = _roster_ok()
    roster.referents.append(Referent(id="R2", name="Bob", max_students=1))
    roster.assignments = {"R1": ["S1"], "R2": ["S2"]}
    roster.students.append(Student(id="S3", name="Cy"))
    roster.assignments["R2"].append("S3")
    _, warnings = precheck(roster)
    assert any("over capacity" in w and "R2" in w for w in warnings)
    assert any("no expertise" in w and "R2" in w for w in warnings)


def test_ensure_ok_raises_on_errors() -> None:
    roster = _roster_ok()
    roster.assignments = {"R404": ["S1"]}
    with pytest.raises(PrecheckError):
        ensure_ok(roster)
