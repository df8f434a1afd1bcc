"""Tests for workload computation."""
from referent_engine.models import Referent
from referent_engine.workload import compute_workloads, overloaded_referents, workload_level


def _referents():
    return [
        Referent(id="R1", name="Alice", max_students=5),
        Referent(id="R2", name="Bob",   max_students=2),
        Referent(id="R3", name="Carol"),               # default capacity 10
    ]


def test_every_referent_gets_a_workload() -> None:
    workloads = compute_workloads(_referents(), {"R1": ["S1"]})
    assert set(workloads) == {"R1", "R2", "R3"}
    assert workloads["R2"].current_students == 0
    assert workloads["R3"].max_students == 10


def test_capacity_flags() -> None:
    state = {"R1": ["S1", "S2", "S3", "S4"], "R2": ["S5", "S6", "S7"]}
    workloads = compute_workloads(_referents(), state)

    r1 = workloads["R1"]
    assert r1.capacity_percentage == 80.0
    assert r1.is_at_capacity and not r1.is_overloaded
    assert r1.available_capacity == 1
    assert r1.level == "warning"

    r2 = workloads["R2"]
    assert r2.is_overloaded
    assert r2.available_capacity == 0
    assert r2.level == "overloaded"

    assert workloads["R3"].level == "ok"
    assert overloaded_referents(workloads) == ["R2"]


def test_unknown_referents_in_state_are_ignored() -> None:
    workloads = compute_workloads(_referents(), {"GHOST": ["S1"]})
    assert "GHOST" not in workloads
    assert all(w.current_students == 0 for w in workloads.values())


def test_non_positive_capacity_falls_back_to_default() -> None:
    workloads = compute_workloads([Referent(id="R0", name="Zero", max_students=0)], {})
    assert workloads["R0"].max_students == 10


def test_workload_level_thresholds() -> None:
    assert workload_level(79.9) == "ok"
    assert workload_level(80) == "warning"
    assert workload_level(100) == "overloaded"
