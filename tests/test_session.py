"""Tests for the planning session controller (store + history + drafts)."""
import pytest

from referent_engine.drafts import DraftRepository, InMemoryDraftBackend
from referent_engine.models import (EngineSettings, Expertise, PlannerParams, Program, Referent,
    Student)
from referent_engine.session import PlanningSession
from referent_engine.store import InvalidReference


def _session(state=None, **kwargs) -> PlanningSession:
    students = [
        Student(id="S1", name="Amy", metadata={"projectDomain": "fintech", "language": "fr"}),
        Student(id="S2", name="Bao", metadata={"projectDomain": "edtech",  "language": "en"}),
        Student(id="S3", name="Cyd", metadata={"projectDomain": "fintech", "language": "en"}),
    ]
    referents = [
        Referent(id="R1", name="Alice", max_students=2,
                 expertise=Expertise(domains=frozenset({"fintech"}), languages=frozenset({"fr"}))),
        Referent(id="R2", name="Bob", max_students=2,
                 expertise=Expertise(domains=frozenset({"edtech"}), languages=frozenset({"en"}))),
    ]
    return PlanningSession(
        students, referents, state,
        program=Program(id="P1", name="Idea to MVP"),
        **kwargs,
    )


def test_assign_then_undo_restores_previous_state() -> None:
    session = _session()
    seed = session.state
    assert session.assign("S1", "R1")
    assert session.state["R1"] == ["S1"]
    assert session.can_undo()

    assert session.undo()
    assert session.state == seed
    assert session.redo()
    assert session.state["R1"] == ["S1"]


def test_history_holds_the_live_state() -> None:
    session = _session()
    session.assign("S1", "R1")
    session.assign("S2", "R1")
    assert session.history.current() == session.state


def test_invalid_reference_leaves_history_untouched() -> None:
    session = _session()
    with pytest.raises(InvalidReference):
        session.assign("S1", "R404")
    with pytest.raises(InvalidReference):
        session.unassign("S404")
    assert len(session.history) == 1
    assert not session.can_undo()


def test_noop_moves_do_not_push() -> None:
    session = _session({"R1": ["S1"]})
    assert session.assign("S1", "R1") is False
    assert session.unassign("S2") is False
    assert len(session.history) == 1


def test_manual_overload_allowed_and_flagged() -> None:
    session = _session({"R1": ["S1", "S2"]})
    session.assign("S3", "R1")
    w = session.workloads()["R1"]
    assert w.current_students == 3
    assert w.is_overloaded


def test_auto_assign_then_undo() -> None:
    session = _session()
    result = session.auto_assign()
    assert sorted(result.pairs()) == [("S1", "R1"), ("S2", "R2"), ("S3", "R1")]
    assert session.store.unassigned_students() == []
    assert session.undo()
    assert len(session.store.unassigned_students()) == 3


def test_auto_assign_with_optimal_strategy() -> None:
    settings = EngineSettings(planner=PlannerParams(strategy="optimal", num_workers=1))
    session = _session(settings=settings)
    result = session.auto_assign()
    assert result.status == "OPTIMAL"
    assert result.unresolved == []
    assert all(w.current_students <= w.max_students for w in session.workloads().values())


def test_auto_assign_with_nothing_to_do_pushes_nothing() -> None:
    session = _session({"R1": ["S1", "S3"], "R2": ["S2"]})
    result = session.auto_assign()
    assert result.assignments == []
    assert len(session.history) == 1


def test_reseed_clears_history() -> None:
    session = _session()
    session.assign("S1", "R1")
    session.reseed([Student(id="S9", name="New")], [Referent(id="R9", name="Dan")], {"R9": ["S9"]})
    assert session.state == {"R9": ["S9"]}
    assert not session.can_undo()
    assert not session.undo()


def test_drafts_round_trip_through_session() -> None:
    session = _session(drafts=DraftRepository(InMemoryDraftBackend()))
    session.assign("S1", "R1")
    saved = session.save_draft("after first move")
    assert saved.success
    assert [d.name for d in session.list_drafts().drafts] == ["after first move"]

    session.assign("S2", "R2")
    loaded = session.load_draft(saved.draft.id)
    assert loaded.success
    assert session.state["R2"] == []
    assert session.undo()
    assert session.state["R2"] == ["S2"]

    assert session.delete_draft(saved.draft.id).success
    assert session.list_drafts().drafts == []


def test_load_missing_draft_keeps_state() -> None:
    session = _session({"R1": ["S1"]}, drafts=DraftRepository(InMemoryDraftBackend()))
    before = session.state
    result = session.load_draft("nope")
    assert not result.success
    assert session.state == before
    assert len(session.history) == 1


def test_drafts_without_repository() -> None:
    session = _session()
    assert not session.save_draft("x").success
    assert not session.list_drafts().success
    assert not session.load_draft("x").success


def test_export_rows_carry_scores() -> None:
    session = _session({"R1": ["S1"]})
    rows = session.export_rows(assigned_at="2024-01-01T00:00:00Z")
    assert len(rows) == 1
    assert rows[0].program == "Idea to MVP"
    # fintech + fr against Alice: 40 + 25
    assert rows[0].compatibility_score == 65


def test_sixty_moves_undo_back_to_seed() -> None:
    session = _session()
    seed = session.state
    for i in range(60):
        session.assign(f"S{i % 3 + 1}", "R1" if i % 2 == 0 else "R2")
    undone = 0
    while session.undo():
        undone += 1
    assert undone == 60
    assert session.state == seed


def test_history_limit_setting_caps_undo_depth() -> None:
    session = _session(settings=EngineSettings(history_limit=5))
    for i in range(10):
        session.assign("S1", "R1" if i % 2 == 0 else "R2")
    undone = 0
    while session.undo():
        undone += 1
    assert undone == 4


def test_default_max_students_applies_to_uncapped_referents() -> None:
    students = [Student(id=f"S{i}", name=f"Student {i}") for i in range(1, 6)]
    referents = [
        Referent(id="R1", name="Uncapped"),
        Referent(id="R2", name="Zero", max_students=0),
        Referent(id="R3", name="Capped", max_students=1),
    ]
    session = PlanningSession(students, referents, settings=EngineSettings(default_max_students=2))
    assert {r.id: r.capacity for r in session.store.referents} == {"R1": 2, "R2": 2, "R3": 1}
    assert session.workloads()["R1"].max_students == 2

    result = session.auto_assign()
    assert len(result.assignments) == 5
    assert all(w.current_students <= w.max_students for w in session.workloads().values())
