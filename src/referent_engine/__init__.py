"""Referent assignment engine: match students to coaching referents under capacity limits."""

from referent_engine.drafts import DraftRepository, InMemoryDraftBackend, JsonFileDraftBackend
from referent_engine.history import CommandHistory
from referent_engine.models import (AssignmentState, EngineSettings, Expertise, Program,
    Referent, Roster, Student, Weights, Workload)
from referent_engine.session import PlanningSession
from referent_engine.store import AssignmentStore, InvalidReference

__version__ = "0.1.0"

__all__ = [
    "AssignmentState",
    "AssignmentStore",
    "CommandHistory",
    "DraftRepository",
    "EngineSettings",
    "Expertise",
    "InMemoryDraftBackend",
    "InvalidReference",
    "JsonFileDraftBackend",
    "PlanningSession",
    "Program",
    "Referent",
    "Roster",
    "Student",
    "Weights",
    "Workload",
]
