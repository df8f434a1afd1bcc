from referent_engine.planner.api import plan
from referent_engine.planner.greedy import plan_auto_assignment
from referent_engine.planner.optimal import plan_optimal_assignment
from referent_engine.planner.precheck import PrecheckError, ensure_ok, precheck
from referent_engine.planner.result import PlanResult, ProposedAssignment

__all__ = [
    "PlanResult",
    "PrecheckError",
    "ProposedAssignment",
    "ensure_ok",
    "plan",
    "plan_auto_assignment",
    "plan_optimal_assignment",
    "precheck",
]
