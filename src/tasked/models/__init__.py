"""Data models for tasked."""

from .plan import Plan, PlanState, PlanSummary, Step, StepStatus

__all__ = ["Plan", "PlanState", "PlanSummary", "Step", "StepStatus"]
