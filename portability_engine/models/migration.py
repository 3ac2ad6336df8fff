"""
Migration plan models for the Portability Engine.

A migration plan is an ordered, estimated and risk-rated list of steps
for moving a platform between providers. Plan status only moves forward,
with rolled_back as the single exit from in_progress.
"""

from datetime import datetime, UTC
from enum import Enum
from typing import Dict, FrozenSet, List

from pydantic import BaseModel, Field, field_validator

from portability_engine.core.exceptions import IllegalTransitionError
from portability_engine.models.provider import CloudProvider


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PlanStatus(str, Enum):
    """Migration plan status."""
    DRAFT = "draft"
    APPROVED = "approved"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ROLLED_BACK = "rolled_back"


class StepStatus(str, Enum):
    """Migration step status."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


PLAN_TRANSITIONS: Dict[PlanStatus, FrozenSet[PlanStatus]] = {
    PlanStatus.DRAFT: frozenset({PlanStatus.APPROVED}),
    PlanStatus.APPROVED: frozenset({PlanStatus.IN_PROGRESS}),
    PlanStatus.IN_PROGRESS: frozenset({PlanStatus.COMPLETED, PlanStatus.ROLLED_BACK}),
    PlanStatus.COMPLETED: frozenset(),
    PlanStatus.ROLLED_BACK: frozenset(),
}

STEP_TRANSITIONS: Dict[StepStatus, FrozenSet[StepStatus]] = {
    StepStatus.PENDING: frozenset({
        StepStatus.IN_PROGRESS, StepStatus.COMPLETED, StepStatus.SKIPPED, StepStatus.FAILED
    }),
    StepStatus.IN_PROGRESS: frozenset({StepStatus.COMPLETED, StepStatus.FAILED}),
    StepStatus.COMPLETED: frozenset(),
    StepStatus.FAILED: frozenset({StepStatus.IN_PROGRESS}),
    StepStatus.SKIPPED: frozenset(),
}


class MigrationStep(BaseModel):
    """One step of a migration plan; duration is in hours."""
    order: int = Field(..., ge=1)
    name: str
    description: str
    duration: float = Field(..., ge=0)
    automated: bool
    rollbackable: bool
    status: StepStatus = StepStatus.PENDING

    @property
    def is_settled(self) -> bool:
        return self.status in (StepStatus.COMPLETED, StepStatus.SKIPPED)


class MigrationPlanRequest(BaseModel):
    """Caller input for creating a migration plan."""
    platform_id: str
    source_provider: CloudProvider
    target_provider: CloudProvider

    @field_validator('platform_id')
    @classmethod
    def platform_id_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError('platform_id must not be blank')
        return v.strip()


class MigrationPlan(BaseModel):
    """Ordered plan for moving a platform from one provider to another."""
    id: str
    tenant_id: str
    platform_id: str
    source_provider: CloudProvider
    target_provider: CloudProvider
    steps: List[MigrationStep]
    estimated_duration: float
    estimated_cost: float
    risk_level: RiskLevel
    rollback_plan: List[str]
    status: PlanStatus = PlanStatus.DRAFT
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator('steps')
    @classmethod
    def steps_contiguous(cls, v):
        orders = [step.order for step in v]
        if orders != list(range(1, len(v) + 1)):
            raise ValueError('step order values must be exactly 1..N')
        return v

    def transition_to(self, status: PlanStatus):
        if status not in PLAN_TRANSITIONS[self.status]:
            raise IllegalTransitionError("migration plan", self.status.value, status.value)
        self.status = status
        self.updated_at = datetime.now(UTC)

    def get_step(self, order: int) -> MigrationStep:
        if order < 1 or order > len(self.steps):
            raise KeyError(order)
        return self.steps[order - 1]

    def set_step_status(self, order: int, status: StepStatus):
        step = self.get_step(order)
        if status not in STEP_TRANSITIONS[step.status]:
            raise IllegalTransitionError(
                f"step {order} ({step.name})", step.status.value, status.value
            )
        step.status = status
        self.updated_at = datetime.now(UTC)
