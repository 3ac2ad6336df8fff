"""
Migration planner.

Builds ordered, estimated and risk-rated plans for moving a platform
between providers, and records execution progress reported back by
whatever carries the plan out.
"""

import logging
from datetime import datetime, UTC
from typing import Any, List, Mapping, Optional, Union

from portability_engine.catalog.loader import CatalogLoader
from portability_engine.core.exceptions import (
    IllegalTransitionError,
    MigrationPlanNotFoundError,
    ValidationError,
)
from portability_engine.core.validation import build_request, require_tenant
from portability_engine.models.migration import (
    MigrationPlan,
    MigrationPlanRequest,
    MigrationStep,
    PlanStatus,
    RiskLevel,
    StepStatus,
)
from portability_engine.models.provider import (
    CloudProvider,
    MigrationComplexity,
    ProviderAbstraction,
)
from portability_engine.providers.registry import ProviderRegistry
from portability_engine.storage.repository import InMemoryRepository, Repository
from portability_engine.utils.helpers import generate_id
from portability_engine.utils.logging import AuditLogger

logger = logging.getLogger(__name__)


def assess_risk(source: ProviderAbstraction, target: ProviderAbstraction) -> RiskLevel:
    """
    Rate the risk of moving between two providers.

    High when either endpoint is air-gapped; medium when either endpoint
    is of medium or high migration complexity; low otherwise.
    """
    endpoints = (source, target)
    if any(p.type == CloudProvider.AIR_GAPPED for p in endpoints):
        return RiskLevel.HIGH
    if any(p.migration_complexity != MigrationComplexity.LOW for p in endpoints):
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


class MigrationPlanner:
    """Creates migration plans and tracks their lifecycle."""

    def __init__(
        self,
        registry: ProviderRegistry,
        repository: Optional[Repository[MigrationPlan]] = None,
        loader: Optional[CatalogLoader] = None,
        audit_logger: Optional[AuditLogger] = None
    ):
        self.registry = registry
        self.repository = repository if repository is not None else InMemoryRepository()
        self.loader = loader or CatalogLoader()
        self.audit_logger = audit_logger or AuditLogger()

    def create_plan(
        self,
        tenant_id: str,
        request: Union[MigrationPlanRequest, Mapping[str, Any]]
    ) -> MigrationPlan:
        """
        Create a draft plan for moving a platform between two providers.

        Args:
            tenant_id: Owning tenant
            request: MigrationPlanRequest or an equivalent mapping

        Returns:
            The new plan in draft status

        Raises:
            ValidationError: If source and target are the same provider
            ProviderNotFoundError: If either provider is not in the registry
        """
        tenant_id = require_tenant(tenant_id)
        request = build_request(MigrationPlanRequest, request)

        if request.source_provider == request.target_provider:
            raise ValidationError(
                "Source and target provider must differ",
                failed_checks=["target_provider"]
            )

        source = self.registry.get_provider(request.source_provider)
        target = self.registry.get_provider(request.target_provider)
        template = self.loader.migration

        steps = [
            MigrationStep(
                order=index,
                name=step.name,
                description=step.description,
                duration=step.duration,
                automated=step.automated,
                rollbackable=step.rollbackable,
            )
            for index, step in enumerate(template.steps, start=1)
        ]

        plan = MigrationPlan(
            id=generate_id("migration"),
            tenant_id=tenant_id,
            platform_id=request.platform_id,
            source_provider=source.type,
            target_provider=target.type,
            steps=steps,
            estimated_duration=sum(step.duration for step in steps),
            estimated_cost=template.cost_multiplier * target.cost_estimate.monthly,
            risk_level=assess_risk(source, target),
            rollback_plan=list(template.rollback_plan),
        )
        self.repository.add(plan)

        logger.info(
            f"Created migration plan {plan.id}: {source.type.value} -> {target.type.value} "
            f"({plan.risk_level.value} risk, {plan.estimated_duration:g}h)"
        )
        self._audit("migration.created", plan, {
            "source_provider": source.type.value,
            "target_provider": target.type.value,
            "risk_level": plan.risk_level.value,
        })
        return plan

    def approve_plan(self, plan_id: str) -> MigrationPlan:
        """Approve a draft plan."""
        return self._transition(plan_id, PlanStatus.APPROVED, "migration.approved")

    def start_plan(self, plan_id: str) -> MigrationPlan:
        """Record that execution of an approved plan has begun."""
        return self._transition(plan_id, PlanStatus.IN_PROGRESS, "migration.started")

    def record_step_progress(
        self,
        plan_id: str,
        order: int,
        status: StepStatus
    ) -> MigrationPlan:
        """
        Record a status change for one step of a running plan.

        Steps move forward from pending to in_progress, completed, skipped
        or failed, and from in_progress to completed or failed. A failed
        step may be retried by moving it back to in_progress.
        """
        plan = self.get_plan(plan_id)
        try:
            status = StepStatus(status)
        except ValueError:
            raise ValidationError(
                f"Unknown step status: {status}",
                failed_checks=["status"]
            )

        if plan.status != PlanStatus.IN_PROGRESS:
            raise IllegalTransitionError(
                "migration plan step",
                plan.status.value,
                status.value,
                details={"reason": "plan is not in progress"}
            )
        try:
            plan.set_step_status(order, status)
        except KeyError:
            raise ValidationError(
                f"Plan {plan_id} has no step {order}",
                failed_checks=["order"]
            )
        self.repository.update(plan)

        logger.info(f"Migration plan {plan_id} step {order} -> {status.value}")
        self._audit("migration.step_updated", plan, {"order": order, "status": status.value})
        return plan

    def complete_plan(self, plan_id: str) -> MigrationPlan:
        """Mark a running plan completed once every step is completed or skipped."""
        plan = self.get_plan(plan_id)
        unsettled = [step.order for step in plan.steps if not step.is_settled]
        if unsettled and plan.status == PlanStatus.IN_PROGRESS:
            raise IllegalTransitionError(
                "migration plan",
                plan.status.value,
                PlanStatus.COMPLETED.value,
                details={"unsettled_steps": unsettled}
            )
        return self._transition(plan_id, PlanStatus.COMPLETED, "migration.completed", plan)

    def rollback_plan(self, plan_id: str) -> MigrationPlan:
        """
        Roll back a running plan.

        A step still in progress is marked failed and pending steps are
        skipped. Refused when a completed step cannot be rolled back.
        """
        plan = self.get_plan(plan_id)
        plan.transition_to(PlanStatus.ROLLED_BACK)

        blocking = [
            step.order for step in plan.steps
            if step.status == StepStatus.COMPLETED and not step.rollbackable
        ]
        if blocking:
            raise IllegalTransitionError(
                "migration plan",
                PlanStatus.IN_PROGRESS.value,
                PlanStatus.ROLLED_BACK.value,
                details={"non_rollbackable_steps": blocking}
            )

        for step in plan.steps:
            if step.status == StepStatus.IN_PROGRESS:
                step.status = StepStatus.FAILED
            elif step.status == StepStatus.PENDING:
                step.status = StepStatus.SKIPPED
        plan.updated_at = datetime.now(UTC)
        self.repository.update(plan)

        logger.warning(f"Migration plan {plan_id} rolled back")
        self._audit("migration.rolled_back", plan, {"rollback_plan": plan.rollback_plan})
        return plan

    def get_plan(self, plan_id: str) -> MigrationPlan:
        plan = self.repository.get(plan_id)
        if plan is None:
            raise MigrationPlanNotFoundError(plan_id)
        return plan

    def list_plans(self, tenant_id: str) -> List[MigrationPlan]:
        """Return a tenant's plans in creation order."""
        return self.repository.list(tenant_id)

    def _transition(
        self,
        plan_id: str,
        status: PlanStatus,
        event_type: str,
        plan: Optional[MigrationPlan] = None
    ) -> MigrationPlan:
        if plan is None:
            plan = self.get_plan(plan_id)
        plan.transition_to(status)
        self.repository.update(plan)

        logger.info(f"Migration plan {plan_id} -> {status.value}")
        self._audit(event_type, plan)
        return plan

    def _audit(self, event_type: str, plan: MigrationPlan, details: Optional[dict] = None):
        self.audit_logger.log_event(
            event_type,
            tenant_id=plan.tenant_id,
            entity_id=plan.id,
            details=details
        )
