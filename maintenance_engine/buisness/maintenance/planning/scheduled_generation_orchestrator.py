"""
Scheduled Generation Orchestrator
Batch-runs eligibility and work order generation across all due plans of a
tenant, isolating per-plan failures.
"""

from typing import Optional, Tuple
from datetime import datetime
from maintenance_engine.buisness.maintenance.collaborators import (
    PlanPersistence,
    PlanQuery,
    WorkOrderFactoryCollaborator,
)
from maintenance_engine.buisness.maintenance.structs import FrequencySpec
from maintenance_engine.buisness.maintenance.planning.recurrence_calculator import RecurrenceCalculator
from maintenance_engine.buisness.maintenance.planning.seasonal_adjuster import SeasonalAdjuster
from maintenance_engine.buisness.maintenance.planning.plan_eligibility import PlanEligibilityEvaluator
from maintenance_engine.buisness.maintenance.planning.generation_result import GenerationRunResult
from maintenance_engine.utils.dates import utcnow
from maintenance_engine.logger import get_logger

logger = get_logger("maintenance_engine.buisness.maintenance.planning")


class ScheduledGenerationOrchestrator:
    """
    Main orchestrator for scheduled preventive maintenance generation.

    For each due plan:
    1. Compute the next schedule (calculator, then seasonal adjuster)
    2. Create the work order through the factory collaborator
    3. Record the generation through the plan persistence collaborator

    Steps 2 and 3 share one unit of work. A failing plan is rolled back,
    logged and reported; the batch continues with the next plan.
    Runs for the same tenant must not overlap; callers serialize them.
    """

    INITIAL_CYCLE = 'initial'

    def __init__(
        self,
        plan_query: PlanQuery,
        plan_persistence: PlanPersistence,
        work_order_factory: WorkOrderFactoryCollaborator,
        calculator: Optional[RecurrenceCalculator] = None,
        adjuster: Optional[SeasonalAdjuster] = None,
        evaluator: Optional[PlanEligibilityEvaluator] = None
    ):
        self.plan_query = plan_query
        self.plan_persistence = plan_persistence
        self.work_order_factory = work_order_factory
        self.calculator = calculator or RecurrenceCalculator.from_config()
        self.adjuster = adjuster or SeasonalAdjuster()
        self.evaluator = evaluator or PlanEligibilityEvaluator()

    @classmethod
    def with_sql_defaults(cls) -> 'ScheduledGenerationOrchestrator':
        """Orchestrator wired to the SQLAlchemy repository and the default work order factory"""
        from maintenance_engine.buisness.maintenance.planning.sql_plan_repository import SqlPlanRepository
        from maintenance_engine.buisness.maintenance.factories.work_order_factory import WorkOrderFactory

        repository = SqlPlanRepository()
        return cls(repository, repository, WorkOrderFactory())

    @classmethod
    def dedup_key_for(cls, plan) -> str:
        """'{plan_id}:{cycle}' where cycle is the next_scheduled_at being consumed"""
        cycle = plan.next_scheduled_at.isoformat() if plan.next_scheduled_at else cls.INITIAL_CYCLE
        return f"{plan.id}:{cycle}"

    def next_schedule(self, plan, now: datetime) -> datetime:
        """
        Next due date after a generation at now.

        Never earlier than the plan's current next_scheduled_at.
        """
        entity_id = f"plan-{plan.id}"
        frequency = FrequencySpec.from_dict(plan.frequency, entity_id=entity_id)
        candidate = self.calculator.next_due(frequency, now, entity_id=entity_id)
        adjusted = self.adjuster.adjust(candidate, plan.seasonal_adjustments, frequency, entity_id=entity_id)
        if plan.next_scheduled_at is not None and adjusted < plan.next_scheduled_at:
            return plan.next_scheduled_at
        return adjusted

    def run(self, tenant_id: str, now: Optional[datetime] = None) -> GenerationRunResult:
        """
        Generate work orders for every due plan of a tenant.

        Args:
            tenant_id: Tenant to run for
            now: Evaluation time (defaults to utcnow)

        Returns:
            GenerationRunResult with processed / generated / skipped counts and per-plan errors
        """
        now = now or utcnow()
        result = GenerationRunResult(tenant_id=tenant_id, started_at=now)

        plans = self.plan_query.find_due_before(tenant_id, now)
        logger.info(f"Scheduled generation for tenant {tenant_id}: {len(plans)} candidate plans at {now.isoformat()}")

        for plan in plans:
            plan_id = plan.id
            result.processed += 1

            reason = self.evaluator.explain(plan, now)
            if reason is not None:
                result.skipped += 1
                logger.debug(f"Skipping plan {plan_id}: {reason}")
                continue

            try:
                recorded, work_order_id = self._generate(plan, now)
            except Exception as e:
                result.errors.append(f"plan-{plan_id}: {e}")
                logger.error(f"Generation failed for plan {plan_id}: {e}")
                # Continue with other plans
                continue

            if not recorded:
                result.skipped += 1
                logger.debug(f"Skipping plan {plan_id}: generation already recorded")
            else:
                result.generated += 1
                if work_order_id is not None:
                    result.work_order_ids.append(work_order_id)

        result.finished_at = utcnow()
        logger.info(
            f"Scheduled generation for tenant {tenant_id} finished: processed={result.processed} "
            f"generated={result.generated} skipped={result.skipped} errors={len(result.errors)}"
        )
        return result

    def _generate(self, plan, now: datetime) -> Tuple[bool, Optional[int]]:
        """Create and record one cycle; returns (recorded, work order id)"""
        next_scheduled_at = self.next_schedule(plan, now)
        dedup_key = self.dedup_key_for(plan)
        extra_task_ids = self.adjuster.extra_tasks_for(now, plan.seasonal_adjustments)

        with self.plan_persistence.unit_of_work():
            work_order = self.work_order_factory.create_from_plan(
                plan, dedup_key, now, extra_task_ids=extra_task_ids
            )
            work_order_id = getattr(work_order, 'id', None)
            recorded = self.plan_persistence.record_generation(
                plan.id,
                generated_at=now,
                next_scheduled_at=next_scheduled_at,
                dedup_key=dedup_key,
                work_order_id=work_order_id,
            )

        if not recorded:
            return False, work_order_id
        logger.info(
            f"Plan {plan.id} generated work order {work_order_id}; "
            f"next due {next_scheduled_at.isoformat()}"
        )
        return True, work_order_id
