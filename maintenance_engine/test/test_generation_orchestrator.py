"""
Tests for ScheduledGenerationOrchestrator, against in-memory collaborators
and against the SQL repository.
"""

from contextlib import contextmanager
from datetime import datetime
from types import SimpleNamespace
from maintenance_engine.buisness.maintenance.collaborators import (
    PlanPersistence,
    PlanQuery,
    WorkOrderFactoryCollaborator,
)
from maintenance_engine.buisness.maintenance.planning.plan_eligibility import PlanEligibilityEvaluator
from maintenance_engine.buisness.maintenance.planning.scheduled_generation_orchestrator import (
    ScheduledGenerationOrchestrator,
)
from maintenance_engine.buisness.maintenance.planning.sql_plan_repository import SqlPlanRepository
from maintenance_engine.buisness.maintenance.factories.work_order_factory import WorkOrderFactory
from maintenance_engine.data.maintenance.maintenance_plan_generations import MaintenancePlanGeneration
from maintenance_engine.data.maintenance.maintenance_plans import MaintenancePlan
from maintenance_engine.data.maintenance.work_orders import WorkOrder


TENANT = 'tenant-a'
NOW = datetime(2024, 1, 15)


# ----------------------------------------------------------------------
# In-memory collaborators
# ----------------------------------------------------------------------

class InMemoryPlanStore(PlanQuery, PlanPersistence):
    """Plans held in a dict; unit_of_work restores plan state on failure"""

    def __init__(self, plans):
        self.plans = {plan.id: plan for plan in plans}
        self.recorded_keys = set()

    def find_active_plans(self, tenant_id):
        return [p for p in self.plans.values() if p.tenant_id == tenant_id and p.is_active]

    def find_due_before(self, tenant_id, cutoff):
        return [
            p for p in self.find_active_plans(tenant_id)
            if p.next_scheduled_at is None or p.next_scheduled_at <= cutoff
        ]

    def record_generation(self, plan_id, generated_at, next_scheduled_at, dedup_key, work_order_id=None):
        if dedup_key in self.recorded_keys:
            return False
        self.recorded_keys.add(dedup_key)
        plan = self.plans[plan_id]
        plan.last_generated_at = generated_at
        plan.next_scheduled_at = next_scheduled_at
        plan.generation_count += 1
        return True

    @contextmanager
    def unit_of_work(self):
        snapshot = {pid: dict(vars(plan)) for pid, plan in self.plans.items()}
        keys = set(self.recorded_keys)
        try:
            yield
        except Exception:
            for pid, state in snapshot.items():
                vars(self.plans[pid]).update(state)
            self.recorded_keys = keys
            raise


class InMemoryWorkOrderFactory(WorkOrderFactoryCollaborator):
    def __init__(self, failing_plan_ids=()):
        self.failing_plan_ids = set(failing_plan_ids)
        self.created = {}

    def create_from_plan(self, plan, dedup_key, now, extra_task_ids=()):
        if plan.id in self.failing_plan_ids:
            raise RuntimeError("task template service unavailable")
        if dedup_key not in self.created:
            self.created[dedup_key] = SimpleNamespace(
                id=len(self.created) + 100, plan_id=plan.id, extra_task_ids=tuple(extra_task_ids)
            )
        return self.created[dedup_key]


def memory_plan(plan_id, **overrides):
    values = {
        'id': plan_id,
        'tenant_id': TENANT,
        'is_active': True,
        'effective_from': datetime(2024, 1, 1),
        'effective_to': None,
        'frequency': {'type': 'monthly', 'interval': 1},
        'seasonal_adjustments': None,
        'last_generated_at': None,
        'next_scheduled_at': None,
        'generation_count': 0,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def memory_orchestrator(plans, failing_plan_ids=()):
    store = InMemoryPlanStore(plans)
    factory = InMemoryWorkOrderFactory(failing_plan_ids)
    return ScheduledGenerationOrchestrator(store, store, factory), store, factory


def test_failing_plan_does_not_abort_batch():
    """3 due plans, the factory fails for plan #2"""
    orchestrator, store, factory = memory_orchestrator(
        [memory_plan(1), memory_plan(2), memory_plan(3)], failing_plan_ids={2}
    )
    result = orchestrator.run(TENANT, now=NOW)

    assert result.processed == 3
    assert result.generated == 2
    assert result.skipped == 0
    assert result.errors == ["plan-2: task template service unavailable"]
    assert store.plans[1].generation_count == 1
    assert store.plans[2].generation_count == 0
    assert store.plans[2].next_scheduled_at is None
    assert store.plans[3].next_scheduled_at == datetime(2024, 2, 15)
    assert sorted(wo.plan_id for wo in factory.created.values()) == [1, 3]


def test_result_to_dict():
    orchestrator, _, _ = memory_orchestrator([memory_plan(1)])
    data = orchestrator.run(TENANT, now=NOW).to_dict()
    assert data['processed'] == 1
    assert data['generated'] == 1
    assert data['errors'] == []
    assert data['tenant_id'] == TENANT


def test_replayed_dedup_key_counts_as_skipped():
    """At-least-once delivery: a cycle already recorded creates and increments nothing"""
    plan = memory_plan(1)
    orchestrator, store, factory = memory_orchestrator([plan])
    store.recorded_keys.add('1:initial')

    result = orchestrator.run(TENANT, now=NOW)

    assert result.generated == 0
    assert result.skipped == 1
    assert plan.generation_count == 0
    assert plan.next_scheduled_at is None


def test_dedup_key_uses_consumed_cycle():
    assert ScheduledGenerationOrchestrator.dedup_key_for(memory_plan(5)) == '5:initial'
    scheduled = memory_plan(5, next_scheduled_at=datetime(2024, 2, 15, 8, 30))
    assert ScheduledGenerationOrchestrator.dedup_key_for(scheduled) == '5:2024-02-15T08:30:00'


def test_plans_failing_eligibility_are_skipped():
    orchestrator, store, _ = memory_orchestrator([
        memory_plan(1),
        memory_plan(2, effective_from=datetime(2024, 6, 1)),
        memory_plan(3, effective_to=datetime(2024, 1, 10)),
    ])
    result = orchestrator.run(TENANT, now=NOW)
    assert result.processed == 3
    assert result.generated == 1
    assert result.skipped == 2
    assert store.plans[2].generation_count == 0


def test_external_frequency_is_reported_per_plan():
    orchestrator, _, _ = memory_orchestrator([
        memory_plan(1, frequency={'type': 'usage_based', 'interval': 500, 'unit': 'hours'}),
        memory_plan(2),
    ])
    result = orchestrator.run(TENANT, now=NOW)
    assert result.generated == 1
    assert len(result.errors) == 1
    assert result.errors[0].startswith('plan-1: ')
    assert 'meter' in result.errors[0]


def test_next_schedule_applies_seasonal_rule_and_extra_tasks():
    plan = memory_plan(1, frequency={'type': 'monthly', 'interval': 2}, seasonal_adjustments=[
        {'season': 'spring', 'multiplier': 2},
        {'season': 'winter', 'multiplier': 1.0, 'extra_task_ids': ['t2']},
    ])
    orchestrator, store, factory = memory_orchestrator([plan])
    orchestrator.run(TENANT, now=NOW)

    # 2024-03-15 falls in spring: interval 2 at x2 -> one month earlier
    assert plan.next_scheduled_at == datetime(2024, 2, 15)
    # generated in January (winter)
    assert factory.created['1:initial'].extra_task_ids == ('t2',)


def test_next_schedule_never_moves_backwards():
    plan = memory_plan(1, frequency={'type': 'daily', 'interval': 1}, next_scheduled_at=datetime(2024, 3, 1))
    orchestrator, _, _ = memory_orchestrator([plan])
    assert orchestrator.next_schedule(plan, NOW) == datetime(2024, 3, 1)


def test_custom_evaluator_is_used():
    class NeverDue(PlanEligibilityEvaluator):
        def explain(self, plan, now):
            return "maintenance freeze"

    store = InMemoryPlanStore([memory_plan(1)])
    orchestrator = ScheduledGenerationOrchestrator(
        store, store, InMemoryWorkOrderFactory(), evaluator=NeverDue()
    )
    result = orchestrator.run(TENANT, now=NOW)
    assert result.skipped == 1
    assert result.generated == 0


# ----------------------------------------------------------------------
# SQL repository
# ----------------------------------------------------------------------

class FailingFactory(WorkOrderFactory):
    def __init__(self, failing_plan_id):
        self.failing_plan_id = failing_plan_id

    def create_from_plan(self, plan, dedup_key, now=None, extra_task_ids=(), **kwargs):
        if plan.id == self.failing_plan_id:
            raise RuntimeError("factory unavailable")
        return super().create_from_plan(plan, dedup_key, now, extra_task_ids=extra_task_ids, **kwargs)


class FailingRepository(SqlPlanRepository):
    """Fails after the work order was created, inside the unit of work"""

    def __init__(self, failing_plan_id):
        self.failing_plan_id = failing_plan_id

    def record_generation(self, plan_id, *args, **kwargs):
        if plan_id == self.failing_plan_id:
            raise RuntimeError("schedule store unavailable")
        return super().record_generation(plan_id, *args, **kwargs)


def test_monthly_plan_scenario(make_plan, db_session):
    """monthly/1 effective 2024-01-01, never generated, run on 2024-01-15"""
    plan = make_plan(frequency={'type': 'monthly', 'interval': 1}, effective_from=datetime(2024, 1, 1))
    assert PlanEligibilityEvaluator().is_due(plan, NOW)

    result = ScheduledGenerationOrchestrator.with_sql_defaults().run(TENANT, now=NOW)

    assert result.generated == 1
    plan = db_session.get(MaintenancePlan, plan.id)
    assert plan.next_scheduled_at == datetime(2024, 2, 15)
    assert plan.last_generated_at == NOW
    assert plan.generation_count == 1

    work_order = WorkOrder.query.one()
    assert work_order.generation_key == f"{plan.id}:initial"
    assert work_order.id == result.work_order_ids[0]
    generation = MaintenancePlanGeneration.query.one()
    assert generation.work_order_id == work_order.id


def test_sql_run_is_not_repeated_before_next_cycle(make_plan, db_session):
    plan = make_plan()
    orchestrator = ScheduledGenerationOrchestrator.with_sql_defaults()
    orchestrator.run(TENANT, now=NOW)

    again = orchestrator.run(TENANT, now=datetime(2024, 1, 20))
    assert again.processed == 0
    assert WorkOrder.query.count() == 1

    next_cycle = orchestrator.run(TENANT, now=datetime(2024, 2, 15))
    assert next_cycle.generated == 1
    plan = db_session.get(MaintenancePlan, plan.id)
    assert plan.generation_count == 2
    assert plan.next_scheduled_at == datetime(2024, 3, 15)
    keys = sorted(wo.generation_key for wo in WorkOrder.query.all())
    assert keys == sorted([f"{plan.id}:initial", f"{plan.id}:2024-02-15T00:00:00"])


def test_sql_failing_factory_is_isolated(make_plan, db_session):
    plans = [make_plan(name=f"Plan {n}") for n in (1, 2, 3)]
    failing_id = plans[1].id
    repository = SqlPlanRepository()
    orchestrator = ScheduledGenerationOrchestrator(repository, repository, FailingFactory(failing_id))

    result = orchestrator.run(TENANT, now=NOW)

    assert result.processed == 3
    assert result.generated == 2
    assert result.errors == [f"plan-{failing_id}: factory unavailable"]
    failed = db_session.get(MaintenancePlan, failing_id)
    assert failed.generation_count == 0
    assert failed.next_scheduled_at is None
    assert WorkOrder.query.filter_by(maintenance_plan_id=failing_id).count() == 0
    assert WorkOrder.query.count() == 2


def test_sql_failure_after_creation_rolls_back_work_order(make_plan, db_session):
    plans = [make_plan(name=f"Plan {n}") for n in (1, 2)]
    failing_id = plans[0].id
    repository = FailingRepository(failing_id)
    orchestrator = ScheduledGenerationOrchestrator(repository, repository, WorkOrderFactory())

    result = orchestrator.run(TENANT, now=NOW)

    assert result.generated == 1
    assert result.errors == [f"plan-{failing_id}: schedule store unavailable"]
    assert WorkOrder.query.filter_by(maintenance_plan_id=failing_id).count() == 0
    assert WorkOrder.query.filter_by(maintenance_plan_id=plans[1].id).count() == 1


def test_sql_replay_after_partial_failure_reuses_work_order(make_plan, db_session):
    """Work order and generation both recorded but plan left unchanged: replay creates nothing"""
    plan = make_plan()
    key = f"{plan.id}:initial"
    work_order = WorkOrderFactory.create_from_plan(plan, key, NOW)
    db_session.add(MaintenancePlanGeneration(
        maintenance_plan_id=plan.id, dedup_key=key, generated_at=NOW, work_order_id=work_order.id
    ))
    db_session.commit()

    result = ScheduledGenerationOrchestrator.with_sql_defaults().run(TENANT, now=NOW)

    assert result.generated == 0
    assert result.skipped == 1
    assert WorkOrder.query.count() == 1
    assert db_session.get(MaintenancePlan, plan.id).generation_count == 0
