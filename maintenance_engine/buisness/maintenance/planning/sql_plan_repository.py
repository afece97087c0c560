"""
SQL Plan Repository
Default plan query and plan persistence collaborator backed by the
Flask-SQLAlchemy session.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import List
from maintenance_engine import db
from maintenance_engine.data.maintenance.maintenance_plans import MaintenancePlan
from maintenance_engine.buisness.maintenance.collaborators import PlanPersistence, PlanQuery
from maintenance_engine.buisness.maintenance.planning.maintenance_plan_context import MaintenancePlanContext


class SqlPlanRepository(PlanQuery, PlanPersistence):
    """
    Plan storage over db.session.

    unit_of_work wraps one plan's work in a savepoint. On success the outer
    transaction is committed so each generated plan is durable on its own;
    on failure only the savepoint is rolled back and the error propagates.
    """

    def find_active_plans(self, tenant_id) -> List[MaintenancePlan]:
        return MaintenancePlanContext.get_active(tenant_id)

    def find_due_before(self, tenant_id, cutoff: datetime) -> List[MaintenancePlan]:
        return MaintenancePlanContext.get_due_before(tenant_id, cutoff)

    def record_generation(
        self,
        plan_id,
        generated_at: datetime,
        next_scheduled_at: datetime,
        dedup_key: str,
        work_order_id=None
    ) -> bool:
        return MaintenancePlanContext(plan_id).record_generation(
            generated_at=generated_at,
            next_scheduled_at=next_scheduled_at,
            dedup_key=dedup_key,
            work_order_id=work_order_id,
        )

    @contextmanager
    def unit_of_work(self):
        with db.session.begin_nested():
            yield
        db.session.commit()
