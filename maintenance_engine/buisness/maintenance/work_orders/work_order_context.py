"""
Work Order Context
Business logic context manager for work orders.
Applies lifecycle operations, writes the audit trail and commits.
"""

from typing import Callable, List, Optional, Union
from datetime import datetime
from maintenance_engine import db
from maintenance_engine.data.maintenance.work_orders import WorkOrder
from maintenance_engine.data.maintenance.work_order_status_changes import WorkOrderStatusChange
from maintenance_engine.data.maintenance.enums import WorkOrderStatus
from maintenance_engine.buisness.maintenance.work_orders.lifecycle import WorkOrderChange, WorkOrderLifecycle
from maintenance_engine.buisness.maintenance.work_orders.narrator import WorkOrderNarrator
from maintenance_engine.buisness.maintenance.work_orders.state_machine import WorkOrderStateMachine
from maintenance_engine.utils.dates import utcnow
from maintenance_engine.logger import get_logger

logger = get_logger("maintenance_engine.buisness.maintenance.work_orders")


class WorkOrderContext:
    """
    Business logic context manager for work orders.

    Wraps WorkOrder data table. Each operation runs the lifecycle guard,
    records a WorkOrderStatusChange and commits; on any failure the session
    is rolled back and the error re-raised. Concurrent commits on a stale
    copy fail with StaleDataError (version_id_col).
    """

    def __init__(self, work_order: Union[WorkOrder, int]):
        """
        Initialize WorkOrderContext with WorkOrder instance or ID.

        Raises:
            ValueError: If no work order exists with the given ID
        """
        if isinstance(work_order, int):
            found = db.session.get(WorkOrder, work_order)
            if found is None:
                raise ValueError(f"Work order {work_order} not found")
            self._work_order = found
        else:
            self._work_order = work_order
        self.last_change: Optional[WorkOrderChange] = None

    @property
    def work_order(self) -> WorkOrder:
        return self._work_order

    @property
    def id(self) -> int:
        return self._work_order.id

    @property
    def status(self) -> WorkOrderStatus:
        return WorkOrderStateMachine.coerce(self._work_order.status)

    @property
    def lifecycle(self) -> WorkOrderLifecycle:
        return WorkOrderLifecycle.from_config(self._work_order)

    @property
    def history(self) -> List[WorkOrderStatusChange]:
        return list(self._work_order.status_changes)

    @property
    def allowed_transitions(self):
        return WorkOrderStateMachine.get_allowed_transitions(self.status)

    def schedule(self, start: datetime, end: datetime, user_id: Optional[str] = None,
                 now: Optional[datetime] = None) -> 'WorkOrderContext':
        return self._apply(lambda lifecycle: lifecycle.schedule(start, end, now=now, actor_id=user_id))

    def assign_technician(self, technician_id: str, user_id: Optional[str] = None,
                          now: Optional[datetime] = None) -> 'WorkOrderContext':
        return self._apply(lambda lifecycle: lifecycle.assign_technician(technician_id, now=now, actor_id=user_id))

    def assign_team(self, team_id: str, user_id: Optional[str] = None,
                    now: Optional[datetime] = None) -> 'WorkOrderContext':
        return self._apply(lambda lifecycle: lifecycle.assign_team(team_id, now=now, actor_id=user_id))

    def start(self, user_id: Optional[str] = None, now: Optional[datetime] = None) -> 'WorkOrderContext':
        """
        Start the work order.

        Returns:
            self for chaining
        """
        return self._apply(lambda lifecycle: lifecycle.start(now=now, actor_id=user_id))

    def hold(self, waiting_status: WorkOrderStatus, reason: Optional[str] = None,
             user_id: Optional[str] = None, now: Optional[datetime] = None) -> 'WorkOrderContext':
        return self._apply(lambda lifecycle: lifecycle.hold(waiting_status, reason=reason, now=now, actor_id=user_id))

    def resume(self, user_id: Optional[str] = None, now: Optional[datetime] = None) -> 'WorkOrderContext':
        return self._apply(lambda lifecycle: lifecycle.resume(now=now, actor_id=user_id))

    def update_progress(self, percentage: int, user_id: Optional[str] = None,
                        now: Optional[datetime] = None) -> 'WorkOrderContext':
        return self._apply(lambda lifecycle: lifecycle.update_progress(percentage, now=now, actor_id=user_id))

    def complete(self, user_id: Optional[str] = None, now: Optional[datetime] = None) -> 'WorkOrderContext':
        """
        Complete the work order (requires 100% progress).

        Returns:
            self for chaining
        """
        return self._apply(lambda lifecycle: lifecycle.complete(now=now, actor_id=user_id))

    def approve(self, user_id: Optional[str] = None, now: Optional[datetime] = None) -> 'WorkOrderContext':
        return self._apply(lambda lifecycle: lifecycle.approve(now=now, actor_id=user_id))

    def close(self, user_id: Optional[str] = None, now: Optional[datetime] = None) -> 'WorkOrderContext':
        return self._apply(lambda lifecycle: lifecycle.close(now=now, actor_id=user_id))

    def reject(self, reason: str, user_id: Optional[str] = None, now: Optional[datetime] = None) -> 'WorkOrderContext':
        return self._apply(lambda lifecycle: lifecycle.reject(reason, now=now, actor_id=user_id))

    def cancel(self, reason: str, user_id: Optional[str] = None, now: Optional[datetime] = None) -> 'WorkOrderContext':
        """
        Cancel the work order.

        Args:
            reason: Why the work order is canceled
            user_id: ID of user canceling

        Returns:
            self for chaining
        """
        return self._apply(lambda lifecycle: lifecycle.cancel(reason, now=now, actor_id=user_id))

    def update_costs(self, labor: Optional[float] = None, parts: Optional[float] = None,
                     external: Optional[float] = None, user_id: Optional[str] = None,
                     now: Optional[datetime] = None) -> 'WorkOrderContext':
        return self._apply(
            lambda lifecycle: lifecycle.update_costs(labor, parts, external, now=now, actor_id=user_id)
        )

    def _apply(self, operation: Callable[[WorkOrderLifecycle], WorkOrderChange]) -> 'WorkOrderContext':
        try:
            change = operation(self.lifecycle)
            db.session.add(WorkOrderStatusChange(
                work_order_id=self._work_order.id,
                operation=change.operation,
                from_status=change.from_status.value,
                to_status=change.to_status.value,
                actor_id=change.actor_id,
                narrative=WorkOrderNarrator.narrate(change),
                changed_at=change.at,
            ))
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.warning(f"Work order {self._work_order.id}: operation failed: {e}")
            raise

        self.last_change = change
        self.refresh()
        return self

    def refresh(self):
        """Refresh cached data from database"""
        db.session.refresh(self._work_order)

    @staticmethod
    def find_overdue(tenant_id: str, now: Optional[datetime] = None) -> List[WorkOrder]:
        """Work orders past their SLA target that are not finished"""
        now = now or utcnow()
        finished = [s.value for s in WorkOrderStateMachine.FINISHED_STATES]
        return (
            WorkOrder.query
            .filter(
                WorkOrder.tenant_id == tenant_id,
                WorkOrder.sla_target_at.isnot(None),
                WorkOrder.sla_target_at < now,
                WorkOrder.status.notin_(finished),
            )
            .order_by(WorkOrder.sla_target_at)
            .all()
        )

    @staticmethod
    def find_past_schedule(tenant_id: str, now: Optional[datetime] = None) -> List[WorkOrder]:
        """Open work orders whose scheduled window has ended"""
        now = now or utcnow()
        closed_out = [
            s.value for s in WorkOrderStateMachine.FINISHED_STATES | WorkOrderStateMachine.TERMINAL_STATES
        ]
        return (
            WorkOrder.query
            .filter(
                WorkOrder.tenant_id == tenant_id,
                WorkOrder.scheduled_end.isnot(None),
                WorkOrder.scheduled_end < now,
                WorkOrder.status.notin_(closed_out),
            )
            .order_by(WorkOrder.scheduled_end)
            .all()
        )

    @staticmethod
    def find_active(tenant_id: str) -> List[WorkOrder]:
        """Work orders that are in progress or waiting"""
        active = [s.value for s in WorkOrderStateMachine.ACTIVE_STATES]
        return (
            WorkOrder.query
            .filter(WorkOrder.tenant_id == tenant_id, WorkOrder.status.in_(active))
            .order_by(WorkOrder.id)
            .all()
        )
