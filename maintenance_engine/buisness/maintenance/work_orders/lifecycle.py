"""
Work Order Lifecycle
Applies guarded operations to one work order and evaluates its SLA and
idle-time state.

Operations mutate the work order in memory and return a WorkOrderChange;
persisting (and auditing) the change is WorkOrderContext's job.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional
from flask import current_app, has_app_context
from maintenance_engine.data.maintenance.enums import ApprovalStatus, WorkOrderStatus
from maintenance_engine.buisness.maintenance.structs import IdlePolicy, IdleThreshold
from maintenance_engine.buisness.maintenance.work_orders.state_machine import WorkOrderStateMachine
from maintenance_engine.buisness.maintenance.errors import (
    IllegalTransition,
    InvalidCost,
    InvalidProgress,
    InvalidScheduleWindow,
    MaintenanceValidationError,
)
from maintenance_engine.utils.dates import utcnow
from maintenance_engine.logger import get_logger

logger = get_logger("maintenance_engine.buisness.maintenance.work_orders")


DEFAULT_IDLE_POLICY = IdlePolicy(warning_minutes=240, escalation_minutes=480, auto_reassign_minutes=1440)


@dataclass
class WorkOrderChange:
    """What one lifecycle operation did"""
    operation: str
    from_status: WorkOrderStatus
    to_status: WorkOrderStatus
    at: datetime
    actor_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def status_changed(self) -> bool:
        return self.from_status != self.to_status


class WorkOrderLifecycle:
    """
    Guarded operations over a single work order.

    Works on WorkOrder rows or any object exposing the same attributes.
    Every guard violation raises; nothing silently no-ops.
    """

    def __init__(self, work_order, default_idle_policy: Optional[IdlePolicy] = None):
        self.work_order = work_order
        self.default_idle_policy = default_idle_policy or DEFAULT_IDLE_POLICY

    @classmethod
    def from_config(cls, work_order) -> 'WorkOrderLifecycle':
        """Lifecycle using the app's DEFAULT_IDLE_* settings when an app context is active"""
        if not has_app_context():
            return cls(work_order)
        config = current_app.config
        policy = IdlePolicy(
            warning_minutes=config.get('DEFAULT_IDLE_WARNING_MINUTES', DEFAULT_IDLE_POLICY.warning_minutes),
            escalation_minutes=config.get('DEFAULT_IDLE_ESCALATION_MINUTES', DEFAULT_IDLE_POLICY.escalation_minutes),
            auto_reassign_minutes=config.get(
                'DEFAULT_IDLE_AUTO_REASSIGN_MINUTES', DEFAULT_IDLE_POLICY.auto_reassign_minutes
            ),
        )
        return cls(work_order, default_idle_policy=policy)

    @property
    def entity_id(self) -> str:
        return f"work-order-{self.work_order.id}"

    @property
    def status(self) -> WorkOrderStatus:
        return WorkOrderStateMachine.coerce(self.work_order.status)

    @property
    def idle_policy(self) -> IdlePolicy:
        """The work order's own thresholds, else the configured defaults"""
        policy = IdlePolicy.from_dict(self.work_order.idle_policy, entity_id=self.entity_id)
        return policy or self.default_idle_policy

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def schedule(
        self,
        start: datetime,
        end: datetime,
        now: Optional[datetime] = None,
        actor_id: Optional[str] = None
    ) -> WorkOrderChange:
        """
        Set the schedule window. A drafted work order becomes scheduled;
        any other open status keeps its status.

        Raises:
            InvalidScheduleWindow: If start is not before end
            IllegalTransition: If the work order is finished or terminal
        """
        if start is None or end is None or start >= end:
            raise InvalidScheduleWindow(
                f"Schedule window {start} - {end} does not start before it ends",
                entity_id=self.entity_id,
                operation='schedule',
                invariant='start < end'
            )
        self._require_open('schedule')

        self.work_order.scheduled_start = start
        self.work_order.scheduled_end = end
        details = {'start': start.isoformat(), 'end': end.isoformat()}

        if self.status == WorkOrderStatus.DRAFTED:
            return self._transition(WorkOrderStatus.SCHEDULED, 'schedule', now, actor_id, **details)
        return self._touch('schedule', now, actor_id, **details)

    def assign_technician(
        self,
        technician_id: str,
        now: Optional[datetime] = None,
        actor_id: Optional[str] = None
    ) -> WorkOrderChange:
        """Assign a technician; clears any team assignment"""
        if not technician_id:
            raise MaintenanceValidationError(
                "Technician id is required",
                entity_id=self.entity_id,
                operation='assign_technician'
            )
        self._require_open('assign_technician')

        previous_team = self.work_order.assigned_team_id
        self.work_order.assigned_technician_id = technician_id
        self.work_order.assigned_team_id = None
        return self._touch(
            'assign_technician', now, actor_id,
            technician_id=technician_id, cleared_team_id=previous_team
        )

    def assign_team(
        self,
        team_id: str,
        now: Optional[datetime] = None,
        actor_id: Optional[str] = None
    ) -> WorkOrderChange:
        """Assign a team; clears any technician assignment"""
        if not team_id:
            raise MaintenanceValidationError(
                "Team id is required",
                entity_id=self.entity_id,
                operation='assign_team'
            )
        self._require_open('assign_team')

        previous_technician = self.work_order.assigned_technician_id
        self.work_order.assigned_team_id = team_id
        self.work_order.assigned_technician_id = None
        return self._touch(
            'assign_team', now, actor_id,
            team_id=team_id, cleared_technician_id=previous_technician
        )

    def start(self, now: Optional[datetime] = None, actor_id: Optional[str] = None) -> WorkOrderChange:
        """
        Begin work. Only from scheduled, only with a technician assigned.
        actual_start is set the first time only.
        """
        WorkOrderStateMachine.validate_transition(
            self.status, WorkOrderStatus.IN_PROGRESS, entity_id=self.entity_id, operation='start'
        )
        if self.status != WorkOrderStatus.SCHEDULED:
            raise IllegalTransition(
                f"Cannot start from {self.status.value}",
                entity_id=self.entity_id,
                operation='start',
                invariant='start only from scheduled'
            )
        if not self.work_order.assigned_technician_id:
            raise IllegalTransition(
                "No technician assigned",
                entity_id=self.entity_id,
                operation='start',
                invariant='start requires an assigned technician'
            )

        now = now or utcnow()
        if self.work_order.actual_start is None:
            self.work_order.actual_start = now
        return self._transition(WorkOrderStatus.IN_PROGRESS, 'start', now, actor_id)

    def hold(
        self,
        waiting_status: WorkOrderStatus,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
        actor_id: Optional[str] = None
    ) -> WorkOrderChange:
        """Move an in-progress work order into one of the waiting_* statuses"""
        try:
            waiting_status = WorkOrderStatus(waiting_status)
        except ValueError:
            waiting_status = None
        if waiting_status not in WorkOrderStateMachine.WAITING_STATES:
            raise MaintenanceValidationError(
                "Hold requires one of the waiting statuses",
                entity_id=self.entity_id,
                operation='hold',
                invariant=f"status in {sorted(s.value for s in WorkOrderStateMachine.WAITING_STATES)}"
            )
        if self.status != WorkOrderStatus.IN_PROGRESS:
            raise IllegalTransition(
                f"Cannot hold from {self.status.value}",
                entity_id=self.entity_id,
                operation='hold',
                invariant='waiting statuses are entered only from in_progress'
            )

        self.work_order.status_reason = reason
        return self._transition(waiting_status, 'hold', now, actor_id, reason=reason)

    def resume(self, now: Optional[datetime] = None, actor_id: Optional[str] = None) -> WorkOrderChange:
        """Return from a waiting_* status to in_progress"""
        if self.status not in WorkOrderStateMachine.WAITING_STATES:
            raise IllegalTransition(
                f"Cannot resume from {self.status.value}",
                entity_id=self.entity_id,
                operation='resume',
                invariant='resume only from a waiting status'
            )
        self.work_order.status_reason = None
        return self._transition(WorkOrderStatus.IN_PROGRESS, 'resume', now, actor_id)

    def update_progress(
        self,
        percentage: int,
        now: Optional[datetime] = None,
        actor_id: Optional[str] = None
    ) -> WorkOrderChange:
        """
        Record completion percentage. Never changes status.

        Raises:
            InvalidProgress: If percentage is not an integer in 0..100
            IllegalTransition: If the work order is finished or terminal
        """
        if isinstance(percentage, bool) or not isinstance(percentage, int) or not 0 <= percentage <= 100:
            raise InvalidProgress(
                f"Completion percentage {percentage!r} is out of range",
                entity_id=self.entity_id,
                operation='update_progress',
                invariant='0 <= completion_percentage <= 100'
            )
        self._require_open('update_progress')

        previous = self.work_order.completion_percentage
        self.work_order.completion_percentage = percentage
        return self._touch('update_progress', now, actor_id, previous=previous, percentage=percentage)

    def complete(self, now: Optional[datetime] = None, actor_id: Optional[str] = None) -> WorkOrderChange:
        """Finish work. Only from in_progress with completion at exactly 100"""
        WorkOrderStateMachine.validate_transition(
            self.status, WorkOrderStatus.COMPLETED, entity_id=self.entity_id, operation='complete'
        )
        if self.work_order.completion_percentage != 100:
            raise IllegalTransition(
                f"Completion is {self.work_order.completion_percentage}%",
                entity_id=self.entity_id,
                operation='complete',
                invariant='completion_percentage == 100'
            )

        now = now or utcnow()
        self.work_order.completion_percentage = 100
        self.work_order.actual_end = now
        return self._transition(WorkOrderStatus.COMPLETED, 'complete', now, actor_id)

    def approve(self, now: Optional[datetime] = None, actor_id: Optional[str] = None) -> WorkOrderChange:
        """Approve completed work"""
        WorkOrderStateMachine.validate_transition(
            self.status, WorkOrderStatus.APPROVED, entity_id=self.entity_id, operation='approve'
        )
        self.work_order.approval_status = ApprovalStatus.APPROVED.value
        return self._transition(WorkOrderStatus.APPROVED, 'approve', now, actor_id)

    def close(self, now: Optional[datetime] = None, actor_id: Optional[str] = None) -> WorkOrderChange:
        """Close approved work, or completed work that needs no approval"""
        WorkOrderStateMachine.validate_transition(
            self.status, WorkOrderStatus.CLOSED, entity_id=self.entity_id, operation='close'
        )
        if self.status == WorkOrderStatus.COMPLETED and self.work_order.requires_approval:
            raise IllegalTransition(
                "Work order requires approval before closing",
                entity_id=self.entity_id,
                operation='close',
                invariant='approval required before close'
            )
        return self._transition(WorkOrderStatus.CLOSED, 'close', now, actor_id)

    def reject(self, reason: str, now: Optional[datetime] = None, actor_id: Optional[str] = None) -> WorkOrderChange:
        """Reject the work order at any point before closure"""
        self._require_reason(reason, 'reject')
        WorkOrderStateMachine.validate_transition(
            self.status, WorkOrderStatus.REJECTED, entity_id=self.entity_id, operation='reject'
        )
        now = now or utcnow()
        self.work_order.status_reason = reason
        self.work_order.approval_status = ApprovalStatus.REJECTED.value
        if self.work_order.actual_end is None:
            self.work_order.actual_end = now
        return self._transition(WorkOrderStatus.REJECTED, 'reject', now, actor_id, reason=reason)

    def cancel(self, reason: str, now: Optional[datetime] = None, actor_id: Optional[str] = None) -> WorkOrderChange:
        """Cancel the work order; blocked once work is completed"""
        self._require_reason(reason, 'cancel')
        WorkOrderStateMachine.validate_transition(
            self.status, WorkOrderStatus.CANCELED, entity_id=self.entity_id, operation='cancel'
        )
        now = now or utcnow()
        self.work_order.status_reason = reason
        if self.work_order.actual_end is None:
            self.work_order.actual_end = now
        return self._transition(WorkOrderStatus.CANCELED, 'cancel', now, actor_id, reason=reason)

    def update_costs(
        self,
        labor: Optional[float] = None,
        parts: Optional[float] = None,
        external: Optional[float] = None,
        now: Optional[datetime] = None,
        actor_id: Optional[str] = None
    ) -> WorkOrderChange:
        """
        Update cost components; total is recomputed as their sum.
        Components left as None keep their current value.
        """
        changes = {'labor_cost': labor, 'parts_cost': parts, 'external_cost': external}
        for name, value in changes.items():
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                raise InvalidCost(
                    f"{name} must be a non-negative number, got {value!r}",
                    entity_id=self.entity_id,
                    operation='update_costs',
                    invariant='cost >= 0'
                )
        if self.status in WorkOrderStateMachine.TERMINAL_STATES:
            raise IllegalTransition(
                f"Cannot update costs in {self.status.value}",
                entity_id=self.entity_id,
                operation='update_costs',
                invariant='costs change only before the work order is terminal'
            )

        for name, value in changes.items():
            if value is not None:
                setattr(self.work_order, name, float(value))

        work_order = self.work_order
        work_order.total_cost = round(
            (work_order.labor_cost or 0.0) + (work_order.parts_cost or 0.0) + (work_order.external_cost or 0.0),
            2
        )
        return self._touch('update_costs', now, actor_id, total_cost=work_order.total_cost)

    # ------------------------------------------------------------------
    # Evaluations (read-only)
    # ------------------------------------------------------------------

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        """SLA target passed and the work is not finished"""
        now = now or utcnow()
        target = self.work_order.sla_target_at
        if target is None:
            return False
        return now > target and self.status not in WorkOrderStateMachine.FINISHED_STATES

    def is_within_sla(self, now: Optional[datetime] = None) -> bool:
        """True without an SLA target; else compares actual_end (once finished) or now to the target"""
        target = self.work_order.sla_target_at
        if target is None:
            return True
        if self.status in WorkOrderStateMachine.FINISHED_STATES and self.work_order.actual_end is not None:
            return self.work_order.actual_end <= target
        return (now or utcnow()) <= target

    def is_past_schedule(self, now: Optional[datetime] = None) -> bool:
        """Scheduled window ended but the work is still open"""
        end = self.work_order.scheduled_end
        if end is None:
            return False
        closed_out = WorkOrderStateMachine.FINISHED_STATES | WorkOrderStateMachine.TERMINAL_STATES
        return (now or utcnow()) > end and self.status not in closed_out

    def idle_minutes(self, now: Optional[datetime] = None) -> Optional[float]:
        """Minutes since the last status change while work is underway, else None"""
        if self.status not in WorkOrderStateMachine.ACTIVE_STATES:
            return None
        since = self.work_order.last_status_change_at or self.work_order.created_at
        if since is None:
            return None
        return max(0.0, ((now or utcnow()) - since).total_seconds() / 60)

    def idle_threshold(self, now: Optional[datetime] = None) -> IdleThreshold:
        """Highest idle threshold crossed (NONE outside in_progress / waiting_*)"""
        minutes = self.idle_minutes(now)
        if minutes is None:
            return IdleThreshold.NONE
        return self.idle_policy.threshold_for(minutes)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_open(self, operation: str) -> None:
        status = self.status
        if status in WorkOrderStateMachine.FINISHED_STATES or status in WorkOrderStateMachine.TERMINAL_STATES:
            raise IllegalTransition(
                f"Work order is {status.value}",
                entity_id=self.entity_id,
                operation=operation,
                invariant='not allowed once the work order is finished or terminal'
            )

    def _require_reason(self, reason: Optional[str], operation: str) -> None:
        if not reason or not str(reason).strip():
            raise MaintenanceValidationError(
                "A reason is required",
                entity_id=self.entity_id,
                operation=operation,
                invariant='reason is recorded'
            )

    def _transition(
        self,
        to_status: WorkOrderStatus,
        operation: str,
        now: Optional[datetime],
        actor_id: Optional[str],
        **details
    ) -> WorkOrderChange:
        from_status = self.status
        WorkOrderStateMachine.validate_transition(
            from_status, to_status, entity_id=self.entity_id, operation=operation
        )
        now = now or utcnow()

        self.work_order.status = to_status.value
        self.work_order.last_status_change_at = now
        # Idle signalling starts over in every new status
        self.work_order.idle_signal_level = int(IdleThreshold.NONE)
        if actor_id is not None:
            self.work_order.updated_by_id = actor_id

        logger.info(f"Work order {self.work_order.id}: {from_status.value} -> {to_status.value} ({operation})")
        return WorkOrderChange(
            operation=operation,
            from_status=from_status,
            to_status=to_status,
            at=now,
            actor_id=actor_id,
            details={k: v for k, v in details.items() if v is not None},
        )

    def _touch(self, operation: str, now: Optional[datetime], actor_id: Optional[str], **details) -> WorkOrderChange:
        status = self.status
        if actor_id is not None:
            self.work_order.updated_by_id = actor_id
        return WorkOrderChange(
            operation=operation,
            from_status=status,
            to_status=status,
            at=now or utcnow(),
            actor_id=actor_id,
            details={k: v for k, v in details.items() if v is not None},
        )
