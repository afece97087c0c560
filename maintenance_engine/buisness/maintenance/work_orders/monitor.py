"""
Work Order Monitor
Scans work orders for idle-time threshold crossings and SLA breaches and
hands signals to the notification collaborator. Never changes status.
"""

from typing import Iterable, List, Optional
from datetime import datetime
from maintenance_engine import db
from maintenance_engine.buisness.maintenance.collaborators import NotificationSink, SignalKind, WorkOrderSignal
from maintenance_engine.buisness.maintenance.structs import IdlePolicy, IdleThreshold
from maintenance_engine.buisness.maintenance.work_orders.lifecycle import WorkOrderLifecycle
from maintenance_engine.buisness.maintenance.work_orders.state_machine import WorkOrderStateMachine
from maintenance_engine.buisness.maintenance.work_orders.work_order_context import WorkOrderContext
from maintenance_engine.utils.dates import utcnow
from maintenance_engine.logger import get_logger

logger = get_logger("maintenance_engine.buisness.maintenance.work_orders")


class WorkOrderMonitor:
    """
    Idle and SLA watcher.

    Each idle threshold is signalled once per status: WorkOrder.idle_signal_level
    remembers the highest level signalled and is reset by every status change.
    An SLA breach is signalled once; WorkOrder.sla_breach_signaled_at remembers it.
    """

    IDLE_SIGNAL_KINDS = {
        IdleThreshold.WARNING: SignalKind.IDLE_WARNING,
        IdleThreshold.ESCALATION: SignalKind.IDLE_ESCALATION,
        IdleThreshold.AUTO_REASSIGN: SignalKind.IDLE_AUTO_REASSIGN,
    }

    def __init__(self, sink: NotificationSink, default_idle_policy: Optional[IdlePolicy] = None):
        self.sink = sink
        self.default_idle_policy = default_idle_policy

    def _lifecycle(self, work_order) -> WorkOrderLifecycle:
        if self.default_idle_policy is None:
            return WorkOrderLifecycle.from_config(work_order)
        return WorkOrderLifecycle(work_order, default_idle_policy=self.default_idle_policy)

    def scan(self, work_orders: Iterable, now: Optional[datetime] = None) -> List[WorkOrderSignal]:
        """
        Evaluate work orders and notify the sink of new crossings.

        Updates idle_signal_level / sla_breach_signaled_at in memory; the
        caller persists them.

        Returns:
            Signals emitted, in work order order
        """
        now = now or utcnow()
        signals = []
        for work_order in work_orders:
            lifecycle = self._lifecycle(work_order)
            entity_id = lifecycle.entity_id

            level = lifecycle.idle_threshold(now)
            signalled = work_order.idle_signal_level or 0
            if level > signalled:
                idle_minutes = round(lifecycle.idle_minutes(now), 1)
                # Every threshold crossed since the last scan, lowest first
                for crossed in range(signalled + 1, int(level) + 1):
                    threshold = IdleThreshold(crossed)
                    signals.append(WorkOrderSignal(
                        entity_id=entity_id,
                        kind=self.IDLE_SIGNAL_KINDS[threshold],
                        level=crossed,
                        detected_at=now,
                        details={'idle_minutes': idle_minutes},
                    ))
                work_order.idle_signal_level = int(level)

            if (
                work_order.sla_breach_signaled_at is None
                and lifecycle.status not in WorkOrderStateMachine.TERMINAL_STATES
                and lifecycle.is_overdue(now)
            ):
                work_order.sla_breach_signaled_at = now
                signals.append(WorkOrderSignal(
                    entity_id=entity_id,
                    kind=SignalKind.SLA_BREACH,
                    detected_at=now,
                    details={'sla_target_at': work_order.sla_target_at.isoformat()},
                ))

        for signal in signals:
            self.sink.notify(signal)
        if signals:
            logger.info(f"Monitor emitted {len(signals)} signals")
        return signals

    def scan_tenant(self, tenant_id: str, now: Optional[datetime] = None) -> List[WorkOrderSignal]:
        """Scan a tenant's active and overdue work orders and commit the signal markers"""
        now = now or utcnow()
        candidates = {}
        for work_order in WorkOrderContext.find_active(tenant_id) + WorkOrderContext.find_overdue(tenant_id, now):
            candidates[work_order.id] = work_order

        try:
            signals = self.scan([candidates[key] for key in sorted(candidates)], now)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return signals
