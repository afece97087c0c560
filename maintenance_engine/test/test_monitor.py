"""
Tests for WorkOrderMonitor idle and SLA signalling.
"""

from datetime import datetime, timedelta
from maintenance_engine.buisness.maintenance.work_orders.monitor import WorkOrderMonitor
from maintenance_engine.buisness.maintenance.work_orders.lifecycle import WorkOrderLifecycle
from maintenance_engine.buisness.maintenance.work_orders.work_order_context import WorkOrderContext
from maintenance_engine.buisness.maintenance.factories.work_order_factory import WorkOrderFactory
from maintenance_engine.buisness.maintenance.notifications.logging_sink import LoggingNotificationSink
from maintenance_engine.buisness.maintenance.collaborators import SignalKind, WorkOrderSignal
from maintenance_engine.buisness.maintenance.structs import IdlePolicy
from maintenance_engine.data.maintenance.enums import WorkOrderStatus
from maintenance_engine.data.maintenance.work_orders import WorkOrder


STARTED = datetime(2025, 1, 1, 8, 0)
POLICY = IdlePolicy(warning_minutes=60, escalation_minutes=120, auto_reassign_minutes=240)


def test_each_idle_threshold_signalled_once(build_work_order, sink):
    work_order = build_work_order(status='in_progress', last_status_change_at=STARTED)
    monitor = WorkOrderMonitor(sink, default_idle_policy=POLICY)

    assert monitor.scan([work_order], STARTED + timedelta(minutes=59)) == []

    monitor.scan([work_order], STARTED + timedelta(minutes=61))
    monitor.scan([work_order], STARTED + timedelta(minutes=90))
    assert sink.kinds == [SignalKind.IDLE_WARNING]
    assert sink.signals[0].entity_id == 'work-order-1'
    assert sink.signals[0].level == 1
    assert sink.signals[0].details['idle_minutes'] == 61.0

    monitor.scan([work_order], STARTED + timedelta(minutes=130))
    assert sink.kinds == [SignalKind.IDLE_WARNING, SignalKind.IDLE_ESCALATION]
    assert work_order.idle_signal_level == 2


def test_every_crossed_level_is_signalled_in_order(build_work_order, sink):
    work_order = build_work_order(status='waiting_parts', last_status_change_at=STARTED)
    signals = WorkOrderMonitor(sink, default_idle_policy=POLICY).scan([work_order], STARTED + timedelta(hours=5))
    assert [s.kind for s in signals] == [
        SignalKind.IDLE_WARNING, SignalKind.IDLE_ESCALATION, SignalKind.IDLE_AUTO_REASSIGN,
    ]
    assert [s.level for s in signals] == [1, 2, 3]
    assert sink.kinds == [s.kind for s in signals]
    assert work_order.idle_signal_level == 3


def test_status_change_restarts_idle_signalling(build_work_order, sink):
    work_order = build_work_order(status='in_progress', last_status_change_at=STARTED)
    monitor = WorkOrderMonitor(sink, default_idle_policy=POLICY)
    monitor.scan([work_order], STARTED + timedelta(minutes=70))

    held_at = STARTED + timedelta(minutes=80)
    WorkOrderLifecycle(work_order).hold(WorkOrderStatus.WAITING_PARTS, now=held_at)
    assert work_order.idle_signal_level == 0

    monitor.scan([work_order], held_at + timedelta(minutes=65))
    assert sink.kinds == [SignalKind.IDLE_WARNING, SignalKind.IDLE_WARNING]


def test_work_order_policy_wins(build_work_order, sink):
    own = {'warning_minutes': 5, 'escalation_minutes': 10, 'auto_reassign_minutes': 15}
    work_order = build_work_order(status='in_progress', last_status_change_at=STARTED, idle_policy=own)
    signals = WorkOrderMonitor(sink, default_idle_policy=POLICY).scan([work_order], STARTED + timedelta(minutes=11))
    assert [s.kind for s in signals] == [SignalKind.IDLE_WARNING, SignalKind.IDLE_ESCALATION]


def test_not_active_work_orders_are_not_idle(build_work_order, sink):
    drafted = build_work_order(last_status_change_at=STARTED)
    scheduled = build_work_order(id=2, status='scheduled', last_status_change_at=STARTED)
    signals = WorkOrderMonitor(sink, default_idle_policy=POLICY).scan([drafted, scheduled], STARTED + timedelta(days=3))
    assert signals == []


def test_sla_breach_signalled_once(build_work_order, sink):
    target = STARTED + timedelta(hours=4)
    work_order = build_work_order(status='scheduled', sla_target_at=target)
    monitor = WorkOrderMonitor(sink, default_idle_policy=POLICY)

    assert monitor.scan([work_order], target) == []
    breach_at = target + timedelta(minutes=1)
    monitor.scan([work_order], breach_at)
    monitor.scan([work_order], breach_at + timedelta(hours=1))

    assert sink.kinds == [SignalKind.SLA_BREACH]
    assert work_order.sla_breach_signaled_at == breach_at
    assert sink.signals[0].details['sla_target_at'] == target.isoformat()


def test_finished_and_terminal_work_orders_do_not_breach(build_work_order, sink):
    target = STARTED + timedelta(hours=4)
    completed = build_work_order(status='completed', sla_target_at=target)
    canceled = build_work_order(id=2, status='canceled', sla_target_at=target)
    rejected = build_work_order(id=3, status='rejected', sla_target_at=target)
    signals = WorkOrderMonitor(sink, default_idle_policy=POLICY).scan(
        [completed, canceled, rejected], target + timedelta(days=1)
    )
    assert signals == []


def test_monitor_never_changes_status(build_work_order, sink):
    work_order = build_work_order(
        status='in_progress', last_status_change_at=STARTED, sla_target_at=STARTED + timedelta(hours=1)
    )
    WorkOrderMonitor(sink, default_idle_policy=POLICY).scan([work_order], STARTED + timedelta(days=2))
    assert work_order.status == 'in_progress'
    assert work_order.last_status_change_at == STARTED
    assert sink.kinds == [
        SignalKind.IDLE_WARNING, SignalKind.IDLE_ESCALATION, SignalKind.IDLE_AUTO_REASSIGN, SignalKind.SLA_BREACH,
    ]


def test_scan_tenant_persists_markers(db_session, sink):
    work_order = WorkOrderFactory.create_manual(
        tenant_id='tenant-a', asset_id='asset-1', title='Belt change',
        sla_target_at=STARTED + timedelta(hours=2), now=STARTED,
    )
    context = WorkOrderContext(work_order)
    context.schedule(STARTED, STARTED + timedelta(hours=1), now=STARTED)
    context.assign_technician('tech-1', now=STARTED)
    context.start(now=STARTED)

    monitor = WorkOrderMonitor(sink, default_idle_policy=POLICY)
    now = STARTED + timedelta(hours=3)
    signals = monitor.scan_tenant('tenant-a', now)

    assert [s.kind for s in signals] == [SignalKind.IDLE_WARNING, SignalKind.IDLE_ESCALATION, SignalKind.SLA_BREACH]
    db_session.expire_all()
    stored = db_session.get(WorkOrder, work_order.id)
    assert stored.idle_signal_level == 2
    assert stored.sla_breach_signaled_at == now

    assert monitor.scan_tenant('tenant-a', now + timedelta(minutes=5)) == []


def test_scan_uses_configured_default_policy(app, build_work_order, sink):
    # DEFAULT_IDLE_WARNING_MINUTES defaults to 240
    work_order = build_work_order(status='in_progress', last_status_change_at=STARTED)
    monitor = WorkOrderMonitor(sink)
    assert monitor.scan([work_order], STARTED + timedelta(minutes=200)) == []
    assert [s.kind for s in monitor.scan([work_order], STARTED + timedelta(minutes=241))] == [SignalKind.IDLE_WARNING]


def test_logging_sink_accepts_every_kind():
    sink = LoggingNotificationSink()
    for kind in (SignalKind.IDLE_WARNING, SignalKind.IDLE_ESCALATION,
                 SignalKind.IDLE_AUTO_REASSIGN, SignalKind.SLA_BREACH):
        signal = WorkOrderSignal(entity_id='work-order-1', kind=kind, detected_at=STARTED)
        sink.notify(signal)
        assert signal.to_dict()['kind'] == kind
