"""
Tests for WorkOrderContext: persisted lifecycle operations, audit trail,
optimistic concurrency and work order queries.
"""

from datetime import datetime, timedelta
import pytest
from sqlalchemy import text
from sqlalchemy.orm.exc import StaleDataError
from maintenance_engine.buisness.maintenance.factories.work_order_factory import WorkOrderFactory
from maintenance_engine.buisness.maintenance.work_orders.work_order_context import WorkOrderContext
from maintenance_engine.data.maintenance.enums import WorkOrderStatus
from maintenance_engine.data.maintenance.work_orders import WorkOrder
from maintenance_engine.data.maintenance.work_order_status_changes import WorkOrderStatusChange
from maintenance_engine.buisness.maintenance.errors import IllegalTransition, InvalidProgress


TENANT = 'tenant-a'
T0 = datetime(2025, 1, 10, 8, 0)


@pytest.fixture
def make_work_order(db_session):
    def _make(**overrides):
        values = {'tenant_id': TENANT, 'asset_id': 'asset-1', 'title': 'Replace filter', 'now': T0}
        values.update(overrides)
        return WorkOrderFactory.create_manual(**values)
    return _make


def test_full_lifecycle_is_audited(make_work_order, db_session):
    context = WorkOrderContext(make_work_order().id)

    context.schedule(T0 + timedelta(hours=1), T0 + timedelta(hours=3), user_id='planner-1', now=T0)
    context.assign_technician('tech-1', user_id='planner-1', now=T0 + timedelta(minutes=5))
    context.start(user_id='tech-1', now=T0 + timedelta(hours=1))
    context.update_progress(100, user_id='tech-1', now=T0 + timedelta(hours=2))
    context.update_costs(labor=80, parts=19.99, user_id='tech-1', now=T0 + timedelta(hours=2, minutes=5))
    context.complete(user_id='tech-1', now=T0 + timedelta(hours=2, minutes=10))
    context.approve(user_id='supervisor-1', now=T0 + timedelta(hours=3))
    context.close(user_id='supervisor-1', now=T0 + timedelta(hours=4))

    assert context.status == WorkOrderStatus.CLOSED
    assert context.allowed_transitions == set()
    assert context.work_order.total_cost == 99.99
    assert context.work_order.actual_start == T0 + timedelta(hours=1)

    history = context.history
    assert [h.operation for h in history] == [
        'create', 'schedule', 'assign_technician', 'start', 'update_progress',
        'update_costs', 'complete', 'approve', 'close',
    ]
    assert history[0].from_status is None
    assert history[0].to_status == 'drafted'
    assert history[0].narrative == f"Work order created (ID: {context.id}) from manual"
    assert history[1].from_status == 'drafted'
    assert history[1].to_status == 'scheduled'
    assert history[1].actor_id == 'planner-1'
    assert 'drafted → scheduled' in history[1].narrative
    assert history[2].narrative == 'Assigned to technician tech-1'
    assert history[4].narrative == 'Progress updated: 0% → 100%'
    assert history[5].narrative == 'Costs updated | Total: 99.99'
    assert context.last_change.operation == 'close'


def test_failed_operation_leaves_no_trace(make_work_order, db_session):
    context = WorkOrderContext(make_work_order())
    context.schedule(T0 + timedelta(hours=1), T0 + timedelta(hours=3), now=T0)

    with pytest.raises(IllegalTransition):
        context.start(now=T0 + timedelta(hours=1))
    with pytest.raises(InvalidProgress):
        context.update_progress(150)

    work_order = db_session.get(WorkOrder, context.id)
    assert work_order.status == 'scheduled'
    assert work_order.actual_start is None
    assert WorkOrderStatusChange.query.filter_by(work_order_id=context.id).count() == 2


def test_reason_is_narrated(make_work_order):
    context = WorkOrderContext(make_work_order())
    context.cancel('Asset decommissioned', user_id='planner-1', now=T0)
    assert context.status == WorkOrderStatus.CANCELED
    assert context.work_order.status_reason == 'Asset decommissioned'
    assert context.history[-1].narrative.endswith('| Reason: Asset decommissioned')


def test_stale_copy_cannot_commit(make_work_order, db_session):
    context = WorkOrderContext(make_work_order())
    # another writer bumps the row version behind this session's back
    db_session.execute(
        text("UPDATE work_orders SET version_id = version_id + 1 WHERE id = :id"),
        {'id': context.id}
    )

    with pytest.raises(StaleDataError):
        context.assign_technician('tech-1', now=T0)
    assert [h.operation for h in WorkOrderStatusChange.query.all()] == ['create']


def test_version_increments_on_each_change(make_work_order):
    context = WorkOrderContext(make_work_order())
    version = context.work_order.version_id
    context.assign_team('team-a', now=T0)
    assert context.work_order.version_id == version + 1


def test_find_overdue(make_work_order):
    late = make_work_order(title='Late', sla_target_at=T0 + timedelta(hours=1))
    make_work_order(title='On time', sla_target_at=T0 + timedelta(days=2))
    make_work_order(title='No SLA')
    done = make_work_order(title='Done', sla_target_at=T0, requires_approval=False)
    context = WorkOrderContext(done)
    context.schedule(T0, T0 + timedelta(hours=1), now=T0)
    context.assign_technician('tech-1', now=T0)
    context.start(now=T0)
    context.update_progress(100, now=T0)
    context.complete(now=T0)
    make_work_order(title='Other tenant', tenant_id='tenant-b', sla_target_at=T0)

    overdue = WorkOrderContext.find_overdue(TENANT, T0 + timedelta(hours=2))
    assert [wo.id for wo in overdue] == [late.id]


def test_find_past_schedule_and_active(make_work_order):
    running = make_work_order(title='Running')
    context = WorkOrderContext(running)
    context.schedule(T0, T0 + timedelta(hours=1), now=T0)
    context.assign_technician('tech-1', now=T0)
    context.start(now=T0)

    pending = make_work_order(title='Pending')
    WorkOrderContext(pending).schedule(T0 + timedelta(days=1), T0 + timedelta(days=1, hours=2), now=T0)

    past = WorkOrderContext.find_past_schedule(TENANT, T0 + timedelta(hours=2))
    assert [wo.id for wo in past] == [running.id]
    assert [wo.id for wo in WorkOrderContext.find_active(TENANT)] == [running.id]


def test_unknown_work_order(db_session):
    with pytest.raises(ValueError):
        WorkOrderContext(424242)
