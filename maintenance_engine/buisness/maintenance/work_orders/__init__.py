"""
Work order business layer.

Main entry point: WorkOrderContext (persistence facade)

- WorkOrderStateMachine: status transition table
- WorkOrderLifecycle: guarded operations and SLA / idle evaluations
- WorkOrderNarrator: audit narrative generation
- WorkOrderMonitor: idle and SLA signalling
"""

from maintenance_engine.buisness.maintenance.work_orders.state_machine import WorkOrderStateMachine
from maintenance_engine.buisness.maintenance.work_orders.lifecycle import WorkOrderChange, WorkOrderLifecycle
from maintenance_engine.buisness.maintenance.work_orders.narrator import WorkOrderNarrator
from maintenance_engine.buisness.maintenance.work_orders.work_order_context import WorkOrderContext
from maintenance_engine.buisness.maintenance.work_orders.monitor import WorkOrderMonitor

__all__ = [
    'WorkOrderStateMachine',
    'WorkOrderChange',
    'WorkOrderLifecycle',
    'WorkOrderNarrator',
    'WorkOrderContext',
    'WorkOrderMonitor',
]
