"""
Maintenance Factories
Factory classes for creating work orders from plans or by hand.
"""

from maintenance_engine.buisness.maintenance.factories.work_order_factory import WorkOrderFactory

__all__ = [
    'WorkOrderFactory',
]
