"""
Maintenance Business Layer
Contains value objects, planners, factories and the work order lifecycle.

Organization:
- structs/ : Value objects stored as JSON on plans and work orders
- planning/ : Recurrence, seasonal adjustment, eligibility and scheduled generation
- factories/ : Work order creation from plans or by hand
- work_orders/ : State machine, lifecycle, context and monitor
- notifications/ : NotificationSink implementations
"""

from maintenance_engine.buisness.maintenance.errors import (
    MaintenanceDomainError,
    MaintenanceValidationError,
    MaintenanceStateError,
)
from maintenance_engine.buisness.maintenance.collaborators import (
    PlanQuery,
    PlanPersistence,
    WorkOrderFactoryCollaborator,
    NotificationSink,
    WorkOrderSignal,
    SignalKind,
)
from maintenance_engine.buisness.maintenance.planning import (
    RecurrenceCalculator,
    SeasonalAdjuster,
    PlanEligibilityEvaluator,
    MaintenancePlanContext,
    ScheduledGenerationOrchestrator,
)
from maintenance_engine.buisness.maintenance.factories import WorkOrderFactory
from maintenance_engine.buisness.maintenance.work_orders import (
    WorkOrderLifecycle,
    WorkOrderContext,
    WorkOrderMonitor,
)

__all__ = [
    'MaintenanceDomainError',
    'MaintenanceValidationError',
    'MaintenanceStateError',
    'PlanQuery',
    'PlanPersistence',
    'WorkOrderFactoryCollaborator',
    'NotificationSink',
    'WorkOrderSignal',
    'SignalKind',
    'RecurrenceCalculator',
    'SeasonalAdjuster',
    'PlanEligibilityEvaluator',
    'MaintenancePlanContext',
    'ScheduledGenerationOrchestrator',
    'WorkOrderFactory',
    'WorkOrderLifecycle',
    'WorkOrderContext',
    'WorkOrderMonitor',
]
