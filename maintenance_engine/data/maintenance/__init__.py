from .maintenance_plans import MaintenancePlan
from .maintenance_plan_generations import MaintenancePlanGeneration
from .work_orders import WorkOrder
from .work_order_tasks import WorkOrderTask
from .work_order_status_changes import WorkOrderStatusChange
from .enums import (
    TriggerType,
    FrequencyType,
    WorkOrderStatus,
    WorkOrderOrigin,
    ApprovalStatus,
    TaskStatus,
)

__all__ = [
    # Models
    'MaintenancePlan',
    'MaintenancePlanGeneration',
    'WorkOrder',
    'WorkOrderTask',
    'WorkOrderStatusChange',

    # Value sets
    'TriggerType',
    'FrequencyType',
    'WorkOrderStatus',
    'WorkOrderOrigin',
    'ApprovalStatus',
    'TaskStatus',
]
