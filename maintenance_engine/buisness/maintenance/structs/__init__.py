"""
Value objects for maintenance plans and work orders.
"""

from maintenance_engine.buisness.maintenance.structs.frequency_spec import FrequencySpec
from maintenance_engine.buisness.maintenance.structs.seasonal_adjustment import (
    SeasonalAdjustment,
    SEASONS,
    parse_seasonal_adjustments,
)
from maintenance_engine.buisness.maintenance.structs.task_template import TaskTemplate
from maintenance_engine.buisness.maintenance.structs.idle_policy import IdlePolicy, IdleThreshold

__all__ = [
    'FrequencySpec',
    'SeasonalAdjustment',
    'SEASONS',
    'parse_seasonal_adjustments',
    'TaskTemplate',
    'IdlePolicy',
    'IdleThreshold',
]
