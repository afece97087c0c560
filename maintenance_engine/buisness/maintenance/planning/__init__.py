"""
Maintenance Planning Business Logic
Decides when plans are due and turns due plans into work orders.
"""

from maintenance_engine.buisness.maintenance.planning.recurrence_calculator import RecurrenceCalculator
from maintenance_engine.buisness.maintenance.planning.seasonal_adjuster import SeasonalAdjuster
from maintenance_engine.buisness.maintenance.planning.plan_eligibility import PlanEligibilityEvaluator
from maintenance_engine.buisness.maintenance.planning.task_dependency_graph import TaskDependencyGraph
from maintenance_engine.buisness.maintenance.planning.maintenance_plan_context import MaintenancePlanContext
from maintenance_engine.buisness.maintenance.planning.sql_plan_repository import SqlPlanRepository
from maintenance_engine.buisness.maintenance.planning.generation_result import GenerationRunResult
from maintenance_engine.buisness.maintenance.planning.scheduled_generation_orchestrator import (
    ScheduledGenerationOrchestrator,
)

__all__ = [
    'RecurrenceCalculator',
    'SeasonalAdjuster',
    'PlanEligibilityEvaluator',
    'TaskDependencyGraph',
    'MaintenancePlanContext',
    'SqlPlanRepository',
    'GenerationRunResult',
    'ScheduledGenerationOrchestrator',
]
