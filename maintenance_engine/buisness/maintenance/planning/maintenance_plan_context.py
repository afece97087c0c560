"""
Maintenance Plan Context
Business logic context manager for maintenance plans.
Provides plan creation and editing, activation, and schedule recording.
"""

from typing import Any, Dict, List, Optional, Union
from datetime import datetime
from sqlalchemy import or_
from maintenance_engine import db
from maintenance_engine.data.maintenance.maintenance_plans import MaintenancePlan
from maintenance_engine.data.maintenance.maintenance_plan_generations import MaintenancePlanGeneration
from maintenance_engine.data.maintenance.enums import FrequencyType, TriggerType, PLAN_PRIORITIES
from maintenance_engine.buisness.maintenance.structs import (
    FrequencySpec,
    IdlePolicy,
    SeasonalAdjustment,
    TaskTemplate,
    parse_seasonal_adjustments,
)
from maintenance_engine.buisness.maintenance.planning.task_dependency_graph import TaskDependencyGraph
from maintenance_engine.buisness.maintenance.errors import (
    InvalidFrequencySpec,
    InvalidScheduleWindow,
    InvalidSeasonalAdjustment,
    MaintenanceValidationError,
)
from maintenance_engine.utils.dates import utcnow
from maintenance_engine.logger import get_logger

logger = get_logger("maintenance_engine.buisness.maintenance.planning")


# Frequency types each trigger type may use
TRIGGER_FREQUENCIES = {
    TriggerType.TIME.value: {FrequencyType.DAILY, FrequencyType.WEEKLY, FrequencyType.MONTHLY},
    TriggerType.METER.value: {FrequencyType.USAGE_BASED},
    TriggerType.CONDITION.value: {FrequencyType.CONDITION_BASED},
}


class MaintenancePlanContext:
    """
    Business logic context manager for maintenance plans.

    Wraps MaintenancePlan data table.
    Content fields (frequency, tasks, seasonal rules, ...) change only through
    update_content; schedule fields change only through record_generation.
    Plans are deactivated, never deleted.
    """

    CONTENT_FIELDS = {
        'asset_id', 'name', 'description', 'trigger_type', 'priority',
        'estimated_duration', 'lead_time_hours', 'sla_target_hours',
        'frequency', 'task_template', 'seasonal_adjustments', 'idle_policy',
        'effective_from', 'effective_to',
    }
    SCHEDULE_FIELDS = {'last_generated_at', 'next_scheduled_at', 'generation_count'}

    def __init__(self, maintenance_plan: Union[MaintenancePlan, int]):
        """
        Initialize MaintenancePlanContext with MaintenancePlan instance or ID.

        Args:
            maintenance_plan: MaintenancePlan instance or ID

        Raises:
            ValueError: If no plan exists with the given ID
        """
        if isinstance(maintenance_plan, int):
            plan = db.session.get(MaintenancePlan, maintenance_plan)
            if plan is None:
                raise ValueError(f"Maintenance plan {maintenance_plan} not found")
            self._maintenance_plan = plan
            self._maintenance_plan_id = maintenance_plan
        else:
            self._maintenance_plan = maintenance_plan
            self._maintenance_plan_id = maintenance_plan.id

    @property
    def maintenance_plan(self) -> MaintenancePlan:
        """Get the MaintenancePlan instance"""
        return self._maintenance_plan

    @property
    def id(self) -> int:
        return self._maintenance_plan_id

    @property
    def entity_id(self) -> str:
        return f"plan-{self._maintenance_plan_id}"

    @property
    def is_active(self) -> bool:
        return bool(self._maintenance_plan.is_active)

    @property
    def frequency_spec(self) -> FrequencySpec:
        return FrequencySpec.from_dict(self._maintenance_plan.frequency, entity_id=self.entity_id)

    @property
    def tasks(self) -> List[TaskTemplate]:
        """Template tasks in execution order"""
        return TaskDependencyGraph.validate(self._maintenance_plan.task_template or [], entity_id=self.entity_id)

    @property
    def seasonal_rules(self) -> List[SeasonalAdjustment]:
        return parse_seasonal_adjustments(self._maintenance_plan.seasonal_adjustments, entity_id=self.entity_id)

    @property
    def idle_policy(self) -> Optional[IdlePolicy]:
        return IdlePolicy.from_dict(self._maintenance_plan.idle_policy, entity_id=self.entity_id)

    @classmethod
    def create(
        cls,
        tenant_id: str,
        asset_id: str,
        name: str,
        frequency: Dict[str, Any],
        effective_from: datetime,
        task_template: Optional[List[Dict[str, Any]]] = None,
        seasonal_adjustments: Optional[List[Dict[str, Any]]] = None,
        idle_policy: Optional[Dict[str, Any]] = None,
        trigger_type: str = TriggerType.TIME.value,
        priority: str = 'medium',
        description: Optional[str] = None,
        estimated_duration: int = 60,
        lead_time_hours: int = 24,
        sla_target_hours: Optional[int] = None,
        effective_to: Optional[datetime] = None,
        user_id: Optional[str] = None,
        commit: bool = True
    ) -> 'MaintenancePlanContext':
        """
        Create a validated maintenance plan.

        Args:
            tenant_id: Owning tenant
            asset_id: Asset the plan maintains
            name: Plan name
            frequency: FrequencySpec JSON
            effective_from: Start of the effective window
            task_template: Template task JSON list
            seasonal_adjustments: Seasonal rule JSON list
            idle_policy: Idle threshold JSON
            user_id: Acting user id
            commit: Whether to commit the transaction (default: True)

        Returns:
            MaintenancePlanContext for the new plan

        Raises:
            MaintenanceValidationError (or a subclass) if any content is invalid
        """
        content = cls._validate_content({
            'asset_id': asset_id,
            'name': name,
            'description': description,
            'trigger_type': trigger_type,
            'priority': priority,
            'estimated_duration': estimated_duration,
            'lead_time_hours': lead_time_hours,
            'sla_target_hours': sla_target_hours,
            'frequency': frequency,
            'task_template': task_template or [],
            'seasonal_adjustments': seasonal_adjustments,
            'idle_policy': idle_policy,
            'effective_from': effective_from,
            'effective_to': effective_to,
        }, entity_id=f"plan:{name}")

        plan = MaintenancePlan(
            tenant_id=tenant_id,
            is_active=True,
            generation_count=0,
            created_by_id=user_id,
            updated_by_id=user_id,
            **content
        )
        db.session.add(plan)

        if commit:
            db.session.commit()
        else:
            db.session.flush()

        logger.info(f"Created maintenance plan {plan.id} '{plan.name}' for asset {plan.asset_id}")
        return cls(plan)

    def update_content(self, user_id: Optional[str] = None, commit: bool = True, **changes) -> 'MaintenancePlanContext':
        """
        Edit content fields of the plan. Schedule fields are refused.

        Returns:
            self for chaining

        Raises:
            MaintenanceValidationError: If a schedule or unknown field is given or content is invalid
        """
        schedule_changes = set(changes) & self.SCHEDULE_FIELDS
        if schedule_changes:
            raise MaintenanceValidationError(
                f"Schedule fields {sorted(schedule_changes)} cannot be edited",
                entity_id=self.entity_id,
                operation='update_content',
                invariant='schedule fields change only when a generation is recorded'
            )
        unknown = set(changes) - self.CONTENT_FIELDS
        if unknown:
            raise MaintenanceValidationError(
                f"Unknown plan fields {sorted(unknown)}",
                entity_id=self.entity_id,
                operation='update_content'
            )

        plan = self._maintenance_plan
        merged = {field: getattr(plan, field) for field in self.CONTENT_FIELDS}
        merged.update(changes)
        content = self._validate_content(merged, entity_id=self.entity_id)

        for field in changes:
            setattr(plan, field, content[field])
        if user_id is not None:
            plan.updated_by_id = user_id

        if commit:
            db.session.commit()
        logger.info(f"Updated maintenance plan {self.id}: {sorted(changes)}")
        return self

    def activate(self, user_id: Optional[str] = None) -> 'MaintenancePlanContext':
        """
        Activate the maintenance plan.

        Returns:
            self for chaining
        """
        self._maintenance_plan.is_active = True
        if user_id is not None:
            self._maintenance_plan.updated_by_id = user_id
        db.session.commit()
        return self

    def deactivate(self, user_id: Optional[str] = None) -> 'MaintenancePlanContext':
        """
        Deactivate the maintenance plan.

        Returns:
            self for chaining
        """
        self._maintenance_plan.is_active = False
        if user_id is not None:
            self._maintenance_plan.updated_by_id = user_id
        db.session.commit()
        return self

    def record_generation(
        self,
        generated_at: datetime,
        next_scheduled_at: datetime,
        dedup_key: str,
        work_order_id: Optional[int] = None
    ) -> bool:
        """
        Advance the schedule after a work order was generated.

        Idempotent on dedup_key: a key already recorded changes nothing.
        next_scheduled_at never moves backwards. Changes are flushed, not
        committed; the caller owns the transaction.

        Returns:
            True if the generation was recorded, False if dedup_key was seen before
        """
        existing = MaintenancePlanGeneration.query.filter_by(dedup_key=dedup_key).first()
        if existing is not None:
            logger.debug(f"Generation {dedup_key} already recorded for plan {self.id}")
            return False

        plan = self._maintenance_plan
        if plan.next_scheduled_at is not None and next_scheduled_at < plan.next_scheduled_at:
            logger.warning(
                f"Plan {self.id}: refusing to move next_scheduled_at back from "
                f"{plan.next_scheduled_at.isoformat()} to {next_scheduled_at.isoformat()}"
            )
            next_scheduled_at = plan.next_scheduled_at

        plan.last_generated_at = generated_at
        plan.next_scheduled_at = next_scheduled_at
        plan.generation_count = (plan.generation_count or 0) + 1

        db.session.add(MaintenancePlanGeneration(
            maintenance_plan_id=plan.id,
            dedup_key=dedup_key,
            generated_at=generated_at,
            next_scheduled_at=next_scheduled_at,
            work_order_id=work_order_id,
        ))
        db.session.flush()
        return True

    @staticmethod
    def get_active(tenant_id: str) -> List[MaintenancePlan]:
        return (
            MaintenancePlan.query
            .filter_by(tenant_id=tenant_id, is_active=True)
            .order_by(MaintenancePlan.id)
            .all()
        )

    @staticmethod
    def get_due_before(tenant_id: str, cutoff: Optional[datetime] = None) -> List[MaintenancePlan]:
        """Active time-triggered plans never generated or scheduled at or before cutoff"""
        cutoff = cutoff or utcnow()
        return (
            MaintenancePlan.query
            .filter(
                MaintenancePlan.tenant_id == tenant_id,
                MaintenancePlan.is_active.is_(True),
                MaintenancePlan.trigger_type == TriggerType.TIME.value,
                or_(
                    MaintenancePlan.next_scheduled_at.is_(None),
                    MaintenancePlan.next_scheduled_at <= cutoff,
                ),
            )
            .order_by(MaintenancePlan.id)
            .all()
        )

    @classmethod
    def _validate_content(cls, content: Dict[str, Any], entity_id=None) -> Dict[str, Any]:
        """Validate content fields and return them in their stored (JSON) form"""
        if not content.get('name'):
            raise MaintenanceValidationError("Plan name is required", entity_id=entity_id, operation='validate_plan')
        if not content.get('asset_id'):
            raise MaintenanceValidationError("Plan asset is required", entity_id=entity_id, operation='validate_plan')
        if content.get('priority') not in PLAN_PRIORITIES:
            raise MaintenanceValidationError(
                f"Unknown priority '{content.get('priority')}'",
                entity_id=entity_id,
                operation='validate_plan',
                invariant=f"priority in {list(PLAN_PRIORITIES)}"
            )

        frequency = FrequencySpec.from_dict(content.get('frequency'), entity_id=entity_id)
        trigger_type = content.get('trigger_type')
        if trigger_type not in TRIGGER_FREQUENCIES:
            raise MaintenanceValidationError(
                f"Unknown trigger type '{trigger_type}'",
                entity_id=entity_id,
                operation='validate_plan',
                invariant=f"trigger_type in {sorted(TRIGGER_FREQUENCIES)}"
            )
        if frequency.type not in TRIGGER_FREQUENCIES[trigger_type]:
            raise InvalidFrequencySpec(
                f"Frequency type '{frequency.type.value}' does not fit trigger type '{trigger_type}'",
                entity_id=entity_id,
                operation='validate_plan',
                invariant='time plans recur by calendar, meter plans by usage, condition plans by condition'
            )

        tasks = TaskDependencyGraph.validate(content.get('task_template') or [], entity_id=entity_id)
        task_ids = {task.id for task in tasks}

        rules = parse_seasonal_adjustments(content.get('seasonal_adjustments'), entity_id=entity_id)
        for rule in rules:
            unknown = [task_id for task_id in rule.extra_task_ids if task_id not in task_ids]
            if unknown:
                raise InvalidSeasonalAdjustment(
                    f"Season '{rule.season}' requires unknown tasks {unknown}",
                    entity_id=entity_id,
                    operation='validate_plan',
                    invariant='extra task ids reference template tasks'
                )

        idle_policy = IdlePolicy.from_dict(content.get('idle_policy'), entity_id=entity_id)

        effective_from = content.get('effective_from')
        effective_to = content.get('effective_to')
        if effective_from is None:
            raise MaintenanceValidationError(
                "effective_from is required", entity_id=entity_id, operation='validate_plan'
            )
        if effective_to is not None and effective_to < effective_from:
            raise InvalidScheduleWindow(
                f"Effective window ends ({effective_to}) before it starts ({effective_from})",
                entity_id=entity_id,
                operation='validate_plan',
                invariant='effective_from <= effective_to'
            )

        for field in ('estimated_duration', 'lead_time_hours'):
            value = content.get(field)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise MaintenanceValidationError(
                    f"{field} must be a non-negative integer, got {value!r}",
                    entity_id=entity_id,
                    operation='validate_plan'
                )
        sla_target_hours = content.get('sla_target_hours')
        if sla_target_hours is not None and (
            isinstance(sla_target_hours, bool) or not isinstance(sla_target_hours, int) or sla_target_hours <= 0
        ):
            raise MaintenanceValidationError(
                f"sla_target_hours must be a positive integer, got {sla_target_hours!r}",
                entity_id=entity_id,
                operation='validate_plan'
            )

        validated = dict(content)
        validated['frequency'] = frequency.to_dict()
        validated['task_template'] = [
            task.to_dict() for task in sorted(tasks, key=lambda task: task.sequence)
        ]
        validated['seasonal_adjustments'] = [rule.to_dict() for rule in rules] or None
        validated['idle_policy'] = idle_policy.to_dict() if idle_policy else None
        return validated
