"""
Work Order Factory
Creates work orders (with their tasks) from maintenance plans or by hand.
Handles transaction management and validates business rules.
"""

from typing import Any, Dict, Iterable, List, Optional
from datetime import datetime, timedelta
from maintenance_engine import db
from maintenance_engine.logger import get_logger
from maintenance_engine.data.maintenance.work_orders import WorkOrder
from maintenance_engine.data.maintenance.work_order_tasks import WorkOrderTask
from maintenance_engine.data.maintenance.work_order_status_changes import WorkOrderStatusChange
from maintenance_engine.data.maintenance.enums import (
    ApprovalStatus,
    TaskStatus,
    WorkOrderOrigin,
    WorkOrderStatus,
    WORK_ORDER_PRIORITIES,
)
from maintenance_engine.buisness.maintenance.collaborators import WorkOrderFactoryCollaborator
from maintenance_engine.buisness.maintenance.planning.task_dependency_graph import TaskDependencyGraph
from maintenance_engine.buisness.maintenance.work_orders.narrator import WorkOrderNarrator
from maintenance_engine.buisness.maintenance.structs import IdlePolicy, TaskTemplate
from maintenance_engine.buisness.maintenance.errors import MaintenanceValidationError
from maintenance_engine.utils.dates import utcnow

logger = get_logger("maintenance_engine.buisness.maintenance.factories")


class WorkOrderFactory(WorkOrderFactoryCollaborator):
    """
    Factory for work orders.

    Responsibilities:
    - Copy a plan's task template onto a new work order
    - Derive schedule window, SLA target and idle policy from the plan
    - Stay idempotent on the generation (dedup) key
    """

    @classmethod
    def create_from_plan(
        cls,
        plan,
        dedup_key: str,
        now: Optional[datetime] = None,
        extra_task_ids: Iterable[str] = (),
        user_id: Optional[str] = None,
        commit: bool = False
    ) -> WorkOrder:
        """
        Create the preventive work order for one plan cycle.

        Process:
        1. Return the existing work order if dedup_key was already used
        2. Validate the plan's task template (DAG)
        3. Create the WorkOrder, scheduled lead_time_hours after generation
        4. Create WorkOrderTasks; seasonal extra tasks become mandatory

        Args:
            plan: MaintenancePlan to generate from
            dedup_key: Generation key, unique per plan cycle
            now: Generation time (defaults to utcnow)
            extra_task_ids: Template task ids the current season makes mandatory
            user_id: Acting user id (defaults to the plan's creator)
            commit: Whether to commit the transaction (default: False, the
                orchestrator owns the unit of work)

        Returns:
            Created (or previously created) WorkOrder

        Raises:
            InvalidTaskTemplate: If the plan's template is malformed
        """
        existing = WorkOrder.query.filter_by(generation_key=dedup_key).first()
        if existing is not None:
            logger.debug(f"Work order {existing.id} already generated for {dedup_key}")
            return existing

        now = now or utcnow()
        entity_id = f"plan-{plan.id}"
        tasks = TaskDependencyGraph.validate(plan.task_template or [], entity_id=entity_id)
        idle_policy = IdlePolicy.from_dict(plan.idle_policy, entity_id=entity_id)

        scheduled_start = now + timedelta(hours=plan.lead_time_hours or 0)
        work_order = WorkOrder(
            tenant_id=plan.tenant_id,
            asset_id=plan.asset_id,
            maintenance_plan_id=plan.id,
            origin=WorkOrderOrigin.PM.value,
            generation_key=dedup_key,
            title=plan.name,
            description=plan.description,
            priority=plan.priority,
            estimated_duration=plan.estimated_duration or 0,
            status=WorkOrderStatus.DRAFTED.value,
            last_status_change_at=now,
            scheduled_start=scheduled_start,
            scheduled_end=scheduled_start + timedelta(minutes=plan.estimated_duration or 0),
            sla_target_at=now + timedelta(hours=plan.sla_target_hours) if plan.sla_target_hours else None,
            idle_policy=idle_policy.to_dict() if idle_policy else None,
            requires_approval=True,
            approval_status=ApprovalStatus.PENDING.value,
            created_by_id=user_id or plan.created_by_id,
            updated_by_id=user_id or plan.created_by_id,
        )
        db.session.add(work_order)

        mandatory = set(extra_task_ids or ())
        cls._add_tasks(work_order, tasks, mandatory)
        cls._record_creation(work_order, now, user_id or plan.created_by_id)

        if commit:
            db.session.commit()
        else:
            db.session.flush()

        logger.info(
            f"Created work order {work_order.id} from plan {plan.id} "
            f"with {len(tasks)} tasks ({dedup_key})"
        )
        return work_order

    @classmethod
    def create_manual(
        cls,
        tenant_id: str,
        asset_id: str,
        title: str,
        origin: str = WorkOrderOrigin.MANUAL.value,
        priority: str = 'medium',
        description: Optional[str] = None,
        ticket_id: Optional[str] = None,
        estimated_duration: int = 0,
        tasks: Optional[List[Dict[str, Any]]] = None,
        requires_approval: bool = True,
        sla_target_at: Optional[datetime] = None,
        idle_policy: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
        now: Optional[datetime] = None,
        commit: bool = True
    ) -> WorkOrder:
        """
        Create a work order that does not come from a plan (incident, manual, condition).

        Raises:
            MaintenanceValidationError: If origin, priority or title are invalid
            InvalidTaskTemplate / InvalidIdlePolicy: If tasks or idle policy are malformed
        """
        if origin not in {o.value for o in WorkOrderOrigin}:
            raise MaintenanceValidationError(
                f"Unknown origin '{origin}'",
                operation='create_work_order',
                invariant=f"origin in {[o.value for o in WorkOrderOrigin]}"
            )
        if priority not in WORK_ORDER_PRIORITIES:
            raise MaintenanceValidationError(
                f"Unknown priority '{priority}'",
                operation='create_work_order',
                invariant=f"priority in {list(WORK_ORDER_PRIORITIES)}"
            )
        if not title:
            raise MaintenanceValidationError("Work order title is required", operation='create_work_order')

        now = now or utcnow()
        validated_tasks = TaskDependencyGraph.validate(tasks or [], entity_id=f"work-order:{title}")
        policy = IdlePolicy.from_dict(idle_policy)

        work_order = WorkOrder(
            tenant_id=tenant_id,
            asset_id=asset_id,
            ticket_id=ticket_id,
            origin=origin,
            title=title,
            description=description,
            priority=priority,
            estimated_duration=estimated_duration,
            status=WorkOrderStatus.DRAFTED.value,
            last_status_change_at=now,
            sla_target_at=sla_target_at,
            idle_policy=policy.to_dict() if policy else None,
            requires_approval=requires_approval,
            approval_status=ApprovalStatus.PENDING.value if requires_approval else None,
            created_by_id=user_id,
            updated_by_id=user_id,
        )
        db.session.add(work_order)
        cls._add_tasks(work_order, validated_tasks, set())
        cls._record_creation(work_order, now, user_id)

        if commit:
            db.session.commit()
        else:
            db.session.flush()

        logger.info(f"Created {origin} work order {work_order.id} for asset {asset_id}")
        return work_order

    @staticmethod
    def _add_tasks(work_order: WorkOrder, tasks: List[TaskTemplate], mandatory: set) -> None:
        for task in sorted(tasks, key=lambda t: t.sequence):
            work_order.tasks.append(WorkOrderTask(
                task_key=task.id,
                sequence=task.sequence,
                name=task.name,
                description=task.description,
                estimated_duration=task.estimated_duration,
                dependencies=list(task.dependencies),
                checklist=list(task.checklist),
                required_parts=list(task.required_parts),
                is_optional=task.is_optional and task.id not in mandatory,
                status=TaskStatus.PENDING.value,
            ))

    @staticmethod
    def _record_creation(work_order: WorkOrder, now: datetime, actor_id: Optional[str]) -> None:
        """First audit entry of every work order; flushes to obtain the id"""
        db.session.flush()
        db.session.add(WorkOrderStatusChange(
            work_order_id=work_order.id,
            operation='create',
            from_status=None,
            to_status=work_order.status,
            actor_id=actor_id,
            narrative=WorkOrderNarrator.created(work_order),
            changed_at=now,
        ))
