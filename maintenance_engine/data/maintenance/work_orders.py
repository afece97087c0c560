from maintenance_engine.data.core.user_created_base import UserCreatedBase
from maintenance_engine.data.maintenance.enums import WorkOrderStatus, WorkOrderOrigin
from maintenance_engine import db
from sqlalchemy.orm import relationship


class WorkOrder(UserCreatedBase):
    """
    Work order - unit of maintenance execution.
    Never deleted; ends in one of the terminal statuses instead.
    """
    __tablename__ = 'work_orders'

    # Sources
    asset_id = db.Column(db.String(64), nullable=False, index=True)
    ticket_id = db.Column(db.String(64), nullable=True)
    maintenance_plan_id = db.Column(db.Integer, db.ForeignKey('maintenance_plans.id'), nullable=True, index=True)
    origin = db.Column(db.String(20), nullable=False, default=WorkOrderOrigin.MANUAL.value)
    generation_key = db.Column(db.String(128), nullable=True, unique=True)

    # Header
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    priority = db.Column(db.String(20), nullable=False, default='medium')
    estimated_duration = db.Column(db.Integer, nullable=False, default=0)  # minutes

    # Lifecycle
    status = db.Column(db.String(20), nullable=False, default=WorkOrderStatus.DRAFTED.value, index=True)
    status_reason = db.Column(db.Text, nullable=True)
    last_status_change_at = db.Column(db.DateTime, nullable=True)
    completion_percentage = db.Column(db.Integer, nullable=False, default=0)

    # Schedule and execution
    scheduled_start = db.Column(db.DateTime, nullable=True)
    scheduled_end = db.Column(db.DateTime, nullable=True)
    actual_start = db.Column(db.DateTime, nullable=True)
    actual_end = db.Column(db.DateTime, nullable=True)

    # SLA and idle policy
    sla_target_at = db.Column(db.DateTime, nullable=True, index=True)
    idle_policy = db.Column(db.JSON, nullable=True)
    idle_signal_level = db.Column(db.Integer, nullable=False, default=0)
    sla_breach_signaled_at = db.Column(db.DateTime, nullable=True)

    # Assignment (technician XOR team)
    assigned_technician_id = db.Column(db.String(64), nullable=True, index=True)
    assigned_team_id = db.Column(db.String(64), nullable=True)

    # Approval
    requires_approval = db.Column(db.Boolean, nullable=False, default=True)
    approval_status = db.Column(db.String(20), nullable=True)

    # Costs
    labor_cost = db.Column(db.Float, nullable=False, default=0.0)
    parts_cost = db.Column(db.Float, nullable=False, default=0.0)
    external_cost = db.Column(db.Float, nullable=False, default=0.0)
    total_cost = db.Column(db.Float, nullable=False, default=0.0)

    # Optimistic concurrency: a stale copy cannot commit a transition
    version_id = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {'version_id_col': version_id}

    # Relationships
    maintenance_plan = relationship('MaintenancePlan', back_populates='work_orders', lazy='select')
    tasks = relationship(
        'WorkOrderTask',
        back_populates='work_order',
        lazy='selectin',
        order_by='WorkOrderTask.sequence',
        cascade='all, delete-orphan'
    )
    status_changes = relationship(
        'WorkOrderStatusChange',
        back_populates='work_order',
        lazy='select',
        order_by='[WorkOrderStatusChange.changed_at, WorkOrderStatusChange.id]',
        cascade='all, delete-orphan'
    )

    def __init__(self, **kwargs):
        # Column defaults only apply on flush; the lifecycle also works on unsaved work orders
        kwargs.setdefault('status', WorkOrderStatus.DRAFTED.value)
        kwargs.setdefault('origin', WorkOrderOrigin.MANUAL.value)
        kwargs.setdefault('priority', 'medium')
        kwargs.setdefault('completion_percentage', 0)
        kwargs.setdefault('idle_signal_level', 0)
        kwargs.setdefault('requires_approval', True)
        kwargs.setdefault('labor_cost', 0.0)
        kwargs.setdefault('parts_cost', 0.0)
        kwargs.setdefault('external_cost', 0.0)
        kwargs.setdefault('total_cost', 0.0)
        super().__init__(**kwargs)

    def __repr__(self):
        return f'<WorkOrder {self.id}: {self.title} - {self.status}>'
