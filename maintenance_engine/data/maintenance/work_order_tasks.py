from maintenance_engine import db
from maintenance_engine.data.maintenance.enums import TaskStatus
from maintenance_engine.utils.dates import utcnow
from sqlalchemy.orm import relationship


class WorkOrderTask(db.Model):
    """
    Task materialized on a work order from a plan template task.
    task_key keeps the template task id so dependencies stay resolvable.
    """
    __tablename__ = 'work_order_tasks'
    __table_args__ = (
        db.UniqueConstraint('work_order_id', 'sequence', name='uq_work_order_task_sequence'),
    )

    id = db.Column(db.Integer, primary_key=True)
    work_order_id = db.Column(db.Integer, db.ForeignKey('work_orders.id'), nullable=False, index=True)
    task_key = db.Column(db.String(64), nullable=False)
    sequence = db.Column(db.Integer, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    estimated_duration = db.Column(db.Integer, nullable=False, default=0)  # minutes
    dependencies = db.Column(db.JSON, nullable=True)
    checklist = db.Column(db.JSON, nullable=True)
    required_parts = db.Column(db.JSON, nullable=True)
    is_optional = db.Column(db.Boolean, nullable=False, default=False)
    status = db.Column(db.String(20), nullable=False, default=TaskStatus.PENDING.value)
    created_at = db.Column(db.DateTime, default=utcnow)

    work_order = relationship('WorkOrder', back_populates='tasks')

    def __repr__(self):
        return f'<WorkOrderTask {self.id}: #{self.sequence} {self.name}>'
