from maintenance_engine import db
from maintenance_engine.utils.dates import utcnow
from sqlalchemy.orm import relationship


class WorkOrderStatusChange(db.Model):
    """Audit trail entry written for every work order mutation"""
    __tablename__ = 'work_order_status_changes'

    id = db.Column(db.Integer, primary_key=True)
    work_order_id = db.Column(db.Integer, db.ForeignKey('work_orders.id'), nullable=False, index=True)
    operation = db.Column(db.String(40), nullable=False)
    from_status = db.Column(db.String(20), nullable=True)
    to_status = db.Column(db.String(20), nullable=True)
    actor_id = db.Column(db.String(64), nullable=True)
    narrative = db.Column(db.Text, nullable=True)
    changed_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    work_order = relationship('WorkOrder', back_populates='status_changes')

    def __repr__(self):
        return f'<WorkOrderStatusChange {self.work_order_id}: {self.operation} {self.from_status} -> {self.to_status}>'
