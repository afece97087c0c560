from maintenance_engine import db
from maintenance_engine.utils.dates import utcnow
from sqlalchemy.orm import relationship


class MaintenancePlanGeneration(db.Model):
    """
    One row per recorded generation cycle of a maintenance plan.
    dedup_key is unique: a replayed cycle cannot be recorded twice.
    """
    __tablename__ = 'maintenance_plan_generations'

    id = db.Column(db.Integer, primary_key=True)
    maintenance_plan_id = db.Column(db.Integer, db.ForeignKey('maintenance_plans.id'), nullable=False, index=True)
    dedup_key = db.Column(db.String(128), nullable=False, unique=True)
    generated_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    next_scheduled_at = db.Column(db.DateTime, nullable=True)
    work_order_id = db.Column(db.Integer, db.ForeignKey('work_orders.id'), nullable=True)

    maintenance_plan = relationship('MaintenancePlan', back_populates='generations')
    work_order = relationship('WorkOrder', foreign_keys=[work_order_id])

    def __repr__(self):
        return f'<MaintenancePlanGeneration {self.dedup_key}>'
