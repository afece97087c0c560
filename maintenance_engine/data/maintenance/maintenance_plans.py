from maintenance_engine.data.core.user_created_base import UserCreatedBase
from maintenance_engine import db
from sqlalchemy.orm import relationship


class MaintenancePlan(UserCreatedBase):
    __tablename__ = 'maintenance_plans'

    #header fields
    asset_id = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    trigger_type = db.Column(db.String(20), nullable=False, default='time')  # time, meter, condition
    priority = db.Column(db.String(20), nullable=False, default='medium')
    estimated_duration = db.Column(db.Integer, nullable=False, default=60)  # minutes
    lead_time_hours = db.Column(db.Integer, nullable=False, default=24)
    sla_target_hours = db.Column(db.Integer, nullable=True)

    #content fields (JSON documents, see buisness.maintenance.structs)
    frequency = db.Column(db.JSON, nullable=False)
    task_template = db.Column(db.JSON, nullable=False, default=list)
    seasonal_adjustments = db.Column(db.JSON, nullable=True)
    idle_policy = db.Column(db.JSON, nullable=True)

    #effective window
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    effective_from = db.Column(db.DateTime, nullable=False)
    effective_to = db.Column(db.DateTime, nullable=True)

    #schedule fields, written only when a generation is recorded
    last_generated_at = db.Column(db.DateTime, nullable=True)
    next_scheduled_at = db.Column(db.DateTime, nullable=True, index=True)
    generation_count = db.Column(db.Integer, nullable=False, default=0)

    work_orders = relationship('WorkOrder', back_populates='maintenance_plan', lazy='select')
    generations = relationship(
        'MaintenancePlanGeneration',
        back_populates='maintenance_plan',
        lazy='select',
        order_by='MaintenancePlanGeneration.generated_at'
    )

    def __repr__(self):
        return f'<MaintenancePlan {self.id}: {self.name}>'
