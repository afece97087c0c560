from maintenance_engine import db
from maintenance_engine.utils.dates import utcnow
from sqlalchemy.orm import declared_attr


class UserCreatedBase(db.Model):
    """Abstract base class for all tenant-scoped, user-created entities with audit trail"""

    __abstract__ = True

    @declared_attr
    def __tablename__(cls):
        return cls.__name__.lower() + 's'

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.String(64), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    # Actor ids come from the identity collaborator and are opaque strings
    created_by_id = db.Column(db.String(64), nullable=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
    updated_by_id = db.Column(db.String(64), nullable=True)

    def get_columns(self):
        return {
            'id', 'tenant_id', 'created_at', 'created_by_id', 'updated_at', 'updated_by_id'
        }
