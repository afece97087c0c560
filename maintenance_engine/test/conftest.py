"""
Pytest configuration and fixtures for maintenance engine tests
"""
from datetime import datetime
import pytest
from maintenance_engine import create_app
from maintenance_engine import db as _db
from maintenance_engine.buisness.maintenance.collaborators import NotificationSink
from maintenance_engine.buisness.maintenance.planning.maintenance_plan_context import MaintenancePlanContext
from maintenance_engine.data.maintenance.work_orders import WorkOrder


TENANT = 'tenant-a'


class RecordingNotificationSink(NotificationSink):
    """Keeps every signal it is handed"""

    def __init__(self):
        self.signals = []

    def notify(self, signal):
        self.signals.append(signal)

    @property
    def kinds(self):
        return [signal.kind for signal in self.signals]


@pytest.fixture(scope='session')
def app():
    """Create Flask application for testing"""
    app = create_app({
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'TESTING': True,
    })

    with app.app_context():
        yield app


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh schema per test"""
    _db.create_all()
    yield _db.session
    _db.session.remove()
    _db.drop_all()


@pytest.fixture(scope='function')
def sink():
    return RecordingNotificationSink()


@pytest.fixture(scope='function')
def make_plan(db_session):
    """Factory fixture creating committed maintenance plans"""

    def _make_plan(**overrides):
        values = {
            'tenant_id': TENANT,
            'asset_id': 'asset-1',
            'name': 'Monthly pump inspection',
            'frequency': {'type': 'monthly', 'interval': 1},
            'effective_from': datetime(2024, 1, 1),
            'task_template': [
                {'id': 't1', 'sequence': 1, 'name': 'Isolate pump', 'estimated_duration': 15},
                {'id': 't2', 'sequence': 2, 'name': 'Inspect seals', 'estimated_duration': 30,
                 'dependencies': ['t1'], 'is_optional': True},
                {'id': 't3', 'sequence': 3, 'name': 'Restore service', 'estimated_duration': 10,
                 'dependencies': ['t1']},
            ],
        }
        values.update(overrides)
        return MaintenancePlanContext.create(**values).maintenance_plan

    return _make_plan


@pytest.fixture(scope='function')
def build_work_order():
    """Factory fixture for unsaved work orders (lifecycle tests need no database)"""

    def _build(**overrides):
        values = {
            'id': 1,
            'tenant_id': TENANT,
            'asset_id': 'asset-1',
            'title': 'Replace filter',
            'last_status_change_at': datetime(2025, 1, 1, 8, 0),
        }
        values.update(overrides)
        return WorkOrder(**values)

    return _build
