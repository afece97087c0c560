"""
Tests for application configuration
"""

import pytest
from maintenance_engine import create_app
from maintenance_engine.buisness.maintenance.planning.recurrence_calculator import RecurrenceCalculator
from maintenance_engine.buisness.maintenance.work_orders.lifecycle import WorkOrderLifecycle


def test_unsupported_overflow_policy_fails_startup():
    with pytest.raises(RuntimeError):
        create_app({'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:', 'MONTH_DAY_OVERFLOW_POLICY': 'wrap'})


def test_config_reaches_business_layer(build_work_order):
    app = create_app({
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'MONTH_DAY_OVERFLOW_POLICY': 'roll',
        'DEFAULT_IDLE_WARNING_MINUTES': 15,
        'DEFAULT_IDLE_ESCALATION_MINUTES': 30,
        'DEFAULT_IDLE_AUTO_REASSIGN_MINUTES': 45,
    })
    with app.app_context():
        assert RecurrenceCalculator.from_config().month_day_overflow == 'roll'
        lifecycle = WorkOrderLifecycle.from_config(build_work_order())
        assert lifecycle.idle_policy.warning_minutes == 15
        assert lifecycle.idle_policy.auto_reassign_minutes == 45


def test_defaults(app):
    assert app.config['MONTH_DAY_OVERFLOW_POLICY'] == 'clamp'
    assert app.config['DEFAULT_IDLE_WARNING_MINUTES'] == 240
    assert RecurrenceCalculator.from_config().month_day_overflow == 'clamp'
