from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
import os
from maintenance_engine.logger import get_logger

# Initialize extensions
db = SQLAlchemy()


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value == '':
        return default
    return int(value)


def _enable_sqlite_savepoints(engine):
    """pysqlite defers BEGIN until the first DML; emit it ourselves so SAVEPOINT works"""

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_app(config_overrides=None):
    from pathlib import Path
    from dotenv import load_dotenv

    # Load environment variables from .env file
    load_dotenv()

    app = Flask(__name__)

    logger = get_logger("maintenance_engine")
    logger.info("Initializing maintenance engine application")

    # Prefer an explicit DATABASE_URL env var; otherwise keep the SQLite
    # database inside the project's `instance/` directory.
    db_env = os.environ.get('DATABASE_URL')
    if db_env:
        app.config['SQLALCHEMY_DATABASE_URI'] = db_env
    else:
        base_dir = Path(__file__).parent.parent
        instance_dir = base_dir / 'instance'
        instance_dir.mkdir(parents=True, exist_ok=True)
        default_db_path = instance_dir / 'maintenance_engine.db'
        app.config['SQLALCHEMY_DATABASE_URI'] = f"sqlite:///{str(default_db_path.resolve())}"

    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    # Scheduling configuration
    app.config['MONTH_DAY_OVERFLOW_POLICY'] = os.environ.get('MONTH_DAY_OVERFLOW_POLICY', 'clamp').lower()

    # Idle-time defaults (minutes) for work orders without their own policy
    app.config['DEFAULT_IDLE_WARNING_MINUTES'] = _env_int('DEFAULT_IDLE_WARNING_MINUTES', 240)
    app.config['DEFAULT_IDLE_ESCALATION_MINUTES'] = _env_int('DEFAULT_IDLE_ESCALATION_MINUTES', 480)
    app.config['DEFAULT_IDLE_AUTO_REASSIGN_MINUTES'] = _env_int('DEFAULT_IDLE_AUTO_REASSIGN_MINUTES', 1440)

    if config_overrides:
        app.config.update(config_overrides)

    if app.config['MONTH_DAY_OVERFLOW_POLICY'] not in ('clamp', 'roll'):
        logger.critical(f"Unsupported MONTH_DAY_OVERFLOW_POLICY: {app.config['MONTH_DAY_OVERFLOW_POLICY']}")
        raise RuntimeError("MONTH_DAY_OVERFLOW_POLICY must be 'clamp' or 'roll'")

    logger.debug(f"Month-day overflow policy: {app.config['MONTH_DAY_OVERFLOW_POLICY']}")

    db.init_app(app)

    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite'):
        with app.app_context():
            _enable_sqlite_savepoints(db.engine)

    # Import models to ensure they're registered with SQLAlchemy
    from maintenance_engine.data.maintenance.maintenance_plans import MaintenancePlan
    from maintenance_engine.data.maintenance.maintenance_plan_generations import MaintenancePlanGeneration
    from maintenance_engine.data.maintenance.work_orders import WorkOrder
    from maintenance_engine.data.maintenance.work_order_tasks import WorkOrderTask
    from maintenance_engine.data.maintenance.work_order_status_changes import WorkOrderStatusChange

    logger.debug("Extensions initialized")

    return app
