from maintenance_engine.buisness.maintenance.notifications.logging_sink import LoggingNotificationSink

__all__ = [
    'LoggingNotificationSink',
]
