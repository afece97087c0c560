"""
Logging notification sink.
Writes work order signals to the JSON log; real delivery (mail, chat,
paging) is left to other NotificationSink implementations.
"""

from maintenance_engine.buisness.maintenance.collaborators import NotificationSink, SignalKind, WorkOrderSignal
from maintenance_engine.logger import get_logger

logger = get_logger("maintenance_engine.notifications")


class LoggingNotificationSink(NotificationSink):
    """NotificationSink that only logs; escalation-level signals log as errors"""

    URGENT_KINDS = {SignalKind.IDLE_AUTO_REASSIGN, SignalKind.SLA_BREACH}

    def notify(self, signal: WorkOrderSignal) -> None:
        message = f"Work order {signal.entity_id}: {signal.kind}"
        if signal.level is not None:
            message += f" (level {signal.level})"
        if signal.kind in self.URGENT_KINDS:
            logger.error(message)
        else:
            logger.warning(message)
