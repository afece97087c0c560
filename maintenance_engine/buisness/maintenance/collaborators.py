"""
Collaborator interfaces used by the generation orchestrator and the work
order monitor. SQL-backed defaults live next to the components that use them.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional


class PlanQuery(ABC):
    """Read side of maintenance plan storage"""

    @abstractmethod
    def find_active_plans(self, tenant_id) -> List:
        """All active plans of a tenant"""
        pass

    @abstractmethod
    def find_due_before(self, tenant_id, cutoff: datetime) -> List:
        """Active time-based plans of a tenant whose next_scheduled_at is unset or <= cutoff"""
        pass


class PlanPersistence(ABC):
    """Write side of maintenance plan storage (schedule fields only)"""

    @abstractmethod
    def record_generation(
        self,
        plan_id,
        generated_at: datetime,
        next_scheduled_at: datetime,
        dedup_key: str,
        work_order_id=None
    ) -> bool:
        """
        Advance a plan's schedule after a work order was generated.

        Returns:
            True if recorded, False if dedup_key was already recorded
        """
        pass

    @abstractmethod
    def unit_of_work(self):
        """Context manager grouping one plan's creation and reschedule"""
        pass


class WorkOrderFactoryCollaborator(ABC):
    """Creates work orders from plans"""

    @abstractmethod
    def create_from_plan(self, plan, dedup_key: str, now: datetime, extra_task_ids: Iterable[str] = ()):
        """
        Create (or return the existing) work order for one plan cycle.

        Implementations must be idempotent on dedup_key.
        """
        pass


class SignalKind:
    IDLE_WARNING = 'idle_warning'
    IDLE_ESCALATION = 'idle_escalation'
    IDLE_AUTO_REASSIGN = 'idle_auto_reassign'
    SLA_BREACH = 'sla_breach'


@dataclass
class WorkOrderSignal:
    """Something about a work order that a person should hear about"""
    entity_id: Any
    kind: str
    detected_at: datetime
    level: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'entity_id': self.entity_id,
            'kind': self.kind,
            'level': self.level,
            'detected_at': self.detected_at.isoformat(),
            'details': dict(self.details),
        }


class NotificationSink(ABC):
    """Receives work order signals; delivery is up to the implementation"""

    @abstractmethod
    def notify(self, signal: WorkOrderSignal) -> None:
        pass

