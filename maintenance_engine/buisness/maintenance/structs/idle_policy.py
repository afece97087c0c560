"""
Idle Policy
Thresholds measuring how long a work order may sit in an active state
without a status change before escalation signals fire.
"""

import enum
from dataclasses import dataclass
from typing import Any, Dict, Optional
from maintenance_engine.buisness.maintenance.errors import InvalidIdlePolicy


class IdleThreshold(enum.IntEnum):
    """Crossed threshold, ordered by severity; stored as WorkOrder.idle_signal_level"""
    NONE = 0
    WARNING = 1
    ESCALATION = 2
    AUTO_REASSIGN = 3


@dataclass(frozen=True)
class IdlePolicy:
    warning_minutes: int
    escalation_minutes: int
    auto_reassign_minutes: int

    def __post_init__(self):
        values = (self.warning_minutes, self.escalation_minutes, self.auto_reassign_minutes)
        for value in values:
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise InvalidIdlePolicy(
                    f"Idle thresholds must be positive numbers, got {value!r}",
                    operation='idle_policy',
                    invariant='threshold > 0'
                )
        if not values[0] < values[1] < values[2]:
            raise InvalidIdlePolicy(
                f"Idle thresholds must increase: {values}",
                operation='idle_policy',
                invariant='warning < escalation < auto_reassign'
            )

    def threshold_for(self, idle_minutes: float) -> IdleThreshold:
        """Highest threshold crossed after idle_minutes"""
        if idle_minutes >= self.auto_reassign_minutes:
            return IdleThreshold.AUTO_REASSIGN
        if idle_minutes >= self.escalation_minutes:
            return IdleThreshold.ESCALATION
        if idle_minutes >= self.warning_minutes:
            return IdleThreshold.WARNING
        return IdleThreshold.NONE

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], entity_id=None) -> Optional['IdlePolicy']:
        if not data:
            return None
        if not isinstance(data, dict):
            raise InvalidIdlePolicy(
                f"Idle policy must be an object, got {data!r}",
                entity_id=entity_id,
                operation='idle_policy',
                invariant='idle policy is a JSON object'
            )
        try:
            return cls(
                warning_minutes=data.get('warning_minutes'),
                escalation_minutes=data.get('escalation_minutes'),
                auto_reassign_minutes=data.get('auto_reassign_minutes'),
            )
        except InvalidIdlePolicy as e:
            if entity_id is None:
                raise
            raise InvalidIdlePolicy(e.message, entity_id=entity_id, operation=e.operation, invariant=e.invariant) from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            'warning_minutes': self.warning_minutes,
            'escalation_minutes': self.escalation_minutes,
            'auto_reassign_minutes': self.auto_reassign_minutes,
        }
