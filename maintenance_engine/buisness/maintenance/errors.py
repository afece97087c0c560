"""
Domain exceptions for maintenance business logic

These exceptions represent business rule violations and domain-specific errors.
They are raised by the business layer when invariants are violated and carry
enough context (entity, attempted operation, violated invariant) for a caller
to diagnose the problem without log access.
"""

from typing import Optional


class MaintenanceDomainError(Exception):
    """Base exception for all maintenance domain errors"""

    def __init__(
        self,
        message: str,
        entity_id=None,
        operation: Optional[str] = None,
        invariant: Optional[str] = None
    ):
        self.message = message
        self.entity_id = entity_id
        self.operation = operation
        self.invariant = invariant
        super().__init__(self._compose())

    def _compose(self) -> str:
        parts = []
        if self.entity_id is not None:
            parts.append(f"[{self.entity_id}]")
        if self.operation:
            parts.append(f"{self.operation}:")
        parts.append(self.message)
        if self.invariant:
            parts.append(f"(invariant: {self.invariant})")
        return " ".join(parts)

    def to_dict(self):
        return {
            'error': type(self).__name__,
            'entity_id': self.entity_id,
            'operation': self.operation,
            'invariant': self.invariant,
            'message': self.message,
        }


class MaintenanceValidationError(MaintenanceDomainError):
    """Caller-correctable input errors; never retried automatically"""
    pass


class MaintenanceStateError(MaintenanceDomainError):
    """Operation not valid given the current state; surfaced, not retried"""
    pass


class InvalidFrequencyType(MaintenanceValidationError):
    """Raised when a frequency type is not one of the supported types"""
    pass


class InvalidFrequencySpec(MaintenanceValidationError):
    """Raised when a frequency spec has an invalid interval, weekday or month day"""
    pass


class InvalidSeasonalAdjustment(MaintenanceValidationError):
    """Raised when a seasonal rule has an unknown season or a non-positive multiplier"""
    pass


class InvalidTaskTemplate(MaintenanceValidationError):
    """Raised when a task template has duplicates, unknown dependencies or cycles"""
    pass


class InvalidIdlePolicy(MaintenanceValidationError):
    """Raised when idle thresholds are not strictly increasing positive values"""
    pass


class InvalidProgress(MaintenanceValidationError):
    """Raised when completion percentage is outside 0..100"""
    pass


class InvalidScheduleWindow(MaintenanceValidationError):
    """Raised when a schedule window does not start before it ends"""
    pass


class InvalidCost(MaintenanceValidationError):
    """Raised when a cost component is negative or not a number"""
    pass


class IllegalTransition(MaintenanceStateError):
    """Raised when a work order transition or guarded operation is not allowed"""
    pass


class PlanNotDue(MaintenanceStateError):
    """Raised when generation is requested for a plan that is not currently due"""
    pass


class RequiresExternalEvaluation(MaintenanceStateError):
    """
    Raised when a frequency cannot produce a calendar date.
    signal names the external input needed ('meter' or 'condition').
    """

    def __init__(self, message: str, signal: str, unit: Optional[str] = None, **kwargs):
        self.signal = signal
        self.unit = unit
        super().__init__(message, **kwargs)
