"""
State machine for the work order lifecycle

Encodes valid transitions. The transition table is the single source of
truth for which status may follow which; guards that depend on other fields
(technician assigned, completion 100, ...) live in WorkOrderLifecycle.
"""

from typing import Dict, Optional, Set, Union
from maintenance_engine.data.maintenance.enums import WorkOrderStatus
from maintenance_engine.buisness.maintenance.errors import IllegalTransition


StatusLike = Union[WorkOrderStatus, str]


class WorkOrderStateMachine:
    """
    State machine for WorkOrder.status transitions.

    drafted -> scheduled -> in_progress <-> waiting_* -> completed -> approved -> closed
    rejected and canceled are alternate terminals. Cancellation is blocked
    once work is completed; rejection is possible until closure.
    """

    DRAFTED = WorkOrderStatus.DRAFTED
    SCHEDULED = WorkOrderStatus.SCHEDULED
    IN_PROGRESS = WorkOrderStatus.IN_PROGRESS
    WAITING_PARTS = WorkOrderStatus.WAITING_PARTS
    WAITING_WINDOW = WorkOrderStatus.WAITING_WINDOW
    WAITING_CLIENT = WorkOrderStatus.WAITING_CLIENT
    COMPLETED = WorkOrderStatus.COMPLETED
    APPROVED = WorkOrderStatus.APPROVED
    CLOSED = WorkOrderStatus.CLOSED
    REJECTED = WorkOrderStatus.REJECTED
    CANCELED = WorkOrderStatus.CANCELED

    WAITING_STATES = frozenset({WAITING_PARTS, WAITING_WINDOW, WAITING_CLIENT})

    # Idle time is measured only while work is underway
    ACTIVE_STATES = frozenset({IN_PROGRESS}) | WAITING_STATES

    # Work done; cancellation and progress updates no longer apply
    FINISHED_STATES = frozenset({COMPLETED, APPROVED, CLOSED})

    # Terminal states (cannot transition from these)
    TERMINAL_STATES = frozenset({CLOSED, REJECTED, CANCELED})

    # Valid transitions: from_status -> set of allowed to_status values
    TRANSITIONS: Dict[WorkOrderStatus, Set[WorkOrderStatus]] = {
        DRAFTED: {SCHEDULED, REJECTED, CANCELED},
        SCHEDULED: {IN_PROGRESS, REJECTED, CANCELED},
        IN_PROGRESS: {WAITING_PARTS, WAITING_WINDOW, WAITING_CLIENT, COMPLETED, REJECTED, CANCELED},
        WAITING_PARTS: {IN_PROGRESS, REJECTED, CANCELED},
        WAITING_WINDOW: {IN_PROGRESS, REJECTED, CANCELED},
        WAITING_CLIENT: {IN_PROGRESS, REJECTED, CANCELED},
        COMPLETED: {APPROVED, CLOSED, REJECTED},  # closed directly when no approval is required
        APPROVED: {CLOSED, REJECTED},
        CLOSED: set(),
        REJECTED: set(),
        CANCELED: set(),
    }

    @staticmethod
    def coerce(status: StatusLike) -> WorkOrderStatus:
        """
        Convert a stored status string to WorkOrderStatus.

        Raises:
            IllegalTransition: If the value is not a known status
        """
        try:
            return WorkOrderStatus(status)
        except ValueError:
            raise IllegalTransition(
                f"Unknown work order status '{status}'",
                operation='status',
                invariant=f"status in {[s.value for s in WorkOrderStatus]}"
            )

    @classmethod
    def can_transition(cls, from_status: StatusLike, to_status: StatusLike) -> bool:
        """
        Check if transition is valid.

        Staying in the same status is not a transition.

        Args:
            from_status: Current status
            to_status: Target status

        Returns:
            bool: True if transition is allowed
        """
        from_status = cls.coerce(from_status)
        to_status = cls.coerce(to_status)

        if from_status in cls.TERMINAL_STATES:
            return False
        return to_status in cls.TRANSITIONS[from_status]

    @classmethod
    def validate_transition(
        cls,
        from_status: StatusLike,
        to_status: StatusLike,
        entity_id=None,
        operation: Optional[str] = None
    ) -> None:
        """
        Validate transition and raise exception if invalid.

        Raises:
            IllegalTransition: If transition is not allowed
        """
        if not cls.can_transition(from_status, to_status):
            from_value = cls.coerce(from_status).value
            to_value = cls.coerce(to_status).value
            raise IllegalTransition(
                f"Invalid status transition: {from_value} -> {to_value}",
                entity_id=entity_id,
                operation=operation,
                invariant=f"{from_value} may only move to {sorted(s.value for s in cls.get_allowed_transitions(from_status))}"
            )

    @classmethod
    def get_allowed_transitions(cls, from_status: StatusLike) -> Set[WorkOrderStatus]:
        """Get set of allowed target statuses from current status"""
        from_status = cls.coerce(from_status)
        if from_status in cls.TERMINAL_STATES:
            return set()
        return set(cls.TRANSITIONS[from_status])


_uncovered = set(WorkOrderStatus) - set(WorkOrderStateMachine.TRANSITIONS)
if _uncovered:
    raise RuntimeError(f"Work order statuses missing from transition table: {sorted(s.value for s in _uncovered)}")
