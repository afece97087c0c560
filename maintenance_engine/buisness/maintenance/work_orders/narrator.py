"""
WorkOrderNarrator - Audit text composer for work order lifecycle events

Ensures every operation produces a consistent machine-generated narrative.
Separates audit narrative formatting from transition logic.
"""

from typing import Optional
from maintenance_engine.buisness.maintenance.work_orders.lifecycle import WorkOrderChange


class WorkOrderNarrator:
    """
    Composes machine-generated narratives for work order lifecycle events.

    narrate() dispatches on the change's operation; the individual
    composers are usable on their own.
    """

    @staticmethod
    def created(work_order) -> str:
        """Narrative for work order creation"""
        source = f"plan {work_order.maintenance_plan_id}" if work_order.maintenance_plan_id else work_order.origin
        return f"Work order created (ID: {work_order.id}) from {source}"

    @staticmethod
    def status_changed(from_status: str, to_status: str, reason: Optional[str] = None) -> str:
        """Narrative for status changes"""
        text = f"Status changed: {from_status} → {to_status}"
        if reason:
            text += f" | Reason: {reason}"
        return text

    @staticmethod
    def scheduled(start: str, end: str) -> str:
        return f"Scheduled for {start} to {end}"

    @staticmethod
    def technician_assigned(technician_id: str, cleared_team_id: Optional[str] = None) -> str:
        text = f"Assigned to technician {technician_id}"
        if cleared_team_id:
            text += f" | Team {cleared_team_id} unassigned"
        return text

    @staticmethod
    def team_assigned(team_id: str, cleared_technician_id: Optional[str] = None) -> str:
        text = f"Assigned to team {team_id}"
        if cleared_technician_id:
            text += f" | Technician {cleared_technician_id} unassigned"
        return text

    @staticmethod
    def progress_updated(previous: Optional[int], percentage: int) -> str:
        return f"Progress updated: {previous if previous is not None else 0}% → {percentage}%"

    @staticmethod
    def costs_updated(total_cost: float) -> str:
        return f"Costs updated | Total: {total_cost:.2f}"

    @classmethod
    def narrate(cls, change: WorkOrderChange) -> str:
        """Narrative for any WorkOrderChange"""
        details = change.details
        if change.operation == 'assign_technician':
            return cls.technician_assigned(details['technician_id'], details.get('cleared_team_id'))
        if change.operation == 'assign_team':
            return cls.team_assigned(details['team_id'], details.get('cleared_technician_id'))
        if change.operation == 'update_progress':
            return cls.progress_updated(details.get('previous'), details['percentage'])
        if change.operation == 'update_costs':
            return cls.costs_updated(details['total_cost'])

        parts = []
        if change.operation == 'schedule':
            parts.append(cls.scheduled(details['start'], details['end']))
        if change.status_changed:
            parts.append(cls.status_changed(change.from_status.value, change.to_status.value, details.get('reason')))
        return " | ".join(parts) if parts else f"{change.operation.replace('_', ' ').capitalize()}"
