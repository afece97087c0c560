"""
Plan Eligibility Evaluator
Decides whether a maintenance plan is currently due, from plan state only.
"""

from datetime import datetime
from typing import Iterable, List, Optional
from maintenance_engine.buisness.maintenance.errors import PlanNotDue


class PlanEligibilityEvaluator:
    """
    Side-effect free due check.

    A plan is due when all of these hold:
    1. plan.is_active
    2. now >= plan.effective_from
    3. plan.effective_to is unset or now <= plan.effective_to
    4. plan.next_scheduled_at is unset (never generated) or now >= plan.next_scheduled_at

    Works on MaintenancePlan rows or any object exposing the same attributes.
    """

    def explain(self, plan, now: datetime) -> Optional[str]:
        """
        Return why the plan is not due, or None when it is due.

        Args:
            plan: MaintenancePlan (or equivalent)
            now: Evaluation time

        Returns:
            Reason text for the first failed condition, or None
        """
        if not plan.is_active:
            return "plan is inactive"
        if plan.effective_from is None or now < plan.effective_from:
            return f"plan is not effective until {plan.effective_from}"
        if plan.effective_to is not None and now > plan.effective_to:
            return f"plan expired at {plan.effective_to}"
        if plan.next_scheduled_at is not None and now < plan.next_scheduled_at:
            return f"next generation scheduled for {plan.next_scheduled_at}"
        return None

    def is_due(self, plan, now: datetime) -> bool:
        """True when every eligibility condition holds"""
        return self.explain(plan, now) is None

    def due_plans(self, plans: Iterable, now: datetime) -> List:
        """Filter plans down to the due set, preserving order"""
        return [plan for plan in plans if self.is_due(plan, now)]

    def ensure_due(self, plan, now: datetime) -> None:
        """
        Raise unless the plan is due.

        Raises:
            PlanNotDue: Carrying the failed condition
        """
        reason = self.explain(plan, now)
        if reason is not None:
            raise PlanNotDue(
                reason,
                entity_id=f"plan-{plan.id}",
                operation='generate',
                invariant='plan is active, effective and past its next scheduled date'
            )
