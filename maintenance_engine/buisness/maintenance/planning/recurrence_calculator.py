"""
Recurrence Calculator
Answers "when is this plan next due" for calendar-based frequencies.
"""

import calendar
from datetime import datetime, timedelta
from typing import Any, Dict, Union
from dateutil.relativedelta import relativedelta
from flask import current_app, has_app_context
from maintenance_engine.data.maintenance.enums import FrequencyType
from maintenance_engine.buisness.maintenance.structs.frequency_spec import FrequencySpec
from maintenance_engine.buisness.maintenance.errors import (
    InvalidFrequencyType,
    RequiresExternalEvaluation,
)


class RecurrenceCalculator:
    """
    Pure calculator: frequency spec + reference date -> next due date.

    Monthly overflow policies (requested day does not exist in the target month):
    - clamp: use the last day of the target month (Jan 31 + 1 month -> Feb 29)
    - roll: spill the extra days into the next month (Jan 31 + 1 month -> Mar 2)
    """

    CLAMP = 'clamp'
    ROLL = 'roll'
    OVERFLOW_POLICIES = (CLAMP, ROLL)

    # External signal each non-calendar frequency type waits on
    EXTERNAL_SIGNALS = {
        FrequencyType.USAGE_BASED: 'meter',
        FrequencyType.CONDITION_BASED: 'condition',
    }

    def __init__(self, month_day_overflow: str = CLAMP):
        if month_day_overflow not in self.OVERFLOW_POLICIES:
            raise ValueError(f"Unknown month day overflow policy: {month_day_overflow}")
        self.month_day_overflow = month_day_overflow

    @classmethod
    def from_config(cls) -> 'RecurrenceCalculator':
        """Build a calculator from the active Flask app config (clamp outside an app)"""
        if has_app_context():
            return cls(current_app.config.get('MONTH_DAY_OVERFLOW_POLICY', cls.CLAMP))
        return cls()

    def next_due(
        self,
        spec: Union[FrequencySpec, Dict[str, Any]],
        reference_date: datetime,
        entity_id=None
    ) -> datetime:
        """
        Calculate the next due date after reference_date.

        Args:
            spec: FrequencySpec (or its JSON form)
            reference_date: Date the interval is measured from
            entity_id: Plan id used to tag errors

        Returns:
            Next due datetime (time of day preserved)

        Raises:
            RequiresExternalEvaluation: For usage_based / condition_based specs
            InvalidFrequencyType: For unsupported types
        """
        if not isinstance(spec, FrequencySpec):
            spec = FrequencySpec.from_dict(spec, entity_id=entity_id)

        if spec.type == FrequencyType.DAILY:
            return reference_date + timedelta(days=spec.interval)
        elif spec.type == FrequencyType.WEEKLY:
            return self._next_weekly(spec, reference_date)
        elif spec.type == FrequencyType.MONTHLY:
            return self._next_monthly(spec, reference_date)
        elif spec.type in self.EXTERNAL_SIGNALS:
            signal = self.EXTERNAL_SIGNALS[spec.type]
            raise RequiresExternalEvaluation(
                f"{spec.type.value} frequency needs a {signal} signal"
                + (f" ({spec.unit})" if spec.unit else "")
                + " to determine the next due date",
                signal=signal,
                unit=spec.unit,
                entity_id=entity_id,
                operation='next_due',
                invariant='only calendar frequencies produce dates'
            )

        raise InvalidFrequencyType(
            f"Unsupported frequency type '{spec.type}'",
            entity_id=entity_id,
            operation='next_due',
            invariant='type in daily, weekly, monthly, usage_based, condition_based'
        )

    def _next_weekly(self, spec: FrequencySpec, reference_date: datetime) -> datetime:
        candidate = reference_date + timedelta(days=7 * spec.interval)
        if not spec.weekdays:
            return candidate
        # Snap forward to the first configured weekday on or after the candidate
        offset = min((day - candidate.weekday()) % 7 for day in spec.weekdays)
        return candidate + timedelta(days=offset)

    def _next_monthly(self, spec: FrequencySpec, reference_date: datetime) -> datetime:
        requested_day = spec.month_day or reference_date.day
        first_of_target = reference_date.replace(day=1) + relativedelta(months=spec.interval)
        last_day = calendar.monthrange(first_of_target.year, first_of_target.month)[1]

        if requested_day <= last_day:
            return first_of_target.replace(day=requested_day)
        if self.month_day_overflow == self.CLAMP:
            return first_of_target.replace(day=last_day)
        return first_of_target.replace(day=last_day) + timedelta(days=requested_day - last_day)
