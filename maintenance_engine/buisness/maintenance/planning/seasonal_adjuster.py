"""
Seasonal Adjuster
Pulls a candidate due date earlier when the plan has a seasonal rule for the
season the date falls in. Never delays maintenance.
"""

import math
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional, Tuple, Union
from dateutil.relativedelta import relativedelta
from maintenance_engine.data.maintenance.enums import FrequencyType
from maintenance_engine.buisness.maintenance.structs.frequency_spec import FrequencySpec
from maintenance_engine.buisness.maintenance.structs.seasonal_adjustment import (
    SeasonalAdjustment,
    parse_seasonal_adjustments,
)
from maintenance_engine.logger import get_logger

logger = get_logger("maintenance_engine.buisness.maintenance.planning")


class SeasonalAdjuster:
    """Pure adjuster: candidate date + seasonal rules -> possibly-earlier date"""

    MONTH_SEASONS = {
        3: 'spring', 4: 'spring', 5: 'spring',
        6: 'summer', 7: 'summer', 8: 'summer',
        9: 'fall', 10: 'fall', 11: 'fall',
        12: 'winter', 1: 'winter', 2: 'winter',
    }

    @classmethod
    def season_for(cls, date: datetime) -> str:
        """Season tag for the calendar month of date"""
        return cls.MONTH_SEASONS[date.month]

    @classmethod
    def find_rule(
        cls,
        date: datetime,
        rules: Optional[Iterable[Union[SeasonalAdjustment, Dict[str, Any]]]]
    ) -> Optional[SeasonalAdjustment]:
        """Return the rule matching date's season, or None"""
        season = cls.season_for(date)
        for rule in parse_seasonal_adjustments(rules):
            if rule.season == season:
                return rule
        return None

    @staticmethod
    def effective_interval(interval: int, multiplier: float) -> int:
        """interval / multiplier, rounded half up, never below one unit"""
        return max(1, math.floor(interval / multiplier + 0.5))

    def adjust(
        self,
        candidate_date: datetime,
        rules,
        frequency: Union[FrequencySpec, Dict[str, Any]],
        entity_id=None
    ) -> datetime:
        """
        Apply the matching seasonal rule to candidate_date.

        The shortened interval is subtracted in the frequency's own unit
        (days for daily, weeks for weekly, months for monthly).

        Returns:
            Adjusted date, never later than candidate_date
        """
        if not isinstance(frequency, FrequencySpec):
            frequency = FrequencySpec.from_dict(frequency, entity_id=entity_id)

        if not rules or not frequency.is_calendar_based:
            return candidate_date

        rule = self.find_rule(candidate_date, rules)
        if rule is None or rule.multiplier == 1.0:
            return candidate_date

        effective = self.effective_interval(frequency.interval, rule.multiplier)
        reduction = max(0, frequency.interval - effective)
        if reduction == 0:
            return candidate_date

        if frequency.type == FrequencyType.DAILY:
            adjusted = candidate_date - timedelta(days=reduction)
        elif frequency.type == FrequencyType.WEEKLY:
            adjusted = candidate_date - timedelta(weeks=reduction)
        else:
            adjusted = candidate_date - relativedelta(months=reduction)

        logger.debug(
            f"Seasonal rule {rule.season} x{rule.multiplier} moved due date "
            f"{candidate_date.isoformat()} -> {adjusted.isoformat()} (plan {entity_id})"
        )
        return min(adjusted, candidate_date)

    def extra_tasks_for(self, date: datetime, rules) -> Tuple[str, ...]:
        """Extra task ids required by the rule matching date's season"""
        rule = self.find_rule(date, rules)
        return rule.extra_task_ids if rule else ()
