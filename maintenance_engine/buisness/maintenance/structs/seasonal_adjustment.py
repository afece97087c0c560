"""
Seasonal Adjustment
Value object for one seasonal rule of a maintenance plan.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from maintenance_engine.buisness.maintenance.errors import InvalidSeasonalAdjustment


SEASONS = ('spring', 'summer', 'fall', 'winter')


@dataclass(frozen=True)
class SeasonalAdjustment:
    """A season tag, a frequency multiplier (> 0) and optional extra task ids"""
    season: str
    multiplier: float = 1.0
    extra_task_ids: Tuple[str, ...] = ()

    def __post_init__(self):
        season = str(self.season).lower() if self.season is not None else None
        if season == 'autumn':
            season = 'fall'
        if season not in SEASONS:
            raise InvalidSeasonalAdjustment(
                f"Unknown season '{self.season}'",
                operation='seasonal_adjustment',
                invariant=f"season in {list(SEASONS)}"
            )
        object.__setattr__(self, 'season', season)

        if isinstance(self.multiplier, bool) or not isinstance(self.multiplier, (int, float)) or self.multiplier <= 0:
            raise InvalidSeasonalAdjustment(
                f"Multiplier must be a positive number, got {self.multiplier!r}",
                operation='seasonal_adjustment',
                invariant='multiplier > 0'
            )
        object.__setattr__(self, 'multiplier', float(self.multiplier))
        object.__setattr__(self, 'extra_task_ids', tuple(str(t) for t in (self.extra_task_ids or ())))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SeasonalAdjustment':
        if not isinstance(data, dict):
            raise InvalidSeasonalAdjustment(
                f"Seasonal rule must be an object, got {data!r}",
                operation='seasonal_adjustment',
                invariant='every seasonal rule is a JSON object'
            )
        return cls(
            season=data.get('season'),
            multiplier=data.get('multiplier', data.get('frequency_multiplier', 1.0)),
            extra_task_ids=tuple(data.get('extra_task_ids', data.get('additional_tasks')) or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'season': self.season,
            'multiplier': self.multiplier,
            'extra_task_ids': list(self.extra_task_ids),
        }


def parse_seasonal_adjustments(data: Optional[List[Dict[str, Any]]], entity_id=None) -> List[SeasonalAdjustment]:
    """
    Parse a plan's seasonal rule list.

    Raises:
        InvalidSeasonalAdjustment: If a rule is malformed or two rules share a season
    """
    rules = []
    seen = set()
    for item in data or []:
        try:
            rule = item if isinstance(item, SeasonalAdjustment) else SeasonalAdjustment.from_dict(item)
        except InvalidSeasonalAdjustment as e:
            raise InvalidSeasonalAdjustment(
                e.message, entity_id=entity_id, operation=e.operation, invariant=e.invariant
            ) from e
        if rule.season in seen:
            raise InvalidSeasonalAdjustment(
                f"Season '{rule.season}' has more than one rule",
                entity_id=entity_id,
                operation='seasonal_adjustment',
                invariant='season tags are disjoint'
            )
        seen.add(rule.season)
        rules.append(rule)
    return rules
