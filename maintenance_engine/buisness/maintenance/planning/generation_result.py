"""
Generation Run Result Data Structure
Represents the outcome of one scheduled generation run for a tenant.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional
from datetime import datetime


@dataclass
class GenerationRunResult:
    """Aggregated per-plan outcomes of ScheduledGenerationOrchestrator.run"""
    tenant_id: str
    started_at: datetime
    processed: int = 0
    generated: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)  # "plan-{id}: {message}"
    work_order_ids: List[int] = field(default_factory=list)
    finished_at: Optional[datetime] = None

    @property
    def failed(self) -> int:
        return len(self.errors)

    def to_dict(self) -> Dict:
        """Convert GenerationRunResult to dictionary for serialization"""
        return {
            'tenant_id': self.tenant_id,
            'started_at': self.started_at.isoformat(),
            'finished_at': self.finished_at.isoformat() if self.finished_at else None,
            'processed': self.processed,
            'generated': self.generated,
            'skipped': self.skipped,
            'errors': list(self.errors),
            'work_order_ids': list(self.work_order_ids),
        }
