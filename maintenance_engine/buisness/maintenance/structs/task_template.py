"""
Task Template
Value object for one task of a plan's ordered task template.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from maintenance_engine.buisness.maintenance.errors import InvalidTaskTemplate


@dataclass(frozen=True)
class TaskTemplate:
    """Plan-template task; copied field for field onto generated work orders"""
    id: str
    sequence: int
    name: str
    estimated_duration: int = 0  # minutes
    description: Optional[str] = None
    dependencies: Tuple[str, ...] = ()
    checklist: List[Any] = field(default_factory=list)
    required_parts: List[Any] = field(default_factory=list)
    is_optional: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any], entity_id=None) -> 'TaskTemplate':
        """
        Build a TaskTemplate from its JSON form.

        Raises:
            InvalidTaskTemplate: If id, sequence or name are missing or malformed
        """
        if not isinstance(data, dict):
            raise InvalidTaskTemplate(
                f"Task entry must be an object, got {data!r}",
                entity_id=entity_id,
                operation='task_template',
                invariant='every task is a JSON object'
            )
        task_id = data.get('id')
        sequence = data.get('sequence')
        name = data.get('name')
        duration = data.get('estimated_duration', 0)

        if task_id is None or str(task_id) == '':
            raise InvalidTaskTemplate(
                "Task is missing an id",
                entity_id=entity_id,
                operation='task_template',
                invariant='every task has an id'
            )
        if isinstance(sequence, bool) or not isinstance(sequence, int):
            raise InvalidTaskTemplate(
                f"Task {task_id} has invalid sequence {sequence!r}",
                entity_id=entity_id,
                operation='task_template',
                invariant='sequence is an integer'
            )
        if not name:
            raise InvalidTaskTemplate(
                f"Task {task_id} is missing a name",
                entity_id=entity_id,
                operation='task_template',
                invariant='every task has a name'
            )
        if isinstance(duration, bool) or not isinstance(duration, int) or duration < 0:
            raise InvalidTaskTemplate(
                f"Task {task_id} has invalid estimated duration {duration!r}",
                entity_id=entity_id,
                operation='task_template',
                invariant='estimated_duration >= 0'
            )

        return cls(
            id=str(task_id),
            sequence=sequence,
            name=name,
            estimated_duration=duration,
            description=data.get('description'),
            dependencies=tuple(str(d) for d in (data.get('dependencies') or ())),
            checklist=list(data.get('checklist') or []),
            required_parts=list(data.get('required_parts') or []),
            is_optional=bool(data.get('is_optional', False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'sequence': self.sequence,
            'name': self.name,
            'estimated_duration': self.estimated_duration,
            'description': self.description,
            'dependencies': list(self.dependencies),
            'checklist': list(self.checklist),
            'required_parts': list(self.required_parts),
            'is_optional': self.is_optional,
        }
