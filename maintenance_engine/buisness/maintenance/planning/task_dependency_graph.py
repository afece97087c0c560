"""
Task Dependency Graph
Validates that a task template forms a directed acyclic graph and yields a
feasible execution order.
"""

import heapq
from typing import Any, Dict, Iterable, List, Union
from maintenance_engine.buisness.maintenance.structs.task_template import TaskTemplate
from maintenance_engine.buisness.maintenance.errors import InvalidTaskTemplate


class TaskDependencyGraph:
    """
    Dependency graph over the tasks of one owner (plan template or work order).

    Rules:
    1. Task ids are unique
    2. Task sequences are unique
    3. Dependencies reference sibling task ids, never the task itself
    4. The dependency graph has no cycles
    """

    def __init__(self, tasks: Iterable[Union[TaskTemplate, Dict[str, Any]]], entity_id=None):
        self.entity_id = entity_id
        self.tasks: List[TaskTemplate] = [
            task if isinstance(task, TaskTemplate) else TaskTemplate.from_dict(task, entity_id=entity_id)
            for task in tasks
        ]
        self._by_id: Dict[str, TaskTemplate] = {}

    @classmethod
    def validate(cls, tasks, entity_id=None) -> List[TaskTemplate]:
        """
        Validate a task template.

        Returns:
            Parsed tasks in execution order

        Raises:
            InvalidTaskTemplate: If any rule is violated
        """
        return cls(tasks, entity_id=entity_id).execution_order()

    def _check_structure(self) -> None:
        self._by_id = {}
        sequences = set()
        for task in self.tasks:
            if task.id in self._by_id:
                raise self._error(f"Duplicate task id '{task.id}'", 'task ids are unique')
            if task.sequence in sequences:
                raise self._error(f"Duplicate task sequence {task.sequence}", 'task sequences are unique')
            self._by_id[task.id] = task
            sequences.add(task.sequence)

        for task in self.tasks:
            for dependency in task.dependencies:
                if dependency == task.id:
                    raise self._error(f"Task '{task.id}' depends on itself", 'no self-dependency')
                if dependency not in self._by_id:
                    raise self._error(
                        f"Task '{task.id}' depends on unknown task '{dependency}'",
                        'dependencies reference sibling tasks'
                    )

    def execution_order(self) -> List[TaskTemplate]:
        """
        Topologically sort the tasks (Kahn's algorithm), ties broken by sequence.

        Raises:
            InvalidTaskTemplate: If the template is malformed or cyclic
        """
        self._check_structure()

        remaining = {task.id: len(set(task.dependencies)) for task in self.tasks}
        dependents: Dict[str, List[str]] = {task.id: [] for task in self.tasks}
        for task in self.tasks:
            for dependency in set(task.dependencies):
                dependents[dependency].append(task.id)

        ready = [(task.sequence, task.id) for task in self.tasks if remaining[task.id] == 0]
        heapq.heapify(ready)

        ordered = []
        while ready:
            _, task_id = heapq.heappop(ready)
            ordered.append(self._by_id[task_id])
            for dependent in dependents[task_id]:
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    heapq.heappush(ready, (self._by_id[dependent].sequence, dependent))

        if len(ordered) != len(self.tasks):
            cyclic = sorted(task_id for task_id, count in remaining.items() if count > 0)
            raise self._error(f"Dependency cycle among tasks {cyclic}", 'task dependencies are acyclic')

        return ordered

    def _error(self, message: str, invariant: str) -> InvalidTaskTemplate:
        return InvalidTaskTemplate(
            message,
            entity_id=self.entity_id,
            operation='validate_task_template',
            invariant=invariant
        )
