"""Task store owning task and goal records."""

import logging
from typing import Callable, Iterable, Optional

from taskgraph.tasks.errors import CascadeConfirmationRequired, ValidationError
from taskgraph.tasks.models import PRIORITY_ORDER, Goal, IdGenerator, Task, TaskPriority
from taskgraph.tasks.resolver import (
    find_cycle,
    guard_completion,
    prune_dangling_edges,
    would_create_cycle,
)

logger = logging.getLogger(__name__)


class TaskStore:
    """In-memory task collection that keeps dependency edges consistent."""

    def __init__(
        self,
        tasks: Optional[Iterable[Task]] = None,
        goals: Optional[Iterable[Goal]] = None,
    ) -> None:
        """
        Initialize task store.

        Args:
            tasks: Tasks loaded from storage
            goals: Goals loaded from storage
        """
        self._tasks: dict[int, Task] = {}
        self._goals: dict[int, Goal] = {}
        self._ids = IdGenerator()

        for task in tasks or []:
            self._tasks[task.id] = task.model_copy(deep=True)
            self._ids.observe(task.id)
        for goal in goals or []:
            self._goals[goal.id] = goal.model_copy(deep=True)
            self._ids.observe(goal.id)

        cycle = find_cycle(self._tasks.values())
        if cycle:
            logger.warning(f"Loaded tasks contain a dependency cycle: {cycle}")

    @property
    def tasks(self) -> list[Task]:
        """All tasks in insertion order."""
        return [t.model_copy(deep=True) for t in self._tasks.values()]

    @property
    def goals(self) -> list[Goal]:
        return [g.model_copy(deep=True) for g in self._goals.values()]

    def get(self, task_id: int) -> Optional[Task]:
        task = self._tasks.get(task_id)
        return task.model_copy(deep=True) if task is not None else None

    def require(self, task_id: int) -> Task:
        """
        Get a task by ID.

        Returns:
            Snapshot of the task; edits go through update()

        Raises:
            KeyError: If task not found
        """
        return self._live(task_id).model_copy(deep=True)

    def _live(self, task_id: int) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise KeyError(f"Task not found: {task_id}")
        return task

    def _dependents(self, task_id: int) -> list[Task]:
        return [t for t in self._tasks.values() if task_id in t.depends_on]

    def create(
        self,
        text: str,
        priority: TaskPriority = TaskPriority.MEDIUM,
        depends_on: Iterable[int] = (),
        goal_id: Optional[int] = None,
    ) -> Task:
        """
        Create a new task.

        Args:
            text: Task description
            priority: Task priority
            depends_on: Ids of incomplete tasks that block the new task
            goal_id: Optional goal to link

        Returns:
            Created task

        Raises:
            ValidationError: If the text is blank or a referenced id is invalid
        """
        text = self._clean_text(text)

        deps: list[int] = []
        for dep_id in depends_on:
            if dep_id in deps:
                continue
            dep = self._tasks.get(dep_id)
            if dep is None:
                raise ValidationError(f"Dependency task not found: {dep_id}")
            if dep.completed:
                raise ValidationError(f'Dependency task is already completed: "{dep.text}"')
            deps.append(dep_id)

        self._check_goal(goal_id)

        task = Task(
            id=self._ids.next_id(),
            text=text,
            priority=TaskPriority(priority),
            depends_on=deps,
            goal_id=goal_id,
        )
        self._tasks[task.id] = task
        logger.info(f"Created task: {task.id} - {task.text} ({len(deps)} dependencies)")

        return task.model_copy(deep=True)

    def update(self, task_id: int, mutator: Callable[[Task], None]) -> Task:
        """
        Update a task through a mutator applied to a copy.

        The copy is validated before it replaces the stored task, so a
        rejected update leaves the store untouched.

        Args:
            task_id: Task ID
            mutator: Callable that edits the task copy in place

        Returns:
            Updated task

        Raises:
            KeyError: If task not found
            ValidationError: If the edited task breaks an invariant
        """
        original = self._live(task_id)
        candidate = original.model_copy(deep=True)
        mutator(candidate)

        if candidate.id != original.id:
            raise ValidationError("Task id cannot be changed")
        candidate.text = self._clean_text(candidate.text)
        candidate.priority = TaskPriority(candidate.priority)

        deps = list(dict.fromkeys(candidate.depends_on))
        if task_id in deps:
            raise ValidationError("Task cannot depend on itself")
        for dep_id in deps:
            if dep_id not in self._tasks:
                raise ValidationError(f"Dependency task not found: {dep_id}")
        if deps != original.depends_on and would_create_cycle(self._tasks.values(), task_id, deps):
            raise ValidationError(f"Dependencies for task {task_id} would create a cycle")
        candidate.depends_on = deps

        self._check_goal(candidate.goal_id)

        if candidate.completed and not original.completed:
            guard_completion(candidate.model_copy(update={"completed": False}), self.tasks)

        self._tasks[task_id] = candidate
        logger.debug(f"Updated task: {task_id}")

        return candidate.model_copy(deep=True)

    def edit_text(self, task_id: int, text: str) -> Task:
        """Replace a task's text."""

        def apply(task: Task) -> None:
            task.text = text

        return self.update(task_id, apply)

    def dependents_of(self, task_id: int) -> list[Task]:
        """Tasks that name ``task_id`` in their dependencies."""
        return [t.model_copy(deep=True) for t in self._dependents(task_id)]

    def delete(self, task_id: int, confirm: bool = False) -> int:
        """
        Delete a task, severing every edge that points at it.

        Dependents survive; only their reference to the deleted task is
        removed.

        Args:
            task_id: Task ID
            confirm: Proceed even though other tasks depend on this one

        Returns:
            Number of dependency edges removed

        Raises:
            KeyError: If task not found
            CascadeConfirmationRequired: If dependents exist and confirm is False
        """
        self._live(task_id)

        dependents = self._dependents(task_id)
        if dependents and not confirm:
            raise CascadeConfirmationRequired(task_id, self.dependents_of(task_id))

        for dependent in dependents:
            dependent.depends_on = [d for d in dependent.depends_on if d != task_id]

        del self._tasks[task_id]
        logger.info(f"Deleted task: {task_id} (removed {len(dependents)} dependency edges)")

        return len(dependents)

    def toggle_complete(self, task_id: int) -> Task:
        """
        Flip a task's completion state.

        Raises:
            KeyError: If task not found
            BlockedTransition: If completing while dependencies are incomplete
        """
        task = self._live(task_id)
        if not task.completed:
            guard_completion(task, self.tasks)

        task.completed = not task.completed
        logger.info(f"Task {task_id} marked {'complete' if task.completed else 'incomplete'}")

        return task.model_copy(deep=True)

    def selectable_dependencies(self, exclude: Iterable[int] = ()) -> list[Task]:
        """Incomplete tasks that are not already selected."""
        excluded = set(exclude)
        return [t for t in self.tasks if not t.completed and t.id not in excluded]

    def sorted_tasks(self) -> list[Task]:
        """Tasks ordered high priority first; ties keep insertion order."""
        return sorted(self.tasks, key=lambda t: -PRIORITY_ORDER[t.priority])

    def replace_all(self, tasks: Iterable[Task]) -> None:
        """Swap in a new task set, pruning edges to tasks that are gone."""
        pruned = prune_dangling_edges(list(tasks))
        self._tasks = {t.id: t for t in pruned}
        for t in pruned:
            self._ids.observe(t.id)
        logger.info(f"Replaced task set ({len(pruned)} tasks)")

    def add_goal(self, title: str) -> Goal:
        """
        Create a goal.

        Raises:
            ValidationError: If the title is blank
        """
        title = title.strip() if title else ""
        if not title:
            raise ValidationError("Please enter a goal title")
        goal = Goal(id=self._ids.next_id(), title=title)
        self._goals[goal.id] = goal
        logger.info(f"Created goal: {goal.id} - {goal.title}")
        return goal.model_copy(deep=True)

    def delete_goal(self, goal_id: int, confirm: bool = False) -> int:
        """
        Delete a goal and unlink its tasks.

        Returns:
            Number of tasks unlinked

        Raises:
            KeyError: If goal not found
            CascadeConfirmationRequired: If tasks are linked and confirm is False
        """
        if goal_id not in self._goals:
            raise KeyError(f"Goal not found: {goal_id}")

        linked = [t for t in self._tasks.values() if t.goal_id == goal_id]
        if linked and not confirm:
            raise CascadeConfirmationRequired(
                goal_id, [t.model_copy(deep=True) for t in linked], kind="goal"
            )

        for task in linked:
            task.goal_id = None
        del self._goals[goal_id]
        logger.info(f"Deleted goal: {goal_id} (unlinked {len(linked)} tasks)")

        return len(linked)

    def goal_progress(self, goal_id: int) -> tuple[int, int]:
        """Return (completed, total) for the tasks linked to a goal."""
        linked = [t for t in self._tasks.values() if t.goal_id == goal_id]
        return sum(1 for t in linked if t.completed), len(linked)

    def _check_goal(self, goal_id: Optional[int]) -> None:
        if goal_id is not None and goal_id not in self._goals:
            raise ValidationError(f"Goal not found: {goal_id}")

    @staticmethod
    def _clean_text(text: str) -> str:
        cleaned = text.strip() if text else ""
        if not cleaned:
            raise ValidationError("Please enter a task description")
        return cleaned
