"""Blocked-state derivation and dependency validation.

Every function here is pure: it reads a snapshot of tasks and returns a
result without touching the snapshot.
"""

from typing import Iterable, Optional, Sequence

from taskgraph.tasks.errors import BlockedTransition
from taskgraph.tasks.models import Task


def _index(all_tasks: Iterable[Task]) -> dict[int, Task]:
    return {t.id: t for t in all_tasks}


def blocking_tasks(task: Task, all_tasks: Iterable[Task]) -> list[Task]:
    """
    Get the incomplete tasks that block a task.

    Ids that do not resolve to an existing task are stale references and
    are skipped.

    Args:
        task: Task to inspect
        all_tasks: Snapshot of every known task

    Returns:
        Blocking tasks in the order they appear in ``task.depends_on``
    """
    by_id = _index(all_tasks)
    blockers = []
    for dep_id in task.depends_on:
        dep = by_id.get(dep_id)
        if dep is not None and not dep.completed:
            blockers.append(dep)
    return blockers


def is_blocked(task: Task, all_tasks: Iterable[Task]) -> bool:
    """Check whether any dependency resolves to an incomplete task."""
    return len(blocking_tasks(task, all_tasks)) > 0


def guard_completion(task: Task, all_tasks: Iterable[Task]) -> None:
    """
    Gate the incomplete -> complete transition.

    Args:
        task: Task about to be marked complete
        all_tasks: Snapshot of every known task

    Raises:
        BlockedTransition: If the task still has incomplete dependencies
    """
    if task.completed:
        return
    blockers = blocking_tasks(task, all_tasks)
    if blockers:
        raise BlockedTransition(task, blockers)


def prune_dangling_edges(tasks: Sequence[Task]) -> list[Task]:
    """Return copies of ``tasks`` whose dependency lists only name tasks in the set."""
    known = {t.id for t in tasks}
    pruned = []
    for t in tasks:
        kept = [dep_id for dep_id in t.depends_on if dep_id in known]
        pruned.append(t.model_copy(update={"depends_on": kept}))
    return pruned


def find_cycle(tasks: Iterable[Task]) -> Optional[list[int]]:
    """
    Find one dependency cycle.

    Returns:
        The cycle as a path of ids that starts and ends on the same id
        (e.g. ``[1, 2, 1]``), or None if the graph is acyclic
    """
    graph = {t.id: list(t.depends_on) for t in tasks}
    visited: set[int] = set()

    for root in graph:
        if root in visited:
            continue

        # Explicit stack of (node, remaining neighbours); path mirrors it
        path: list[int] = [root]
        on_path: set[int] = {root}
        stack = [(root, iter(graph[root]))]
        visited.add(root)

        while stack:
            node, neighbours = stack[-1]
            advanced = False
            for neighbour in neighbours:
                if neighbour not in graph:
                    continue
                if neighbour in on_path:
                    start = path.index(neighbour)
                    return path[start:] + [neighbour]
                if neighbour not in visited:
                    visited.add(neighbour)
                    path.append(neighbour)
                    on_path.add(neighbour)
                    stack.append((neighbour, iter(graph[neighbour])))
                    advanced = True
                    break
            if not advanced:
                stack.pop()
                on_path.discard(path.pop())

    return None


def would_create_cycle(tasks: Iterable[Task], task_id: int, depends_on: Iterable[int]) -> bool:
    """
    Check if giving ``task_id`` the dependency list ``depends_on`` closes a cycle.

    Walks the existing dependencies of each proposed dependency looking for a
    path back to ``task_id``.
    """
    graph = {t.id: t.depends_on for t in tasks}
    visited: set[int] = set()
    pending = list(depends_on)

    while pending:
        current = pending.pop()
        if current == task_id:
            return True
        if current in visited:
            continue
        visited.add(current)
        pending.extend(graph.get(current, []))

    return False
