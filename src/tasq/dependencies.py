"""Dependency blocking and graph integrity checks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from .models import DONE_STATUS, Task, TaskValidationError


@dataclass(slots=True)
class DependencyStatus:
    is_blocked: bool
    blocking_tasks: list[Task] = field(default_factory=list)


def index_tasks(tasks: Iterable[Task]) -> dict[str, Task]:
    return {task.task_id: task for task in tasks}


def dependency_status(task: Task, all_tasks: Iterable[Task] | Mapping[str, Task]) -> DependencyStatus:
    """Return the not-done dependencies of ``task``.

    Dependency ids that do not resolve to a known task are treated as satisfied.
    """
    if not task.dependencies:
        return DependencyStatus(is_blocked=False)
    by_id = all_tasks if isinstance(all_tasks, Mapping) else index_tasks(all_tasks)
    blocking: list[Task] = []
    for dep_id in task.dependencies:
        dep = by_id.get(dep_id)
        if dep is None:
            continue
        if dep.status != DONE_STATUS:
            blocking.append(dep)
    return DependencyStatus(is_blocked=bool(blocking), blocking_tasks=blocking)


def is_blocked(task: Task, all_tasks: Iterable[Task] | Mapping[str, Task]) -> bool:
    return dependency_status(task, all_tasks).is_blocked


def dependents_of(task_id: str, all_tasks: Iterable[Task]) -> list[Task]:
    return [task for task in all_tasks if task_id in task.dependencies]


def build_graph(tasks: Iterable[Task]) -> dict[str, list[str]]:
    return {task.task_id: list(task.dependencies) for task in tasks}


def find_cycle(graph: Mapping[str, list[str]]) -> list[str] | None:
    """Return one dependency cycle as a list of ids, or None when acyclic."""
    visiting: set[str] = set()
    visited: set[str] = set()

    def dfs(node: str, stack: list[str]) -> list[str] | None:
        if node in visiting:
            return stack[stack.index(node) :] + [node]
        if node in visited:
            return None
        visiting.add(node)
        for dep in graph.get(node, []):
            found = dfs(dep, stack + [node])
            if found is not None:
                return found
        visiting.remove(node)
        visited.add(node)
        return None

    for node in graph:
        found = dfs(node, [])
        if found is not None:
            return found
    return None


def normalize_dependencies(dependencies: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for dep in dependencies:
        token = str(dep).strip()
        if token and token not in seen:
            seen.add(token)
            ordered.append(token)
    return ordered


def validate_dependencies(task_id: str, dependencies: Iterable[str], all_tasks: Iterable[Task]) -> list[str]:
    """Check a proposed dependency list for ``task_id`` and return it normalized.

    Raises TaskValidationError for self-dependencies, unknown ids, and edges
    that would close a cycle.
    """
    deps = normalize_dependencies(dependencies)
    graph = build_graph(all_tasks)
    for dep_id in deps:
        if dep_id == task_id:
            raise TaskValidationError(f"Task {task_id} cannot depend on itself")
        if dep_id not in graph:
            raise TaskValidationError(f"Task {task_id} has unknown dependency {dep_id}")

    graph[task_id] = deps
    cycle = find_cycle(graph)
    if cycle is not None:
        raise TaskValidationError(f"Dependency cycle detected: {' -> '.join(cycle)}")
    return deps
