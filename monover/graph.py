"""Dependency graph utilities.

Edges point from a dependent to its dependency. Bumps travel the other way:
when package B depends on package A and A releases, B must release too.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from .errors import DependencyCycleError
from .models import Workspace, WorkspaceState


def topo_sort(dependencies: Mapping[str, Sequence[str]]) -> list[str]:
    """Topologically sort packages by their internal dependencies.

    Uses Kahn's algorithm to produce an order where dependencies come before
    dependents. Ties are broken alphabetically for deterministic output.

    Args:
        dependencies: Map of package name → names it depends on. Names that
            are not keys of the map are ignored.

    Returns:
        Package names, dependencies first.

    Raises:
        DependencyCycleError: If a dependency cycle is detected.

    Example:
        If A depends on B, and B depends on C:
        topo_sort({A: [B], B: [C], C: []}) → [C, B, A]
    """
    in_degree = {n: 0 for n in dependencies}
    reverse_deps: dict[str, list[str]] = {n: [] for n in dependencies}

    for name, deps in dependencies.items():
        for dep in set(deps):
            if dep in dependencies:
                in_degree[name] += 1
                reverse_deps[dep].append(name)

    queue = sorted(n for n, d in in_degree.items() if d == 0)
    order: list[str] = []

    while queue:
        node = queue.pop(0)
        order.append(node)
        for dependent in sorted(reverse_deps[node]):
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    if len(order) != len(dependencies):
        raise DependencyCycleError(set(dependencies) - set(order))

    return order


def check_acyclic(workspaces: Sequence[Workspace]) -> None:
    """Reject cyclic workspace graphs before any version is computed."""
    topo_sort({w.name: w.workspace_dependencies for w in workspaces})


def find_dependents(workspaces: Sequence[WorkspaceState], origin: str) -> set[str]:
    """All workspaces that directly or transitively depend on ``origin``.

    The seen-set bounds the walk, so diamonds are visited once and even a
    cyclic graph terminates.
    """
    stack = [origin]
    seen: set[str] = set()
    while stack:
        current = stack.pop()
        for w in workspaces:
            if current in w.workspace_dependencies and w.name not in seen:
                seen.add(w.name)
                stack.append(w.name)
    return seen


def add_bumped_workspace_deps(
    workspaces: list[WorkspaceState],
) -> list[WorkspaceState]:
    """Record, per workspace, which directly bumped workspaces force it to bump.

    A direct bump and a propagated bump are independent signals: a workspace
    may have either, both, or neither.
    """
    forced_by: dict[str, set[str]] = {}
    for state in workspaces:
        if state.bump_level is None:
            continue
        for dependent in find_dependents(workspaces, state.name):
            forced_by.setdefault(dependent, set()).add(state.name)

    return [
        state.model_copy(
            update={
                "bumped_workspace_dependencies": sorted(forced_by.get(state.name, ()))
            }
        )
        for state in workspaces
    ]
