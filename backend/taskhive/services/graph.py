"""
Task dependency graph operations using NetworkX.

This module handles:
- Building a project's dependency graph (task -> depends_on edges)
- Validating a proposed dependency list before it is stored
"""

import uuid
from typing import Iterable

import networkx as nx
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from taskhive.exceptions import (
    CrossProjectDependencyError,
    CycleDetectedError,
    NotFoundError,
    SelfDependencyError,
)
from taskhive.logging_config import get_logger
from taskhive.models import Task, TaskDependency

logger = get_logger(__name__)


def build_graph(
    task_ids: Iterable[uuid.UUID],
    edges: Iterable[tuple[uuid.UUID, uuid.UUID]],
) -> nx.DiGraph:
    """
    Build a DiGraph where an edge u -> v means task u depends on task v.
    """
    graph = nx.DiGraph()
    graph.add_nodes_from(task_ids)
    graph.add_edges_from(edges)
    return graph


def find_cycle_with(
    graph: nx.DiGraph,
    task_id: uuid.UUID,
    dependency_ids: Iterable[uuid.UUID],
) -> list[uuid.UUID] | None:
    """
    Replace task_id's outgoing edges with dependency_ids and look for a cycle.

    The graph is not modified. Returns the nodes of a cycle, or None.
    """
    candidate = graph.copy()
    candidate.add_node(task_id)
    candidate.remove_edges_from(list(candidate.out_edges(task_id)))
    candidate.add_edges_from((task_id, dep_id) for dep_id in dependency_ids)

    try:
        cycle_edges = nx.find_cycle(candidate, source=task_id)
    except nx.NetworkXNoCycle:
        return None
    return [edge[0] for edge in cycle_edges] + [cycle_edges[-1][1]]


async def build_project_graph(session: AsyncSession, project_id: uuid.UUID) -> nx.DiGraph:
    """Load every task and dependency edge of a project into a graph."""
    task_ids = (await session.execute(select(Task.id).where(Task.project_id == project_id))).scalars().all()
    if not task_ids:
        return build_graph([], [])

    edge_rows = await session.execute(
        select(TaskDependency.task_id, TaskDependency.depends_on_id).where(
            col(TaskDependency.task_id).in_(task_ids)
        )
    )
    return build_graph(task_ids, [(row[0], row[1]) for row in edge_rows.all()])


async def validate_dependencies(
    session: AsyncSession,
    task_id: uuid.UUID,
    project_id: uuid.UUID,
    dependency_ids: list[uuid.UUID],
) -> list[uuid.UUID]:
    """
    Check a proposed dependency list for task_id and return it de-duplicated.

    Raises:
        SelfDependencyError: The task lists itself.
        NotFoundError: A listed task does not exist.
        CrossProjectDependencyError: A listed task belongs to another project.
        CycleDetectedError: The new edges would close a cycle.
    """
    unique_ids = list(dict.fromkeys(dependency_ids))
    if not unique_ids:
        return []

    if task_id in unique_ids:
        logger.warning(f"Self-dependency rejected: {task_id}")
        raise SelfDependencyError(str(task_id))

    rows = await session.execute(
        select(Task.id, Task.project_id).where(col(Task.id).in_(unique_ids))
    )
    projects_by_task = {row[0]: row[1] for row in rows.all()}

    for dep_id in unique_ids:
        if dep_id not in projects_by_task:
            raise NotFoundError("Task", str(dep_id))
        if projects_by_task[dep_id] != project_id:
            logger.warning(f"Cross-project dependency rejected: {task_id} -> {dep_id}")
            raise CrossProjectDependencyError(str(task_id), str(dep_id))

    logger.debug(f"Running cycle detection for {task_id} -> {unique_ids}")
    graph = await build_project_graph(session, project_id)
    cycle = find_cycle_with(graph, task_id, unique_ids)
    if cycle is not None:
        logger.warning(f"Cycle detected for task {task_id}: {cycle}")
        raise CycleDetectedError(str(task_id), [str(node) for node in cycle])

    return unique_ids


async def replace_dependencies(
    session: AsyncSession,
    task_id: uuid.UUID,
    dependency_ids: list[uuid.UUID],
) -> None:
    """Store dependency_ids as the complete dependency list of task_id."""
    existing = await session.execute(select(TaskDependency).where(TaskDependency.task_id == task_id))
    for edge in existing.scalars().all():
        await session.delete(edge)
    await session.flush()

    for dep_id in dependency_ids:
        session.add(TaskDependency(task_id=task_id, depends_on_id=dep_id))
    await session.flush()
