"""Project nesting as a parent -> child tree."""

from __future__ import annotations

import networkx as nx

from weekload.errors import NotFoundError, ValidationError
from weekload.models import Project


def build_tree(projects: dict[str, Project]) -> nx.DiGraph:
    """Construct the parent -> child graph. Raises ValidationError on cycle or missing parent."""
    G = nx.DiGraph()
    for pid, project in projects.items():
        G.add_node(pid, project=project)
    for pid, project in projects.items():
        if project.parent_id is None:
            continue
        if project.parent_id not in projects:
            raise ValidationError(f"Project {pid} has non-existent parent {project.parent_id}")
        G.add_edge(project.parent_id, pid)
    if not nx.is_directed_acyclic_graph(G):
        raise ValidationError("Circular project nesting detected")
    return G


def descendants(projects: dict[str, Project], project_id: str) -> set[str]:
    if project_id not in projects:
        raise NotFoundError(f"Project {project_id} not found.")
    return nx.descendants(build_tree(projects), project_id)


def reparent(projects: dict[str, Project], project_id: str, new_parent_id: str | None) -> Project:
    """Move *project_id* under *new_parent_id* (None makes it a root).

    Rejects moving a project under itself or under one of its own
    descendants instead of letting the tree grow a cycle.
    """
    if project_id not in projects:
        raise NotFoundError(f"Project {project_id} not found.")
    project = projects[project_id]
    if new_parent_id is not None:
        if new_parent_id not in projects:
            raise NotFoundError(f"Project {new_parent_id} not found.")
        if new_parent_id == project_id:
            raise ValidationError("A project cannot be its own parent.")
        if new_parent_id in descendants(projects, project_id):
            raise ValidationError(f"Project {new_parent_id} is nested under {project_id}; cannot move {project_id} into it.")
    project.parent_id = new_parent_id
    return project


def roots(projects: dict[str, Project]) -> list[str]:
    G = build_tree(projects)
    return [pid for pid in G if G.in_degree(pid) == 0]


def walk(projects: dict[str, Project]) -> list[tuple[Project, int]]:
    """Projects depth-first from each root, paired with their nesting depth."""
    G = build_tree(projects)
    ordered = []
    for root in roots(projects):
        depth = nx.single_source_shortest_path_length(G, root)
        ordered.extend((projects[pid], depth[pid]) for pid in nx.dfs_preorder_nodes(G, root))
    return ordered
