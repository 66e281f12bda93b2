# File: laragen/ordering.py
"""
laragen - Dependency Orderer
=============================

Orders entities so that every entity comes after the entities it
``belongsTo``.  A ``foreign:<table>`` field also pulls the owner of that
table forward, unless doing so would contradict a ``belongsTo`` edge.  The
order is used for migrations, factories and the DatabaseSeeder call list.

Cycles never fail the run: the back-edge that closes a cycle is dropped
and the order is still a complete, deterministic listing of the entities
(declaration order is the tie-break).  ``find_cycles`` reports them so the
validator can warn.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Set, Tuple

from laragen.models import Schema

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.ordering")


def belongs_to_graph(schema: Schema) -> Dict[str, List[str]]:
    """
    entity name → entities it ``belongsTo``, in declaration order.

    Only targets present in the schema become edges; self-references are
    left out.
    """
    graph: Dict[str, List[str]] = {}
    for name, entity in schema.entities.items():
        deps: List[str] = []
        for target in entity.belongs_to_targets:
            if target in schema.entities and target != name and target not in deps:
                deps.append(target)
        graph[name] = deps
    return graph


def _reaches(graph: Dict[str, List[str]], start: str, goal: str) -> bool:
    seen: Set[str] = {start}
    stack: List[str] = [start]
    while stack:
        node = stack.pop()
        if node == goal:
            return True
        for dep in graph[node]:
            if dep not in seen:
                seen.add(dep)
                stack.append(dep)
    return False


def dependency_graph(schema: Schema) -> Dict[str, List[str]]:
    """
    entity name → entity names it depends on: its ``belongsTo`` targets,
    then the owners of its ``foreign:<table>`` fields.

    A ``foreign:`` edge is added only when it closes no cycle with the
    edges already in the graph, so it can never displace a ``belongsTo``
    edge.
    """
    tables: Dict[str, str] = schema.entity_tables
    graph: Dict[str, List[str]] = belongs_to_graph(schema)

    for name, entity in schema.entities.items():
        for spec in entity.fields.values():
            table = spec.foreign_table
            if table is None:
                continue
            target = tables.get(table)
            if target is None or target == name or target in graph[name]:
                continue
            if _reaches(graph, target, name):
                logger.debug("Ignoring foreign edge %s → %s (would close a cycle).", name, target)
                continue
            graph[name].append(target)

    return graph


def dependency_order(schema: Schema) -> List[str]:
    """
    Entity names with dependencies first.

    Iterative depth-first post-order over ``dependency_graph``.  A node
    already in progress is never re-entered, which drops the edge closing a
    cycle.

    Complexity: O(V + E).
    """
    graph: Dict[str, List[str]] = dependency_graph(schema)
    done: Set[str] = set()
    in_progress: Set[str] = set()
    order: List[str] = []

    for root in graph:
        if root in done:
            continue

        in_progress.add(root)
        stack: List[Tuple[str, Iterator[str]]] = [(root, iter(graph[root]))]

        while stack:
            node, deps = stack[-1]
            descended: bool = False
            for dep in deps:
                if dep in done:
                    continue
                if dep in in_progress:
                    logger.debug("Dropping cyclic edge %s → %s.", node, dep)
                    continue
                in_progress.add(dep)
                stack.append((dep, iter(graph[dep])))
                descended = True
                break
            if not descended:
                stack.pop()
                in_progress.discard(node)
                done.add(node)
                order.append(node)

    logger.debug("Dependency order: %s", " → ".join(order))
    return order


def find_cycles(schema: Schema) -> List[List[str]]:
    """
    Cycles in the ``belongsTo`` graph, each as ``[a, b, ..., a]``.

    Every cycle is reported once, whatever node the search entered it by.
    Self-references are not cycles here.
    """
    graph: Dict[str, List[str]] = belongs_to_graph(schema)
    done: Set[str] = set()
    cycles: List[List[str]] = []
    seen: Set[frozenset] = set()

    for root in graph:
        if root in done:
            continue

        path: List[str] = [root]
        on_path: Set[str] = {root}
        stack: List[Iterator[str]] = [iter(graph[root])]

        while stack:
            descended: bool = False
            for dep in stack[-1]:
                if dep in on_path:
                    cycle: List[str] = path[path.index(dep):] + [dep]
                    key = frozenset(cycle)
                    if key not in seen:
                        seen.add(key)
                        cycles.append(cycle)
                    continue
                if dep in done:
                    continue
                path.append(dep)
                on_path.add(dep)
                stack.append(iter(graph[dep]))
                descended = True
                break
            if not descended:
                stack.pop()
                node: str = path.pop()
                on_path.discard(node)
                done.add(node)

    if cycles:
        logger.debug("Found %d dependency cycle(s).", len(cycles))
    return cycles


__all__: List[str] = [
    "belongs_to_graph",
    "dependency_graph",
    "dependency_order",
    "find_cycles",
]

logger.debug("laragen.ordering loaded — %d public symbols.", len(__all__))
