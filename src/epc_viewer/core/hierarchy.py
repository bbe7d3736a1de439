"""Build the assembly forest from the flat assembly list.

Parent references come straight from the data store, so they may dangle or
form cycles. Construction is arena style: every record gets a node in an
id -> node map first, then nodes are linked. A record whose parent cannot be
resolved, or whose parent chain leads back to itself, becomes a root.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence

from epc_viewer.models import Assembly, AssemblyNode

logger = logging.getLogger(__name__)


def _sort_key(node: AssemblyNode) -> tuple[str, str, str]:
    return (node.name.casefold(), node.name, node.id)


def _find_cycle_members(parents: dict[str, str | None]) -> set[str]:
    """Return ids that lie on a parent cycle (including self-references)."""
    on_cycle: set[str] = set()
    resolved: set[str] = set()

    for start in parents:
        if start in resolved:
            continue
        path: list[str] = []
        index_in_path: dict[str, int] = {}
        current: str | None = start
        while current is not None and current in parents and current not in resolved:
            if current in index_in_path:
                on_cycle.update(path[index_in_path[current] :])
                break
            index_in_path[current] = len(path)
            path.append(current)
            current = parents[current]
        resolved.update(path)

    return on_cycle


def build_assembly_tree(assemblies: Iterable[Assembly]) -> list[AssemblyNode]:
    """Return root nodes with children populated and siblings sorted by name."""
    nodes: dict[str, AssemblyNode] = {}
    order: list[str] = []
    for asm in assemblies:
        if asm.id in nodes:
            logger.warning("Duplicate assembly id %s ignored (%s)", asm.id, asm.name)
            continue
        nodes[asm.id] = AssemblyNode(assembly=asm)
        order.append(asm.id)

    parents = {asm_id: nodes[asm_id].assembly.parent_assembly_id for asm_id in order}
    cyclic = _find_cycle_members(parents)
    if cyclic:
        logger.warning("Assemblies on a parent cycle treated as roots: %s", sorted(cyclic))

    roots: list[AssemblyNode] = []
    for asm_id in order:
        node = nodes[asm_id]
        parent_id = parents[asm_id]
        if parent_id is None or asm_id in cyclic:
            roots.append(node)
        elif parent_id not in nodes:
            logger.warning("Assembly %s references missing parent %s", asm_id, parent_id)
            roots.append(node)
        else:
            nodes[parent_id].children.append(node)

    # Every node is reachable from exactly one root, so this visits each once.
    stack = list(roots)
    while stack:
        node = stack.pop()
        node.children.sort(key=_sort_key)
        stack.extend(node.children)
    roots.sort(key=_sort_key)
    return roots


def iter_tree(nodes: Sequence[AssemblyNode], depth: int = 0) -> Iterator[tuple[AssemblyNode, int]]:
    """Depth-first walk yielding ``(node, depth)`` in display order."""
    for node in nodes:
        yield node, depth
        yield from iter_tree(node.children, depth + 1)


def find_node(nodes: Sequence[AssemblyNode], assembly_id: str) -> AssemblyNode | None:
    for node, _ in iter_tree(nodes):
        if node.id == assembly_id:
            return node
    return None


def ancestor_ids(nodes: Sequence[AssemblyNode], assembly_id: str) -> list[str] | None:
    """Return the root-first chain of ancestor ids, or ``None`` if absent."""

    def _walk(level: Sequence[AssemblyNode], trail: list[str]) -> list[str] | None:
        for node in level:
            if node.id == assembly_id:
                return trail
            found = _walk(node.children, [*trail, node.id])
            if found is not None:
                return found
        return None

    return _walk(nodes, [])


def count_nodes(nodes: Sequence[AssemblyNode]) -> int:
    return sum(1 for _ in iter_tree(nodes))
