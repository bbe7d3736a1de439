"""Expand/collapse and selection state for the assembly tree."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from epc_viewer.core.errors import UnknownAssemblyError
from epc_viewer.core.hierarchy import ancestor_ids, iter_tree
from epc_viewer.models import AssemblyNode

DEFAULT_INDENT = 12


@dataclass(frozen=True)
class TreeRow:
    id: str
    name: str
    depth: int
    indent: int
    has_children: bool
    expanded: bool
    selected: bool


class AssemblyNavigator:
    """Tree view model.

    Clicking a label calls :meth:`select`; clicking the disclosure control
    calls :meth:`toggle`. Toggling never selects and selecting never changes
    expansion.
    """

    def __init__(
        self,
        tree: Sequence[AssemblyNode],
        on_select: Callable[[str], None] | None = None,
        indent: int = DEFAULT_INDENT,
    ) -> None:
        self._on_select = on_select
        self._indent = indent
        self._tree: list[AssemblyNode] = []
        self._nodes: dict[str, AssemblyNode] = {}
        self._expanded: dict[str, bool] = {}
        self.selected_id: str | None = None
        self.set_tree(tree)

    @property
    def tree(self) -> list[AssemblyNode]:
        return self._tree

    def set_tree(self, tree: Sequence[AssemblyNode]) -> None:
        previous = self._expanded
        self._tree = list(tree)
        self._nodes = {}
        self._expanded = {}
        for node, depth in iter_tree(self._tree):
            self._nodes[node.id] = node
            self._expanded[node.id] = previous.get(node.id, depth == 0)
        if self.selected_id is not None and self.selected_id not in self._nodes:
            self.selected_id = None

    def _node(self, node_id: str) -> AssemblyNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise UnknownAssemblyError(node_id)
        return node

    def select(self, node_id: str) -> None:
        self._node(node_id)
        self.selected_id = node_id
        if self._on_select is not None:
            self._on_select(node_id)

    def toggle(self, node_id: str) -> None:
        node = self._node(node_id)
        if not node.has_children:
            return
        self._expanded[node_id] = not self._expanded[node_id]

    def is_expanded(self, node_id: str) -> bool:
        self._node(node_id)
        return self._expanded[node_id]

    def reveal(self, node_id: str) -> None:
        """Expand every ancestor of ``node_id`` so its row is visible."""
        chain = ancestor_ids(self._tree, node_id)
        if chain is None:
            raise UnknownAssemblyError(node_id)
        for ancestor in chain:
            self._expanded[ancestor] = True

    def visible_rows(self) -> list[TreeRow]:
        rows: list[TreeRow] = []

        def _walk(level: Sequence[AssemblyNode], depth: int) -> None:
            for node in level:
                expanded = self._expanded[node.id]
                rows.append(
                    TreeRow(
                        id=node.id,
                        name=node.name,
                        depth=depth,
                        indent=depth * self._indent,
                        has_children=node.has_children,
                        expanded=expanded,
                        selected=node.id == self.selected_id,
                    )
                )
                if expanded and node.has_children:
                    _walk(node.children, depth + 1)

        _walk(self._tree, 0)
        return rows
