"""
Indexed view over the project tree.

A ``ProjectHierarchy`` is built once per snapshot of the project collection
and never mutated; rebuild it whenever the collection changes. All lookups go
through the precomputed ``id -> node`` and ``parent_id -> children`` indexes,
so no query rescans the collection.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from site_analytics.config import (
    DEFAULT_HIERARCHY_LABELS,
    LEAF_LEVEL,
    LEVEL_INDEX,
    MISSING_REFERENCE_LABEL,
)
from site_analytics.data.schema import Records, normalize_records
from site_analytics.utils.logger import get_logger

logger = get_logger(__name__)


def _clean(value):
    if value is None:
        return None
    if not isinstance(value, (str, dict)) and pd.isna(value):
        return None
    return value


@dataclass(frozen=True)
class ProjectNode:
    id: str
    name: str
    parent_id: Optional[str]
    type: str
    hierarchy_labels: Optional[Mapping[str, str]] = None
    uom: Optional[str] = None
    total_qty: Optional[float] = None
    rate: Optional[float] = None
    currency: Optional[str] = None

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def is_activity(self) -> bool:
        return self.type == LEAF_LEVEL


class ProjectHierarchy:
    """Forest of ``ProjectNode`` objects with ancestor/descendant queries."""

    def __init__(self, nodes: Iterable[ProjectNode]):
        self._nodes: Dict[str, ProjectNode] = {}
        self._children: Dict[Optional[str], List[str]] = {}
        for node in nodes:
            self._nodes[node.id] = node
            self._children.setdefault(node.parent_id, []).append(node.id)
        self._descendants: Dict[str, FrozenSet[str]] = {}
        self._roots: Dict[str, Optional[ProjectNode]] = {}

        issues = self.integrity_issues()
        if issues:
            logger.warning(
                "Project hierarchy has %d integrity issue(s); first: %s", len(issues), issues[0]
            )

    @classmethod
    def from_frame(cls, projects: Records) -> "ProjectHierarchy":
        df = normalize_records(projects, "projects")
        nodes = []
        for row in df.itertuples(index=False):
            if row.id is None:
                continue
            nodes.append(
                ProjectNode(
                    id=row.id,
                    name=row.name if row.name is not None else row.id,
                    parent_id=_clean(row.parent_id),
                    type=row.type or LEAF_LEVEL,
                    hierarchy_labels=_clean(row.hierarchy_labels),
                    uom=_clean(row.uom),
                    total_qty=_clean(row.total_qty),
                    rate=_clean(row.rate),
                    currency=_clean(row.currency),
                )
            )
        return cls(nodes)

    # ------------------------------------------------------------------
    # Basic lookups
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def get(self, node_id: Optional[str]) -> Optional[ProjectNode]:
        if node_id is None:
            return None
        return self._nodes.get(node_id)

    def node_name(self, node_id: Optional[str]) -> str:
        """Display name, or "N/A" for references missing from this snapshot."""
        node = self.get(node_id)
        return node.name if node else MISSING_REFERENCE_LABEL

    def children_of(self, node_id: Optional[str]) -> List[ProjectNode]:
        return [self._nodes[child] for child in self._children.get(node_id, [])]

    def roots(self) -> List[ProjectNode]:
        return self.children_of(None)

    def activities(self, within: Optional[Iterable[str]] = None) -> List[ProjectNode]:
        if within is None:
            return [node for node in self._nodes.values() if node.is_activity]
        return [
            self._nodes[node_id]
            for node_id in within
            if node_id in self._nodes and self._nodes[node_id].is_activity
        ]

    # ------------------------------------------------------------------
    # Descendants
    # ------------------------------------------------------------------

    def descendant_ids(self, node_id: str) -> FrozenSet[str]:
        """All ids below ``node_id`` (excluding itself); empty for leaves or unknown ids."""
        cached = self._descendants.get(node_id)
        if cached is not None:
            return cached

        found = set()
        stack = list(self._children.get(node_id, []))
        while stack:
            current = stack.pop()
            if current in found or current == node_id:
                continue
            found.add(current)
            memo = self._descendants.get(current)
            if memo is not None:
                found.update(memo)
                continue
            stack.extend(self._children.get(current, []))
        found.discard(node_id)

        result = frozenset(found)
        self._descendants[node_id] = result
        return result

    def expand(self, selected_ids: Iterable[str]) -> FrozenSet[str]:
        """Selected ids plus every descendant of each (unknown ids are kept as given)."""
        expanded = set()
        for node_id in selected_ids:
            if node_id is None or node_id in expanded:
                continue
            expanded.add(node_id)
            expanded.update(self.descendant_ids(node_id))
        return frozenset(expanded)

    # ------------------------------------------------------------------
    # Ancestors
    # ------------------------------------------------------------------

    def ancestors(self, node_id: str) -> Optional[Tuple[ProjectNode, ...]]:
        """
        Path from the root down to ``node_id`` (inclusive).

        Returns None when the node is unknown or the walk hits a cycle or a
        dangling parent reference.
        """
        node = self.get(node_id)
        if node is None:
            return None
        path = [node]
        visited = {node.id}
        while node.parent_id is not None:
            parent = self._nodes.get(node.parent_id)
            if parent is None or parent.id in visited:
                return None
            visited.add(parent.id)
            path.append(parent)
            node = parent
        path.reverse()
        return tuple(path)

    def root_of(self, node_id: str) -> Optional[ProjectNode]:
        """Root reached by walking parent pointers; None on cycles, dangling parents or unknown ids."""
        if node_id in self._roots:
            return self._roots[node_id]
        current = self.get(node_id)
        if current is None:
            return None

        path = []
        visited = set()
        root: Optional[ProjectNode] = None
        while True:
            if current.id in self._roots:
                root = self._roots[current.id]
                break
            if current.id in visited:
                break
            visited.add(current.id)
            path.append(current.id)
            if current.parent_id is None:
                root = current
                break
            parent = self._nodes.get(current.parent_id)
            if parent is None:
                break
            current = parent

        # every node on the walked path shares the outcome
        for walked_id in path:
            self._roots[walked_id] = root
        return root

    def path_names(self, node_id: str) -> List[str]:
        """Names from just below the root down to the node; the root itself is excluded."""
        path = self.ancestors(node_id)
        if not path:
            return []
        return [node.name for node in path[1:]]

    def path_label(self, node_id: str, separator: str = " / ") -> str:
        names = self.path_names(node_id)
        if not names:
            node = self.get(node_id)
            if node is None or self.root_of(node_id) is None:
                return MISSING_REFERENCE_LABEL
            return node.name
        return separator.join(names)

    def top_level_name(self, node_id: str) -> Optional[str]:
        root = self.root_of(node_id)
        return root.name if root else None

    def find_root_by_name(self, name: str) -> Optional[ProjectNode]:
        for root in self.roots():
            if root.name == name:
                return root
        return None

    def labels_for(self, node_id: str) -> Dict[str, str]:
        labels = dict(DEFAULT_HIERARCHY_LABELS)
        root = self.root_of(node_id)
        if root and root.hierarchy_labels:
            labels.update({k: v for k, v in root.hierarchy_labels.items() if v})
        return labels

    # ------------------------------------------------------------------
    # Display helpers
    # ------------------------------------------------------------------

    def selection_label(self, selected_ids: Iterable[str]) -> str:
        selected = list(selected_ids)
        if not selected:
            return "No projects selected"

        root_ids = {root.id for root in self.roots()}
        if root_ids and set(selected) == root_ids:
            return "All Projects"

        selected_set = set(selected)
        top_level = []
        for node_id in selected:
            node = self.get(node_id)
            if node is None:
                continue
            if node.parent_id is None or node.parent_id not in selected_set:
                top_level.append(node.name)
        if not top_level:
            return "a sub-item"
        return ", ".join(top_level)

    def integrity_issues(self) -> List[str]:
        """Cycles, dangling parents and level-order violations, as readable strings."""
        issues = []
        for node in self._nodes.values():
            if node.type not in LEVEL_INDEX:
                issues.append(f"{node.id}: unknown hierarchy level {node.type!r}")
            if node.parent_id is None:
                continue
            parent = self._nodes.get(node.parent_id)
            if parent is None:
                issues.append(f"{node.id}: dangling parent {node.parent_id!r}")
                continue
            child_level = LEVEL_INDEX.get(node.type)
            parent_level = LEVEL_INDEX.get(parent.type)
            if child_level is not None and parent_level is not None and parent_level >= child_level:
                issues.append(
                    f"{node.id}: parent {parent.id!r} level {parent.type} is not shallower than {node.type}"
                )
            if self.root_of(node.id) is None:
                issues.append(f"{node.id}: ancestor walk does not reach a root")
        return issues
