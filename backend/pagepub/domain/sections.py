"""
Section kinds and the arena-backed section tree.

Snapshots store sections flat, each with the ordered list of its ancestor
ids. The tree is rebuilt in two passes over an arena of nodes addressed by
index, so no node ever holds a reference to another node.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence

from pagepub.domain.errors import ValidationError


class SectionKind(str, Enum):
    GENERIC = "generic"
    FORM_RECORD = "form_record"


# Styles that render the caller's own submitted form records
FORM_RECORD_STYLES = frozenset({"formUserInputRecord", "formUserInputLog", "formRecord"})


def section_kind(style_name: Optional[str]) -> SectionKind:
    if style_name in FORM_RECORD_STYLES:
        return SectionKind.FORM_RECORD
    return SectionKind.GENERIC


@dataclass
class SectionNode:
    index: int
    id: str
    parent_id: Optional[str]
    position: int
    kind: SectionKind
    data: Dict[str, Any]
    children: List[int] = field(default_factory=list)


class SectionTree:
    def __init__(self, nodes: List[SectionNode], roots: List[int]):
        self._nodes = nodes
        self._roots = roots

    @classmethod
    def build(cls, sections: Sequence[Dict[str, Any]]) -> "SectionTree":
        nodes: List[SectionNode] = []
        index_by_id: Dict[str, int] = {}

        # Pass 1: allocate nodes, remember each node's parent id
        for raw in sections:
            section_id = str(raw["id"])
            if section_id in index_by_id:
                raise ValidationError(f"Duplicate section id {section_id}.")
            path = raw.get("parent_path") or []
            node = SectionNode(
                index=len(nodes),
                id=section_id,
                parent_id=str(path[-1]) if path else None,
                position=int(raw.get("position") or 0),
                kind=section_kind(raw.get("style_name")),
                data=raw,
            )
            index_by_id[section_id] = node.index
            nodes.append(node)

        # Pass 2: link children to parents by index
        roots: List[int] = []
        for node in nodes:
            if node.parent_id is None:
                roots.append(node.index)
                continue
            parent_index = index_by_id.get(node.parent_id)
            if parent_index is None:
                raise ValidationError(
                    f"Section {node.id} references missing parent {node.parent_id}."
                )
            nodes[parent_index].children.append(node.index)

        def order(indexes: List[int]) -> List[int]:
            return sorted(indexes, key=lambda i: (nodes[i].position, i))

        for node in nodes:
            node.children = order(node.children)

        return cls(nodes, order(roots))

    def __len__(self) -> int:
        return len(self._nodes)

    def node(self, index: int) -> SectionNode:
        return self._nodes[index]

    def roots(self) -> List[SectionNode]:
        return [self._nodes[i] for i in self._roots]

    def children(self, node: SectionNode) -> List[SectionNode]:
        return [self._nodes[i] for i in node.children]

    def walk(self) -> Iterator[SectionNode]:
        """Depth-first, siblings in position order."""
        stack = list(reversed(self._roots))
        while stack:
            node = self._nodes[stack.pop()]
            yield node
            stack.extend(reversed(node.children))
