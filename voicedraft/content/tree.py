"""Two-level section/subsection tree with pure update operations.

Responsibilities:
- Own the ordered section hierarchy and its depth and ownership invariants.
- Return a new consistent snapshot from every update instead of mutating live state.
- Provide a single-writer holder that generation jobs use to write status back.

Key types:
- `ContentTree`: immutable tree snapshot.
- `TreeHolder`: the current snapshot plus serialized `apply` updates.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field, replace
from uuid import uuid4

from ..errors import InvalidSelectionError, NodeNotFoundError
from ..models.datatypes import ContentNode

_UPDATABLE_FIELDS = frozenset(
    {"name", "text", "voice", "status", "artifact", "error_message"}
)


def _new_node_id() -> str:
    return uuid4().hex


@dataclass(frozen=True, slots=True)
class ContentTree:
    """Immutable ordered sequence of sections, each holding its subsections."""

    roots: tuple[ContentNode, ...] = field(default_factory=tuple)
    id_factory: Callable[[], str] = field(default=_new_node_id, repr=False, compare=False)

    def __len__(self) -> int:
        return len(self.roots)

    @property
    def is_empty(self) -> bool:
        """Return whether the tree has no sections."""

        return not self.roots

    def walk(self) -> Iterator[tuple[ContentNode, ContentNode | None]]:
        """Yield `(node, parent)` pairs in outline order."""

        for root in self.roots:
            yield root, None
            for child in root.children:
                yield child, root

    def find(self, node_id: str) -> ContentNode | None:
        """Return the section or subsection with the given id."""

        for node, _parent in self.walk():
            if node.id == node_id:
                return node
        return None

    def parent_of(self, node_id: str) -> ContentNode | None:
        """Return the section owning a subsection, or `None` for sections and unknown ids."""

        for node, parent in self.walk():
            if node.id == node_id:
                return parent
        return None

    def add_root_node(self, text: str, voice: str) -> tuple[ContentTree, ContentNode]:
        """Append a section named `Section N` and return the new tree and node."""

        node = ContentNode(
            id=self.id_factory(),
            name=f"Section {len(self.roots) + 1}",
            text=text,
            voice=voice,
        )
        return replace(self, roots=self.roots + (node,)), node

    def extract_child(
        self,
        parent_id: str,
        start_offset: int,
        end_offset: int,
    ) -> tuple[ContentTree, ContentNode]:
        """Create a `Part M` subsection from a selection of a section's text.

        The parent's text is left untouched; the child inherits the parent's
        current voice and holds the selected substring verbatim.
        """

        parent = self.find(parent_id)
        if parent is None:
            raise NodeNotFoundError(f"No section with id `{parent_id}`.", stage="extract")
        if self.parent_of(parent_id) is not None:
            raise InvalidSelectionError(
                f"`{parent.name}` is already a subsection and cannot be split further.",
                hint="Extract subsections from a top-level section.",
            )
        if start_offset == end_offset:
            raise InvalidSelectionError(
                "Selection is empty.",
                hint="Select the text that should become a subsection.",
            )
        selected = parent.text[start_offset:end_offset]
        if not selected.strip():
            raise InvalidSelectionError(
                "Selection contains only whitespace.",
                hint="Select the text that should become a subsection.",
            )

        child = ContentNode(
            id=self.id_factory(),
            name=f"Part {len(parent.children) + 1}",
            text=selected,
            voice=parent.voice,
        )
        updated_parent = replace(parent, children=parent.children + (child,))
        roots = tuple(updated_parent if root.id == parent_id else root for root in self.roots)
        return replace(self, roots=roots), child

    def update_node(self, node_id: str, **fields: object) -> ContentTree:
        """Merge fields into the matching section or subsection; unknown ids are a no-op."""

        unknown = sorted(set(fields).difference(_UPDATABLE_FIELDS))
        if unknown:
            raise ValueError(f"Unsupported node field(s): {', '.join(unknown)}.")
        if self.find(node_id) is None:
            return self

        roots: list[ContentNode] = []
        for root in self.roots:
            if root.id == node_id:
                root = replace(root, **fields)
            elif any(child.id == node_id for child in root.children):
                root = replace(
                    root,
                    children=tuple(
                        replace(child, **fields) if child.id == node_id else child
                        for child in root.children
                    ),
                )
            roots.append(root)
        return replace(self, roots=tuple(roots))

    def delete_node(self, node_id: str) -> ContentTree:
        """Remove a section with its subsections, or a single subsection."""

        if self.find(node_id) is None:
            return self

        roots: list[ContentNode] = []
        for root in self.roots:
            if root.id == node_id:
                continue
            if any(child.id == node_id for child in root.children):
                root = replace(
                    root,
                    children=tuple(child for child in root.children if child.id != node_id),
                )
            roots.append(root)
        return replace(self, roots=tuple(roots))


class TreeHolder:
    """Single writer for the current `ContentTree` snapshot."""

    def __init__(self, tree: ContentTree | None = None) -> None:
        """Initialize the holder with an optional starting snapshot."""

        self._tree = tree if tree is not None else ContentTree()

    @property
    def tree(self) -> ContentTree:
        """Return the current snapshot."""

        return self._tree

    def apply(self, update: Callable[[ContentTree], ContentTree]) -> ContentTree:
        """Replace the snapshot with `update(current)` and return it."""

        self._tree = update(self._tree)
        return self._tree

    def reset(self) -> ContentTree:
        """Drop every section, keeping the id factory."""

        self._tree = ContentTree(id_factory=self._tree.id_factory)
        return self._tree
