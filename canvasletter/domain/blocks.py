"""
Block model predicates and structural checks.

The block tree is a flat collection: containers reference children by id,
children are never embedded. Everything here is pure.
"""

from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any
from uuid import uuid4

from canvasletter.domain.entities import (
    BLOCK_TYPES,
    Block,
    BlockStyles,
    BlockType,
    ContainerBlock,
    ImageBlock,
    Position,
    SectionMetadata,
    ShapeBlock,
    Size,
    TextBlock,
)
from canvasletter.domain.errors import StructureIssue, UnknownBlockTypeError

DEFAULT_POSITION = Position(x=100, y=100)


def generate_block_id() -> str:
    return f"block-{uuid4().hex}"


# --- Classification ---

def classify(block: Block | Mapping[str, Any]) -> BlockType:
    """
    Return the variant tag of a block or raw block record.

    Raises:
        UnknownBlockTypeError: if the discriminator is not a known block type.
    """
    if isinstance(block, Mapping):
        tag = block.get("type")
        block_id = block.get("id")
    else:
        tag = getattr(block, "type", None)
        block_id = getattr(block, "id", None)

    if tag not in BLOCK_TYPES:
        raise UnknownBlockTypeError(tag, block_id if isinstance(block_id, str) else None)
    return tag  # type: ignore[return-value]


def is_text(block: Block) -> bool:
    return isinstance(block, TextBlock)


def is_image(block: Block) -> bool:
    return isinstance(block, ImageBlock)


def is_shape(block: Block) -> bool:
    return isinstance(block, ShapeBlock)


def is_container(block: Block) -> bool:
    return isinstance(block, ContainerBlock)


def children_of(block: Block) -> tuple[str, ...]:
    """Ordered child ids for containers, empty for every other variant."""
    if isinstance(block, ContainerBlock):
        return tuple(block.children)
    return ()


def _z_index_of(block: Block | Mapping[str, Any]) -> int:
    if isinstance(block, Mapping):
        value = block.get("zIndex", 1)
        return value if isinstance(value, int) and not isinstance(value, bool) else 1
    return block.z_index


def next_z_index(blocks: Iterable[Block | Mapping[str, Any]]) -> int:
    """
    Max zIndex plus one, or 1 for an empty collection.

    Not a counter: two concurrent inserts may get the same value, which only
    affects paint order.
    """
    z_values = [_z_index_of(b) for b in blocks]
    if not z_values:
        return 1
    return max(z_values) + 1


def paint_order(blocks: Sequence[Block]) -> list[Block]:
    """Sort by zIndex; ties keep their order of appearance."""
    return sorted(blocks, key=lambda b: b.z_index)


# --- Tree view ---

class BlockTree:
    """Id -> block mapping with parent tracking over a flat block collection."""

    def __init__(self, blocks: Sequence[Block]):
        self._by_id: dict[str, Block] = {}
        self._parents: dict[str, list[str]] = {}
        self.duplicate_ids: list[str] = []

        for block in blocks:
            if block.id in self._by_id:
                self.duplicate_ids.append(block.id)
                continue
            self._by_id[block.id] = block

        for block in self._by_id.values():
            for child_id in children_of(block):
                self._parents.setdefault(child_id, []).append(block.id)

    def __contains__(self, block_id: object) -> bool:
        return block_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)

    def get(self, block_id: str) -> Block | None:
        return self._by_id.get(block_id)

    def child_ids(self, block_id: str) -> tuple[str, ...]:
        block = self._by_id.get(block_id)
        return children_of(block) if block else ()

    def children(self, block_id: str) -> list[Block]:
        """Resolved children in list order; dangling ids are skipped."""
        return [self._by_id[c] for c in self.child_ids(block_id) if c in self._by_id]

    def parents_of(self, block_id: str) -> list[str]:
        return list(self._parents.get(block_id, []))


# --- Structural invariants ---

def find_duplicate_ids(blocks: Sequence[Block]) -> list[StructureIssue]:
    tree = BlockTree(blocks)
    return [
        StructureIssue(
            code="duplicate_id",
            block_id=block_id,
            message=f"Block id {block_id!r} appears more than once",
        )
        for block_id in dict.fromkeys(tree.duplicate_ids)
    ]


def find_dangling_references(blocks: Sequence[Block]) -> list[StructureIssue]:
    known = {b.id for b in blocks}
    issues: list[StructureIssue] = []
    for block in blocks:
        for child_id in children_of(block):
            if child_id not in known:
                issues.append(
                    StructureIssue(
                        code="dangling_reference",
                        block_id=block.id,
                        message=f"Container {block.id!r} references missing block {child_id!r}",
                    )
                )
    return issues


def find_cycles(blocks: Sequence[Block]) -> list[StructureIssue]:
    """
    Detect blocks that are (directly or transitively) their own descendant.

    Iterative depth-first search so deep trees cannot exhaust the stack.
    """
    graph = {b.id: children_of(b) for b in blocks}
    visiting, done = 1, 2
    state: dict[str, int] = {}
    issues: list[StructureIssue] = []

    for root in graph:
        if root in state:
            continue
        state[root] = visiting
        stack: list[tuple[str, Iterator[str]]] = [(root, iter(graph[root]))]
        while stack:
            node, pending = stack[-1]
            descended = False
            for child_id in pending:
                if child_id not in graph:
                    continue
                seen = state.get(child_id)
                if seen == visiting:
                    issues.append(
                        StructureIssue(
                            code="cycle",
                            block_id=child_id,
                            message=f"Block {child_id!r} is its own descendant (via {node!r})",
                        )
                    )
                elif seen is None:
                    state[child_id] = visiting
                    stack.append((child_id, iter(graph[child_id])))
                    descended = True
                    break
            if not descended:
                state[node] = done
                stack.pop()

    return issues


def validate_structure(
    blocks: Sequence[Block], max_blocks: int | None = None
) -> list[StructureIssue]:
    """All structural issues of a candidate collection (empty when well-formed)."""
    issues: list[StructureIssue] = []
    if max_blocks is not None and len(blocks) > max_blocks:
        issues.append(
            StructureIssue(
                code="too_many_blocks",
                block_id=None,
                message=f"Document has {len(blocks)} blocks (max {max_blocks})",
            )
        )
    issues.extend(find_duplicate_ids(blocks))
    issues.extend(find_dangling_references(blocks))
    issues.extend(find_cycles(blocks))
    return issues


# --- Factories ---

def make_text_block(
    content: str = "Text",
    position: Position | None = None,
    existing: Sequence[Block] = (),
) -> TextBlock:
    return TextBlock(
        id=generate_block_id(),
        content=content,
        position=position or DEFAULT_POSITION,
        size=Size(width=200, height=100),
        styles=BlockStyles(font_size=16, font_weight="normal", color="#000000", text_align="left"),
        z_index=next_z_index(existing),
    )


def make_image_block(
    src: str,
    position: Position | None = None,
    existing: Sequence[Block] = (),
) -> ImageBlock:
    return ImageBlock(
        id=generate_block_id(),
        src=src,
        alt="Image",
        position=position or DEFAULT_POSITION,
        size=Size(width=200, height=200),
        styles=BlockStyles(object_fit="cover", border_radius=0),
        z_index=next_z_index(existing),
    )


def make_shape_block(
    position: Position | None = None,
    existing: Sequence[Block] = (),
    shape_type: str = "rectangle",
) -> ShapeBlock:
    return ShapeBlock(
        id=generate_block_id(),
        shape_type=shape_type,
        position=position or DEFAULT_POSITION,
        size=Size(width=200, height=100),
        styles=BlockStyles(
            background_color="#e5e7eb",
            border_color="#d1d5db",
            border_width=1,
            border_radius=0,
        ),
        z_index=next_z_index(existing),
    )


def make_container_block(
    children: Sequence[str] = (),
    position: Position | None = None,
    existing: Sequence[Block] = (),
    section_metadata: SectionMetadata | None = None,
) -> ContainerBlock:
    return ContainerBlock(
        id=generate_block_id(),
        children=list(children),
        position=position or DEFAULT_POSITION,
        size=Size(width=500, height=500),
        styles=BlockStyles(background_color="transparent", border_width=0),
        z_index=next_z_index(existing),
        section_metadata=section_metadata,
    )
