"""
Sections component - section extraction for scoped AI operations.

A section is a container plus every block transitively reachable through
``children``. Extraction narrows a full document to that sub-tree and
renders it as plain text for AI prompts.

Invariants:
- Traversal terminates on cyclic input (already-visited ids are skipped)
- Rendering is deterministic: the same block set yields the same string
- Only blocks present in the input are returned
"""

from __future__ import annotations

from collections import deque
from collections.abc import Sequence

from canvasletter.domain.blocks import (
    BlockTree,
    children_of,
    find_cycles,
    find_dangling_references,
    paint_order,
)
from canvasletter.domain.entities import (
    Block,
    ContainerBlock,
    ImageBlock,
    ShapeBlock,
    TextBlock,
)
from canvasletter.domain.errors import NotFoundError

from .models import (
    ExtractSectionInput,
    SectionExtraction,
    SectionsConfig,
    SectionValidationResult,
    ValidateSectionInput,
)

DEFAULT_CONFIG = SectionsConfig()


# --- Pure Functions (Functional Core) ---


def section_block_ids(container_id: str, blocks: Sequence[Block]) -> list[str]:
    """
    Ids in the section rooted at ``container_id``, root first, then in
    breadth-first discovery order following each container's child order.

    A non-container root yields a one-element section. Child ids that do
    not resolve are still listed; callers filter against the collection.

    Raises:
        NotFoundError: if ``container_id`` is not in ``blocks``.
    """
    tree = BlockTree(blocks)
    if container_id not in tree:
        raise NotFoundError(f"Block {container_id!r} not found")

    seen = {container_id}
    ordered = [container_id]
    queue = deque([container_id])
    while queue:
        for child_id in tree.child_ids(queue.popleft()):
            if child_id in seen:
                continue
            seen.add(child_id)
            ordered.append(child_id)
            queue.append(child_id)

    return ordered


def get_section_blocks(container_id: str, blocks: Sequence[Block]) -> list[Block]:
    """Section blocks filtered from ``blocks``, in collection order."""
    ids = set(section_block_ids(container_id, blocks))
    return [b for b in blocks if b.id in ids]


def _preview(text: str, limit: int) -> str:
    if len(text) > limit:
        return f"{text[:limit]}..."
    return text


def _describe(block: Block, preview_length: int) -> str:
    if isinstance(block, TextBlock):
        return f'  - Text block: "{_preview(block.content, preview_length)}"'
    if isinstance(block, ImageBlock):
        return f"  - Image block: {block.alt or block.src}"
    if isinstance(block, ShapeBlock):
        return f"  - Shape block: {block.shape_type}"
    return f"  - Nested container with {len(children_of(block))} child elements"


def render_section_prompt(
    blocks: Sequence[Block],
    container_id: str | None = None,
    preview_length: int = DEFAULT_CONFIG.preview_length,
) -> str:
    """
    Plain-text rendering of a section for AI prompt context.

    A lone text block renders as its literal content. Otherwise the first
    line counts every element below the container, followed by one line
    per direct child in child order. Blocks without a container are listed
    in paint order.
    """
    if len(blocks) == 1 and isinstance(blocks[0], TextBlock):
        return blocks[0].content

    container: ContainerBlock | None = None
    for block in blocks:
        if isinstance(block, ContainerBlock) and (
            container_id is None or block.id == container_id
        ):
            container = block
            break

    if container is None:
        lines = [f"Section content ({len(blocks)} blocks):"]
        lines.extend(_describe(b, preview_length) for b in paint_order(blocks))
        return "\n".join(lines)

    by_id = {b.id: b for b in blocks}
    descendants = sum(1 for block_id in by_id if block_id != container.id)
    lines = [f"Container section with {descendants} child elements:"]
    for child_id in container.children:
        child = by_id.get(child_id)
        if child is not None and child.id != container.id:
            lines.append(_describe(child, preview_length))
    return "\n".join(lines)


def extract_section(
    container_id: str,
    blocks: Sequence[Block],
    config: SectionsConfig = DEFAULT_CONFIG,
) -> SectionExtraction:
    """
    Extract the closed section rooted at ``container_id``.

    Raises:
        NotFoundError: if ``container_id`` is not in ``blocks``.
    """
    ids = section_block_ids(container_id, blocks)
    present = {b.id for b in blocks}
    block_ids = [i for i in ids if i in present]
    section = get_section_blocks(container_id, blocks)

    return SectionExtraction(
        container_id=container_id,
        block_ids=block_ids,
        blocks=section,
        prompt_text=render_section_prompt(section, container_id, config.preview_length),
    )


def _section_depth(root_id: str, tree: BlockTree) -> int:
    depth = 0
    seen = {root_id}
    frontier = [root_id]
    level = 0
    while frontier:
        next_frontier: list[str] = []
        for block_id in frontier:
            for child_id in tree.child_ids(block_id):
                if child_id in seen or child_id not in tree:
                    continue
                seen.add(child_id)
                next_frontier.append(child_id)
        if next_frontier:
            level += 1
            depth = level
        frontier = next_frontier
    return depth


def validate_section_for_ai(
    blocks: Sequence[Block],
    container_id: str | None = None,
    text_block_id: str | None = None,
    config: SectionsConfig = DEFAULT_CONFIG,
) -> SectionValidationResult:
    """
    Check that a selection is a well-bounded target for an AI action.

    Text block selections only need to exist. Container selections must be
    acyclic, within depth and size limits, fully resolvable, and must not
    share descendants with containers outside the section.
    """
    tree = BlockTree(blocks)

    if text_block_id and not container_id:
        if text_block_id not in tree:
            return SectionValidationResult(
                valid=False,
                section_type="text_block",
                error="Selected text block not found",
            )
        return SectionValidationResult(valid=True, section_type="text_block", block_count=1)

    container = tree.get(container_id) if container_id else None
    if not isinstance(container, ContainerBlock):
        return SectionValidationResult(
            valid=False,
            section_type="container",
            error="No container or text block selected",
        )

    ids = section_block_ids(container.id, blocks)
    section = [b for b in (tree.get(i) for i in ids) if b is not None]

    cycles = find_cycles(section)
    if cycles:
        return SectionValidationResult(
            valid=False,
            section_type="container",
            error="Circular reference detected in container children",
            issues=[issue.message for issue in cycles],
        )

    depth = _section_depth(container.id, tree)
    if depth > config.max_depth:
        return SectionValidationResult(
            valid=False,
            section_type="container",
            depth=depth,
            error=(
                f"Section nesting depth ({depth}) exceeds maximum allowed ({config.max_depth})"
            ),
        )

    block_count = len(section)
    if block_count > config.max_blocks:
        return SectionValidationResult(
            valid=False,
            section_type="container",
            depth=depth,
            block_count=block_count,
            error=(
                f"Section contains too many blocks ({block_count}). "
                f"Maximum is {config.max_blocks}"
            ),
        )

    dangling = find_dangling_references(section)
    if dangling:
        return SectionValidationResult(
            valid=False,
            section_type="container",
            depth=depth,
            block_count=block_count,
            error="Section references blocks that do not exist",
            issues=[issue.message for issue in dangling],
        )

    section_ids = set(ids)
    shared = [
        f"Block {block.id!r} is also a child of {parent!r} outside the section"
        for block in section
        if block.id != container.id
        for parent in tree.parents_of(block.id)
        if parent not in section_ids
    ]
    if shared:
        return SectionValidationResult(
            valid=False,
            section_type="container",
            depth=depth,
            block_count=block_count,
            error="Section contains containers with references outside the section boundary",
            issues=shared,
        )

    return SectionValidationResult(
        valid=True,
        section_type="container",
        depth=depth,
        block_count=block_count,
    )


# --- Component entry point ---


def run(
    inp: ExtractSectionInput | ValidateSectionInput,
    *,
    config: SectionsConfig = DEFAULT_CONFIG,
) -> SectionExtraction | SectionValidationResult:
    """
    Main component entry point (Atomic Component Pattern).

    Args:
        inp: ExtractSectionInput or ValidateSectionInput
        config: Section limits

    Returns:
        SectionExtraction or SectionValidationResult
    """
    if isinstance(inp, ExtractSectionInput):
        return extract_section(inp.container_id, inp.blocks, config)
    elif isinstance(inp, ValidateSectionInput):
        return validate_section_for_ai(
            inp.blocks,
            container_id=inp.container_id,
            text_block_id=inp.text_block_id,
            config=config,
        )
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
