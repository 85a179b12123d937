"""
Serialization component - persisted block records <-> in-memory block tree.

Reading is tolerant: historical documents must stay loadable, so malformed
per-field data is replaced by safe defaults and reported as warnings.
Writing is total and lossless for every persisted field, and strips
anything outside the persisted schema.

Invariants:
- deserialize(serialize(blocks)) == blocks for well-formed blocks
- Per-field damage never raises; structural damage (dangling references,
  cycles) is left for the mutation gateway to reject
- Unknown style keys are quarantined, never persisted
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from canvasletter.domain.blocks import children_of, classify, generate_block_id
from canvasletter.domain.entities import (
    Block,
    BlockStyles,
    ContainerBlock,
    ImageBlock,
    Position,
    SectionMetadata,
    ShapeBlock,
    Size,
    TextBlock,
)
from canvasletter.domain.errors import UnknownBlockTypeError

from .models import (
    DeserializationWarning,
    DeserializeInput,
    DeserializeOutput,
    RepairOutput,
    SerializationConfig,
    SerializeInput,
    SerializeOutput,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = SerializationConfig()

# Wire name -> python field name for every known style key.
STYLE_KEYS: dict[str, str] = {
    (info.alias or to_camel(name)): name for name, info in BlockStyles.model_fields.items()
}


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


# --- Field readers ---


def _read_position(
    raw: Any, config: SerializationConfig, warn: list[DeserializationWarning], block_id: str
) -> Position:
    if isinstance(raw, Mapping) and _is_number(raw.get("x")) and _is_number(raw.get("y")):
        return Position(x=raw["x"], y=raw["y"])
    warn.append(
        DeserializationWarning(
            code="position_defaulted",
            message="Position missing or not numeric",
            block_id=block_id,
            field_name="position",
        )
    )
    x, y = config.default_position
    return Position(x=x, y=y)


def _read_size(
    raw: Any, config: SerializationConfig, warn: list[DeserializationWarning], block_id: str
) -> Size:
    if isinstance(raw, Mapping):
        width, height = raw.get("width"), raw.get("height")
        if _is_number(width) and _is_number(height) and width > 0 and height > 0:
            return Size(width=width, height=height)
    warn.append(
        DeserializationWarning(
            code="size_defaulted",
            message="Size missing, not numeric or not positive",
            block_id=block_id,
            field_name="size",
        )
    )
    width, height = config.default_size
    return Size(width=width, height=height)


def _read_z_index(
    raw: Any, config: SerializationConfig, warn: list[DeserializationWarning], block_id: str
) -> int:
    if _is_number(raw) and math.isfinite(raw) and raw >= 1:
        return int(raw)
    warn.append(
        DeserializationWarning(
            code="z_index_defaulted",
            message="zIndex missing, not numeric or below 1",
            block_id=block_id,
            field_name="zIndex",
        )
    )
    return config.default_z_index


def _read_styles(
    raw: Any,
    config: SerializationConfig,
    warn: list[DeserializationWarning],
    quarantine: dict[str, dict[str, Any]],
    block_id: str,
) -> BlockStyles:
    if raw is None:
        return BlockStyles()
    if not isinstance(raw, Mapping):
        warn.append(
            DeserializationWarning(
                code="styles_defaulted",
                message="Styles is not a map",
                block_id=block_id,
                field_name="styles",
            )
        )
        return BlockStyles()

    accepted: dict[str, Any] = {}
    for key, value in raw.items():
        if value is None:
            continue
        if key not in STYLE_KEYS and key not in STYLE_KEYS.values():
            quarantine.setdefault(block_id, {})[key] = value
            continue

        try:
            BlockStyles.model_validate({key: value})
        except ValidationError:
            warn.append(
                DeserializationWarning(
                    code="style_dropped",
                    message=f"Style {key!r} has an invalid value",
                    block_id=block_id,
                    field_name=f"styles.{key}",
                )
            )
            continue

        wire_key = key if key in STYLE_KEYS else _wire_name(key)
        bounds = config.style_clamps.get(wire_key)
        if bounds and _is_number(value):
            low, high = bounds
            clamped = min(max(value, low), high)
            if clamped != value:
                warn.append(
                    DeserializationWarning(
                        code="style_clamped",
                        message=f"Style {wire_key!r} clamped to [{low}, {high}]",
                        block_id=block_id,
                        field_name=f"styles.{wire_key}",
                    )
                )
                value = clamped
        accepted[wire_key] = value

    if block_id in quarantine:
        logger.warning(
            "Quarantined unknown style keys on block %s: %s",
            block_id,
            sorted(quarantine[block_id]),
        )
    return BlockStyles.model_validate(accepted)


def _wire_name(field_name: str) -> str:
    for wire, name in STYLE_KEYS.items():
        if name == field_name:
            return wire
    return field_name


def _read_text_content(raw: Any) -> str | None:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, Mapping):
        for key in ("content", "text"):
            if isinstance(raw.get(key), str) and raw[key]:
                return raw[key]
    return None


def _read_section_metadata(
    raw: Any, warn: list[DeserializationWarning], block_id: str
) -> SectionMetadata | None:
    if raw is None:
        return None
    try:
        return SectionMetadata.model_validate(raw)
    except ValidationError:
        warn.append(
            DeserializationWarning(
                code="section_metadata_dropped",
                message="Section metadata is malformed",
                block_id=block_id,
                field_name="sectionMetadata",
            )
        )
        return None


# --- Pure Functions (Functional Core) ---


def deserialize_block(
    record: Mapping[str, Any],
    config: SerializationConfig = DEFAULT_CONFIG,
    warnings: list[DeserializationWarning] | None = None,
    quarantine: dict[str, dict[str, Any]] | None = None,
) -> Block:
    """
    Convert one persisted record into a block, substituting defaults for
    malformed fields.

    Raises:
        UnknownBlockTypeError: only when the unknown type policy is "reject".
    """
    warn = warnings if warnings is not None else []
    quarantined = quarantine if quarantine is not None else {}

    block_id = record.get("id")
    if not isinstance(block_id, str) or not block_id:
        block_id = generate_block_id()
        warn.append(
            DeserializationWarning(
                code="id_generated",
                message="Record had no usable id; a new one was assigned",
                block_id=block_id,
                field_name="id",
            )
        )

    base: dict[str, Any] = {
        "id": block_id,
        "position": _read_position(record.get("position"), config, warn, block_id),
        "size": _read_size(record.get("size"), config, warn, block_id),
        "styles": _read_styles(record.get("styles"), config, warn, quarantined, block_id),
        "z_index": _read_z_index(record.get("zIndex"), config, warn, block_id),
    }
    content = record.get("content")

    try:
        block_type = classify(record)
    except UnknownBlockTypeError as e:
        if config.unknown_type_policy == "reject":
            raise UnknownBlockTypeError(e.block_type, block_id) from e
        logger.warning(
            "Unknown block type %r on block %s; substituting placeholder text",
            e.block_type,
            block_id,
        )
        warn.append(
            DeserializationWarning(
                code="unknown_type_placeholder",
                message=f"Unknown block type {e.block_type!r} replaced by a text block",
                block_id=block_id,
                field_name="type",
            )
        )
        return TextBlock(content=config.placeholder_text, **base)

    if block_type == "text":
        text = _read_text_content(content)
        if text is None:
            text = config.placeholder_text
            warn.append(
                DeserializationWarning(
                    code="content_defaulted",
                    message="Text content missing",
                    block_id=block_id,
                    field_name="content",
                )
            )
        return TextBlock(content=text, **base)

    if block_type == "image":
        src: Any = None
        alt: Any = None
        if isinstance(content, Mapping):
            src, alt = content.get("src"), content.get("alt")
        elif isinstance(content, str):
            src = content
        if not isinstance(src, str) or not src:
            src = record.get("src")
        if not isinstance(src, str) or not src:
            src = config.placeholder_image_src
            if not isinstance(alt, str):
                alt = config.placeholder_image_alt
            warn.append(
                DeserializationWarning(
                    code="content_defaulted",
                    message="Image source missing",
                    block_id=block_id,
                    field_name="content.src",
                )
            )
        return ImageBlock(src=src, alt=alt if isinstance(alt, str) else None, **base)

    if block_type == "shape":
        shape_type: Any = None
        if isinstance(content, Mapping):
            shape_type = content.get("shapeType")
        if not isinstance(shape_type, str) or not shape_type:
            shape_type = record.get("shapeType")
        if not isinstance(shape_type, str) or not shape_type:
            shape_type = "rectangle"
        return ShapeBlock(shape_type=shape_type, **base)

    raw_children = record.get("children")
    children: list[str] = []
    if isinstance(raw_children, list):
        for child in raw_children:
            if isinstance(child, str) and child:
                children.append(child)
            else:
                warn.append(
                    DeserializationWarning(
                        code="child_dropped",
                        message=f"Child reference {child!r} is not a block id",
                        block_id=block_id,
                        field_name="children",
                    )
                )
    return ContainerBlock(
        children=children,
        section_metadata=_read_section_metadata(record.get("sectionMetadata"), warn, block_id),
        **base,
    )


def deserialize_blocks(
    records: Sequence[Any], config: SerializationConfig = DEFAULT_CONFIG
) -> DeserializeOutput:
    """Deserialize a persisted block collection, preserving record order."""
    warnings: list[DeserializationWarning] = []
    quarantine: dict[str, dict[str, Any]] = {}
    blocks: list[Block] = []

    for index, record in enumerate(records):
        if not isinstance(record, Mapping):
            warnings.append(
                DeserializationWarning(
                    code="record_dropped",
                    message=f"Record {index} is not a map",
                    field_name=f"blocks[{index}]",
                )
            )
            continue
        blocks.append(deserialize_block(record, config, warnings, quarantine))

    if warnings:
        logger.debug("Deserialized %d blocks with %d repairs", len(blocks), len(warnings))
    return DeserializeOutput(blocks=blocks, warnings=warnings, quarantined_styles=quarantine)


def serialize_block(block: Block) -> dict[str, Any]:
    """Persisted record for one block. Only schema fields are written."""
    content: Any
    if isinstance(block, TextBlock):
        content = block.content
    elif isinstance(block, ImageBlock):
        content = {"src": block.src}
        if block.alt is not None:
            content["alt"] = block.alt
    elif isinstance(block, ShapeBlock):
        content = {"shapeType": block.shape_type}
    else:
        content = {}

    section_metadata = None
    if isinstance(block, ContainerBlock) and block.section_metadata is not None:
        section_metadata = block.section_metadata.model_dump(by_alias=True, exclude_none=True)

    return {
        "id": block.id,
        "type": block.type,
        "content": content,
        "styles": block.styles.model_dump(by_alias=True, exclude_none=True),
        "position": block.position.model_dump(),
        "size": block.size.model_dump(),
        "zIndex": block.z_index,
        "children": list(children_of(block)),
        "sectionMetadata": section_metadata,
    }


def serialize_blocks(blocks: Sequence[Block]) -> list[dict[str, Any]]:
    return [serialize_block(block) for block in blocks]


def repair_dangling_references(blocks: Sequence[Block]) -> RepairOutput:
    """
    Drop child ids that do not resolve (read path only).

    The repaired tree is for display; it must never be written back
    implicitly.
    """
    known = {b.id for b in blocks}
    warnings: list[DeserializationWarning] = []
    repaired: list[Block] = []

    for block in blocks:
        if not isinstance(block, ContainerBlock):
            repaired.append(block)
            continue
        missing = [c for c in block.children if c not in known]
        if not missing:
            repaired.append(block)
            continue
        for child_id in missing:
            warnings.append(
                DeserializationWarning(
                    code="dangling_reference_dropped",
                    message=f"Child {child_id!r} does not exist",
                    block_id=block.id,
                    field_name="children",
                )
            )
        repaired.append(
            block.model_copy(update={"children": [c for c in block.children if c in known]})
        )

    if warnings:
        logger.warning("Dropped %d dangling child references on read", len(warnings))
    return RepairOutput(blocks=repaired, warnings=warnings)


# --- Component entry point ---


def run(
    inp: DeserializeInput | SerializeInput,
    *,
    config: SerializationConfig = DEFAULT_CONFIG,
) -> DeserializeOutput | SerializeOutput:
    """
    Main component entry point (Atomic Component Pattern).

    Args:
        inp: DeserializeInput or SerializeInput
        config: Defaults for tolerant reads

    Returns:
        DeserializeOutput or SerializeOutput
    """
    if isinstance(inp, DeserializeInput):
        return deserialize_blocks(inp.records, config)
    elif isinstance(inp, SerializeInput):
        return SerializeOutput(records=serialize_blocks(inp.blocks))
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
