"""
Serialization component input/output models.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from canvasletter.domain.entities import Block
from canvasletter.rules.models import BlocksRules, StylesRules

# --- Warnings ---


@dataclass(frozen=True)
class DeserializationWarning:
    """A per-field repair made while reading a persisted record."""

    code: str
    message: str
    block_id: str | None = None
    field_name: str | None = None


# --- Configuration ---


@dataclass(frozen=True)
class SerializationConfig:
    """Defaults substituted for malformed persisted fields."""

    default_position: tuple[float, float] = (0, 0)
    default_size: tuple[float, float] = (200, 100)
    default_z_index: int = 1
    unknown_type_policy: Literal["placeholder", "reject"] = "placeholder"
    placeholder_text: str = "Text"
    placeholder_image_src: str = "https://via.placeholder.com/200x200"
    placeholder_image_alt: str = "Image"
    style_clamps: dict[str, tuple[float, float]] = field(default_factory=dict)

    @classmethod
    def from_rules(cls, blocks: BlocksRules, styles: StylesRules) -> SerializationConfig:
        return cls(
            default_position=(blocks.default_position.x, blocks.default_position.y),
            default_size=(blocks.default_size.width, blocks.default_size.height),
            default_z_index=blocks.default_z_index,
            unknown_type_policy=blocks.unknown_type_policy,
            placeholder_text=blocks.placeholder_text,
            placeholder_image_src=blocks.placeholder_image_src,
            placeholder_image_alt=blocks.placeholder_image_alt,
            style_clamps={k: (r.min, r.max) for k, r in styles.clamps.items()},
        )


# --- Input Models ---


@dataclass(frozen=True)
class DeserializeInput:
    records: Sequence[Any]


@dataclass(frozen=True)
class SerializeInput:
    blocks: Sequence[Block]


# --- Output Models ---


@dataclass(frozen=True)
class DeserializeOutput:
    blocks: list[Block]
    warnings: list[DeserializationWarning] = field(default_factory=list)
    # block id -> style keys that are not part of the known style set
    quarantined_styles: dict[str, dict[str, Any]] = field(default_factory=dict)


@dataclass(frozen=True)
class SerializeOutput:
    records: list[dict[str, Any]]


@dataclass(frozen=True)
class RepairOutput:
    blocks: list[Block]
    warnings: list[DeserializationWarning] = field(default_factory=list)
