"""
Sections component input/output models.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

from canvasletter.domain.entities import Block
from canvasletter.rules.models import SectionsRules

# --- Configuration ---


@dataclass(frozen=True)
class SectionsConfig:
    """Limits for AI-scoped section operations."""

    max_depth: int = 3
    max_blocks: int = 50
    preview_length: int = 200

    @classmethod
    def from_rules(cls, rules: SectionsRules) -> SectionsConfig:
        return cls(
            max_depth=rules.max_depth,
            max_blocks=rules.max_blocks,
            preview_length=rules.preview_length,
        )


# --- Input Models ---


@dataclass(frozen=True)
class ExtractSectionInput:
    container_id: str
    blocks: Sequence[Block]


@dataclass(frozen=True)
class ValidateSectionInput:
    blocks: Sequence[Block]
    container_id: str | None = None
    text_block_id: str | None = None


# --- Output Models ---


@dataclass(frozen=True)
class SectionExtraction:
    """A container plus every transitively reachable descendant."""

    container_id: str
    block_ids: list[str]
    blocks: list[Block]
    prompt_text: str


@dataclass(frozen=True)
class SectionValidationResult:
    valid: bool
    section_type: Literal["container", "text_block"]
    depth: int = 0
    block_count: int = 0
    error: str | None = None
    issues: list[str] = field(default_factory=list)
