"""
Mutation gateway models.

Actors arrive already authenticated: an owner session resolved to a User,
or a share link resolved for the current request.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from canvasletter.components.serialization import SerializationConfig
from canvasletter.components.share_tokens import ResolvedShare
from canvasletter.domain.entities import AIAction, Block, User
from canvasletter.rules.models import BlocksRules, StylesRules

# --- Actors ---


@dataclass(frozen=True)
class OwnerActor:
    user: User


@dataclass(frozen=True)
class EditorTokenActor:
    share: ResolvedShare


Actor = OwnerActor | EditorTokenActor


# --- Configuration ---


@dataclass(frozen=True)
class MutationConfig:
    max_blocks: int | None = 2000
    serialization: SerializationConfig = field(default_factory=SerializationConfig)

    @classmethod
    def from_rules(cls, blocks: BlocksRules, styles: StylesRules) -> MutationConfig:
        return cls(
            max_blocks=blocks.max_blocks_per_document,
            serialization=SerializationConfig.from_rules(blocks, styles),
        )


# --- Input Models ---


@dataclass(frozen=True)
class ApplyMutationInput:
    """
    Full replacement of a newsletter's content.

    Only content fields exist here; title, status, ownership and sharing
    are not reachable through the gateway.
    """

    newsletter_id: UUID
    actor: Actor
    blocks: Sequence[Block]
    structure_json: dict[str, Any] | None = None  # None keeps the stored structure


@dataclass(frozen=True)
class ApplyViaTokenInput:
    token: str
    records: Sequence[Any]  # untyped block records from the client
    structure_json: dict[str, Any] | None = None


@dataclass(frozen=True)
class ReplaceSectionInput:
    """
    Swap a section for an AI-produced replacement.

    ``replacement`` holds the new container and its descendants. The new
    container takes over the old container's id and sectionId.
    """

    newsletter_id: UUID
    actor: Actor
    container_id: str
    replacement: Sequence[Block]
    replacement_root_id: str | None = None  # default: first container in replacement
    ai_action: AIAction | None = None


# --- Output Models ---


@dataclass(frozen=True)
class MutationOutput:
    newsletter_id: UUID
    title: str
    blocks: list[dict[str, Any]]
    structure_json: dict[str, Any]
    updated_at: datetime
    last_autosave: datetime
    # Containers whose incoming sectionId was replaced by the stored one
    restored_section_ids: list[str] = field(default_factory=list)
