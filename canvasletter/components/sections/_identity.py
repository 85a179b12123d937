"""
Section identity.

A section's ``sectionId`` is assigned once, when its container is created,
and is carried forward unchanged by every content replacement. Identity
assignment is kept apart from content assignment.
"""

from __future__ import annotations

import secrets
import string
from datetime import datetime

from canvasletter.domain.entities import (
    AIAction,
    ContainerBlock,
    SectionCreator,
    SectionMetadata,
    SectionType,
    utc_now,
)

_BASE36 = string.digits + string.ascii_lowercase


def generate_section_id(now: datetime | None = None) -> str:
    """Format: section-{epoch millis}-{7 random base36 chars}."""
    moment = now or utc_now()
    millis = int(moment.timestamp() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(7))
    return f"section-{millis}-{suffix}"


def create_section_metadata(
    created_by: SectionCreator = "manual",
    section_type: SectionType | None = None,
    now: datetime | None = None,
) -> SectionMetadata:
    moment = now or utc_now()
    return SectionMetadata(
        section_id=generate_section_id(moment),
        section_type=section_type,
        created_by=created_by,
        last_modified_at=moment.isoformat(),
    )


def get_section_id(container: ContainerBlock | None) -> str | None:
    if container is None or container.section_metadata is None:
        return None
    return container.section_metadata.section_id


def preserve_section_metadata(
    existing: ContainerBlock | None,
    replacement: ContainerBlock,
    now: datetime | None = None,
) -> ContainerBlock:
    """
    Carry the existing container's section identity onto its replacement.

    Containers that never had identity get fresh AI-created metadata.
    """
    moment = now or utc_now()
    if existing is not None and existing.section_metadata is not None:
        metadata = existing.section_metadata.model_copy(
            update={"last_modified_at": moment.isoformat()}
        )
        return replacement.model_copy(update={"section_metadata": metadata})

    if replacement.section_metadata is None:
        return replacement.model_copy(
            update={"section_metadata": create_section_metadata("ai", now=moment)}
        )
    return replacement


def record_ai_action(
    container: ContainerBlock,
    action: AIAction,
    now: datetime | None = None,
) -> ContainerBlock:
    moment = now or utc_now()
    if container.section_metadata is None:
        metadata = create_section_metadata("ai", now=moment)
    else:
        metadata = container.section_metadata
    metadata = metadata.model_copy(
        update={"last_ai_action": action, "last_modified_at": moment.isoformat()}
    )
    return container.model_copy(update={"section_metadata": metadata})
