"""
Sections component - section extraction, AI eligibility checks and
section identity.
"""

from ._identity import (
    create_section_metadata,
    generate_section_id,
    get_section_id,
    preserve_section_metadata,
    record_ai_action,
)
from .component import (
    DEFAULT_CONFIG,
    extract_section,
    get_section_blocks,
    render_section_prompt,
    run,
    section_block_ids,
    validate_section_for_ai,
)
from .models import (
    ExtractSectionInput,
    SectionExtraction,
    SectionsConfig,
    SectionValidationResult,
    ValidateSectionInput,
)

__all__ = [
    # Component
    "run",
    # Pure functions
    "section_block_ids",
    "get_section_blocks",
    "extract_section",
    "render_section_prompt",
    "validate_section_for_ai",
    # Identity
    "generate_section_id",
    "create_section_metadata",
    "get_section_id",
    "preserve_section_metadata",
    "record_ai_action",
    # Constants
    "DEFAULT_CONFIG",
    # Models
    "ExtractSectionInput",
    "ValidateSectionInput",
    "SectionExtraction",
    "SectionValidationResult",
    "SectionsConfig",
]
