"""
Mutation gateway - validated, atomic replacement of newsletter content.
"""

from .component import (
    DEFAULT_CONFIG,
    carry_forward_section_ids,
    run,
    run_apply,
    run_apply_via_token,
    run_replace_section,
    validate_candidate,
)
from .models import (
    Actor,
    ApplyMutationInput,
    ApplyViaTokenInput,
    EditorTokenActor,
    MutationConfig,
    MutationOutput,
    OwnerActor,
    ReplaceSectionInput,
)
from .ports import NewsletterRepoPort

__all__ = [
    # Component
    "run",
    "run_apply",
    "run_apply_via_token",
    "run_replace_section",
    # Pure functions
    "validate_candidate",
    "carry_forward_section_ids",
    # Constants
    "DEFAULT_CONFIG",
    # Models
    "Actor",
    "OwnerActor",
    "EditorTokenActor",
    "MutationConfig",
    "ApplyMutationInput",
    "ApplyViaTokenInput",
    "ReplaceSectionInput",
    "MutationOutput",
    # Ports
    "NewsletterRepoPort",
]
