"""
Mutation gateway - the only write path for a newsletter's blocks and
structure.

Owners (session) and editor share links (resolved per request) both come
through here. A candidate is checked as a whole and written as a whole;
a rejected candidate leaves the stored document untouched.

Invariants:
- Every child reference resolves, no block is its own descendant, ids are unique
- blocks and structureJSON are replaced in one atomic write
- Only content fields are writable; ownership and sharing are out of reach
- A stored sectionId is never replaced by a write
- Last write wins; there is no version check
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from uuid import UUID

from canvasletter.components.sections import (
    preserve_section_metadata,
    record_ai_action,
    section_block_ids,
)
from canvasletter.components.serialization import deserialize_blocks, serialize_blocks
from canvasletter.components.share_tokens import (
    ShareTokenRepoPort,
    TimePort,
    authorize_mutation,
    resolve,
)
from canvasletter.domain.blocks import BlockTree, validate_structure
from canvasletter.domain.entities import Block, ContainerBlock, Newsletter
from canvasletter.domain.errors import (
    ForbiddenError,
    InvalidDocumentError,
    NotFoundError,
    StructureIssue,
)
from canvasletter.domain.policy import AccessPolicy

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

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = MutationConfig()


# --- Pure Functions (Functional Core) ---


def validate_candidate(blocks: Sequence[Block], max_blocks: int | None = None) -> None:
    """
    Reject a candidate block collection that is not a well-formed tree.

    Raises:
        InvalidDocumentError: dangling references, cycles, duplicate ids or
            too many blocks.
    """
    issues = validate_structure(blocks, max_blocks)
    if issues:
        raise InvalidDocumentError(issues)


def carry_forward_section_ids(
    stored: Sequence[Block], candidate: Sequence[Block]
) -> tuple[list[Block], list[str]]:
    """
    Restore stored sectionIds onto same-id containers in the candidate.

    Returns the adjusted candidate and the ids of containers whose incoming
    section identity was missing or different.
    """
    stored_metadata = {
        b.id: b.section_metadata
        for b in stored
        if isinstance(b, ContainerBlock) and b.section_metadata is not None
    }

    result: list[Block] = []
    restored: list[str] = []
    for block in candidate:
        existing = stored_metadata.get(block.id) if isinstance(block, ContainerBlock) else None
        if existing is None:
            result.append(block)
            continue

        incoming = block.section_metadata  # type: ignore[union-attr]
        if incoming is not None and incoming.section_id == existing.section_id:
            result.append(block)
            continue

        if incoming is None:
            metadata = existing
        else:
            metadata = incoming.model_copy(update={"section_id": existing.section_id})
        result.append(block.model_copy(update={"section_metadata": metadata}))
        restored.append(block.id)

    return result, restored


# --- Helpers ---


def _load(repo: NewsletterRepoPort, newsletter_id: UUID) -> Newsletter:
    newsletter = repo.get_by_id(newsletter_id)
    if newsletter is None:
        raise NotFoundError("Newsletter not found")
    return newsletter


def _keep_section_ids(
    stored: Sequence[Block], candidate: Sequence[Block], newsletter_id: UUID
) -> tuple[list[Block], list[str]]:
    blocks, restored = carry_forward_section_ids(stored, candidate)
    if restored:
        logger.warning(
            "Kept stored sectionId on containers %s of newsletter %s",
            ", ".join(restored),
            newsletter_id,
        )
    return blocks, restored


def _authorize(actor: Actor, newsletter: Newsletter, policy: AccessPolicy) -> str:
    """Check the actor may edit ``newsletter``; returns a label for logs."""
    if isinstance(actor, OwnerActor):
        user = actor.user
        if (
            user.status != "active"
            or not policy.is_owner(user.id, newsletter)
            or not policy.can_edit("owner")
        ):
            raise ForbiddenError("Only the owner can edit this newsletter")
        return f"owner {user.id}"
    elif isinstance(actor, EditorTokenActor):
        if actor.share.newsletter_id != newsletter.id:
            raise ForbiddenError("Share link does not grant access to this newsletter")
        authorize_mutation(actor.share)
        return f"share link {actor.share.fingerprint}"
    else:
        raise ValueError(f"Unknown actor type: {type(actor)}")


def _commit(
    newsletter: Newsletter,
    candidate: Sequence[Block],
    structure_json: dict | None,
    restored: list[str],
    actor_label: str,
    *,
    repo: NewsletterRepoPort,
    time: TimePort,
    config: MutationConfig,
) -> MutationOutput:
    try:
        validate_candidate(candidate, config.max_blocks)
    except InvalidDocumentError as e:
        logger.warning(
            "Rejected mutation of newsletter %s by %s: %s",
            newsletter.id,
            actor_label,
            ",".join(sorted({issue.code for issue in e.issues})),
        )
        raise

    now = time.now_utc()
    structure = newsletter.structure_json if structure_json is None else structure_json
    updated = repo.replace_content(
        newsletter.id,
        blocks=serialize_blocks(candidate),
        structure_json=structure,
        updated_at=now,
        last_autosave=now,
    )
    if updated is None:
        raise NotFoundError("Newsletter not found")

    logger.info(
        "Applied mutation to newsletter %s by %s (%d blocks)",
        newsletter.id,
        actor_label,
        len(candidate),
    )
    return MutationOutput(
        newsletter_id=updated.id,
        title=updated.title,
        blocks=updated.blocks,
        structure_json=updated.structure_json,
        updated_at=updated.updated_at,
        last_autosave=updated.last_autosave or now,
        restored_section_ids=restored,
    )


# --- Component Entry Points ---


def run_apply(
    inp: ApplyMutationInput,
    *,
    repo: NewsletterRepoPort,
    policy: AccessPolicy,
    time: TimePort,
    config: MutationConfig = DEFAULT_CONFIG,
) -> MutationOutput:
    """
    Replace a newsletter's blocks (and optionally its structure).

    Raises:
        NotFoundError: newsletter does not exist.
        ForbiddenError: actor may not edit this newsletter.
        InvalidDocumentError: candidate is not a well-formed tree.
    """
    newsletter = _load(repo, inp.newsletter_id)
    actor_label = _authorize(inp.actor, newsletter, policy)

    stored = deserialize_blocks(newsletter.blocks, config.serialization).blocks
    candidate, restored = _keep_section_ids(stored, inp.blocks, newsletter.id)

    return _commit(
        newsletter,
        candidate,
        inp.structure_json,
        restored,
        actor_label,
        repo=repo,
        time=time,
        config=config,
    )


def run_apply_via_token(
    inp: ApplyViaTokenInput,
    *,
    repo: NewsletterRepoPort,
    shares: ShareTokenRepoPort,
    policy: AccessPolicy,
    time: TimePort,
    config: MutationConfig = DEFAULT_CONFIG,
) -> MutationOutput:
    """
    Apply a mutation submitted through a share link.

    The link is resolved again here; an earlier resolution is never reused.

    Raises:
        NotFoundError: unknown link or newsletter.
        GoneError: revoked or expired link.
        ForbiddenError: viewer link.
        UnknownBlockTypeError: unknown variant under the "reject" policy.
        InvalidDocumentError: candidate is not a well-formed tree.
    """
    resolved = resolve(inp.token, shares, time.now_utc())
    authorize_mutation(resolved)

    decoded = deserialize_blocks(inp.records, config.serialization)
    return run_apply(
        ApplyMutationInput(
            newsletter_id=resolved.newsletter_id,
            actor=EditorTokenActor(share=resolved),
            blocks=decoded.blocks,
            structure_json=inp.structure_json,
        ),
        repo=repo,
        policy=policy,
        time=time,
        config=config,
    )


def _replacement_root(inp: ReplaceSectionInput) -> ContainerBlock:
    for block in inp.replacement:
        if inp.replacement_root_id is None or block.id == inp.replacement_root_id:
            if isinstance(block, ContainerBlock):
                return block
            if inp.replacement_root_id is not None:
                break
    raise InvalidDocumentError(
        [
            StructureIssue(
                code="missing_container",
                block_id=inp.replacement_root_id,
                message="Replacement section has no root container",
            )
        ]
    )


def run_replace_section(
    inp: ReplaceSectionInput,
    *,
    repo: NewsletterRepoPort,
    policy: AccessPolicy,
    time: TimePort,
    config: MutationConfig = DEFAULT_CONFIG,
) -> MutationOutput:
    """
    Replace a section with a new container and its descendants.

    The old section's descendants are removed. The new container takes the
    old container's id and sectionId, so the section keeps its identity.

    Raises:
        NotFoundError: newsletter or container does not exist.
        ForbiddenError: actor may not edit this newsletter.
        InvalidDocumentError: the resulting document is not a well-formed tree.
    """
    newsletter = _load(repo, inp.newsletter_id)
    actor_label = _authorize(inp.actor, newsletter, policy)

    current = deserialize_blocks(newsletter.blocks, config.serialization).blocks
    existing = BlockTree(current).get(inp.container_id)
    if not isinstance(existing, ContainerBlock):
        raise NotFoundError(f"Container {inp.container_id!r} not found")

    root = _replacement_root(inp)
    now = time.now_utc()
    new_root = preserve_section_metadata(
        existing, root.model_copy(update={"id": inp.container_id}), now=now
    )
    if inp.ai_action is not None:
        new_root = record_ai_action(new_root, inp.ai_action, now=now)

    old_ids = set(section_block_ids(inp.container_id, current))
    descendants = [b for b in inp.replacement if b.id != root.id]

    candidate: list[Block] = []
    for block in current:
        if block.id == inp.container_id:
            candidate.append(new_root)
            candidate.extend(descendants)
        elif block.id not in old_ids:
            candidate.append(block)

    candidate, restored = _keep_section_ids(current, candidate, newsletter.id)

    logger.info(
        "Replacing section %s of newsletter %s (%d -> %d blocks)",
        inp.container_id,
        newsletter.id,
        len(old_ids),
        len(descendants) + 1,
    )
    return _commit(
        newsletter,
        candidate,
        None,
        restored,
        actor_label,
        repo=repo,
        time=time,
        config=config,
    )


def run(
    inp: ApplyMutationInput | ApplyViaTokenInput | ReplaceSectionInput,
    *,
    repo: NewsletterRepoPort,
    shares: ShareTokenRepoPort,
    policy: AccessPolicy,
    time: TimePort,
    config: MutationConfig = DEFAULT_CONFIG,
) -> MutationOutput:
    """
    Main component entry point (Atomic Component Pattern).

    Args:
        inp: ApplyMutationInput, ApplyViaTokenInput or ReplaceSectionInput
        repo: Newsletter repository
        shares: Share link repository
        policy: Access policy
        time: Clock
        config: Document limits and read defaults

    Returns:
        MutationOutput describing the stored document
    """
    if isinstance(inp, ApplyMutationInput):
        return run_apply(inp, repo=repo, policy=policy, time=time, config=config)
    elif isinstance(inp, ApplyViaTokenInput):
        return run_apply_via_token(
            inp, repo=repo, shares=shares, policy=policy, time=time, config=config
        )
    elif isinstance(inp, ReplaceSectionInput):
        return run_replace_section(inp, repo=repo, policy=policy, time=time, config=config)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
