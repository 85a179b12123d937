"""
Share link endpoints used by guests (token in the path) and by owners
revoking a link.

Endpoints:
- GET /api/shares/{token}/resolve - Role and newsletter for a share link
- POST /api/shares/{token}/update - Replace content through an editor link
- DELETE /api/shares/{token} - Revoke a link (owner only, idempotent)
"""

from fastapi import APIRouter, Depends

from canvasletter.adapters.clock import SystemClock
from canvasletter.adapters.sqlite.repos import (
    SQLiteNewsletterRepo,
    SQLiteShareTokenRepo,
)
from canvasletter.api.deps import (
    get_clock,
    get_current_user,
    get_mutation_config,
    get_newsletter_repo,
    get_policy,
    get_serialization_config,
    get_share_repo,
)
from canvasletter.api.errors import to_http_exception
from canvasletter.api.schemas import (
    ContentUpdateRequest,
    ResolveShareResponse,
    RevokeResponse,
    SharedNewsletterResponse,
    UpdatedNewsletterResponse,
)
from canvasletter.components.mutation import (
    ApplyViaTokenInput,
    MutationConfig,
    run_apply_via_token,
)
from canvasletter.components.serialization import (
    SerializationConfig,
    deserialize_blocks,
    repair_dangling_references,
    serialize_blocks,
)
from canvasletter.components.share_tokens import (
    ResolveShareInput,
    RevokeShareInput,
    run_resolve,
    run_revoke,
)
from canvasletter.domain.entities import User
from canvasletter.domain.errors import CanvasError
from canvasletter.domain.policy import AccessPolicy

router = APIRouter()


@router.get("/{token}/resolve", response_model=ResolveShareResponse)
def resolve_share(
    token: str,
    shares: SQLiteShareTokenRepo = Depends(get_share_repo),
    newsletters: SQLiteNewsletterRepo = Depends(get_newsletter_repo),
    policy: AccessPolicy = Depends(get_policy),
    clock: SystemClock = Depends(get_clock),
    serialization: SerializationConfig = Depends(get_serialization_config),
) -> ResolveShareResponse:
    try:
        result = run_resolve(
            ResolveShareInput(token=token),
            repo=shares,
            newsletters=newsletters,
            policy=policy,
            time=clock,
        )
        # Read view only: dangling children are dropped here, never written back.
        decoded = deserialize_blocks(result.newsletter.blocks, serialization)
        repaired = repair_dangling_references(decoded.blocks)
    except CanvasError as e:
        raise to_http_exception(e) from e

    newsletter = result.newsletter
    return ResolveShareResponse(
        role=result.resolved.role,
        newsletter_id=newsletter.id,
        expires_at=result.resolved.expires_at,
        newsletter=SharedNewsletterResponse(
            id=newsletter.id,
            title=newsletter.title,
            description=newsletter.description,
            status=newsletter.status,
            blocks=serialize_blocks(repaired.blocks),
            structure_json=newsletter.structure_json,
            updated_at=newsletter.updated_at,
        ),
    )


@router.post("/{token}/update", response_model=UpdatedNewsletterResponse)
def update_via_share(
    token: str,
    body: ContentUpdateRequest,
    shares: SQLiteShareTokenRepo = Depends(get_share_repo),
    newsletters: SQLiteNewsletterRepo = Depends(get_newsletter_repo),
    policy: AccessPolicy = Depends(get_policy),
    clock: SystemClock = Depends(get_clock),
    config: MutationConfig = Depends(get_mutation_config),
) -> UpdatedNewsletterResponse:
    try:
        output = run_apply_via_token(
            ApplyViaTokenInput(token=token, records=body.blocks, structure_json=body.structure_json),
            repo=newsletters,
            shares=shares,
            policy=policy,
            time=clock,
            config=config,
        )
    except CanvasError as e:
        raise to_http_exception(e) from e
    return UpdatedNewsletterResponse.from_output(output)


@router.delete("/{token}", response_model=RevokeResponse)
def revoke_share(
    token: str,
    user: User = Depends(get_current_user),
    shares: SQLiteShareTokenRepo = Depends(get_share_repo),
    newsletters: SQLiteNewsletterRepo = Depends(get_newsletter_repo),
    policy: AccessPolicy = Depends(get_policy),
) -> RevokeResponse:
    try:
        result = run_revoke(
            RevokeShareInput(token=token, user=user),
            repo=shares,
            newsletters=newsletters,
            policy=policy,
        )
    except CanvasError as e:
        raise to_http_exception(e) from e
    return RevokeResponse(revoked=result.revoked, already_revoked=result.already_revoked)
