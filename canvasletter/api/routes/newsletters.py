"""
Owner endpoints for a newsletter's content and share links.

Endpoints:
- POST /api/newsletters/{id}/share - Create a share link
- GET /api/newsletters/{id}/shares - List currently valid share links
- POST /api/newsletters/{id}/update - Replace content (owner session)
- POST /api/newsletters/{id}/sections/{container_id}/replace - Replace one section
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

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
    get_share_config,
    get_share_repo,
)
from canvasletter.api.errors import to_http_exception
from canvasletter.api.schemas import (
    ContentUpdateRequest,
    CreateShareRequest,
    ReplaceSectionRequest,
    ShareResponse,
    UpdatedNewsletterResponse,
)
from canvasletter.components.mutation import (
    ApplyMutationInput,
    MutationConfig,
    OwnerActor,
    ReplaceSectionInput,
    run_apply,
    run_replace_section,
)
from canvasletter.components.serialization import deserialize_blocks
from canvasletter.components.share_tokens import (
    CreateShareInput,
    ListActiveSharesInput,
    ShareConfig,
    run_create,
    run_list_active,
)
from canvasletter.domain.entities import User
from canvasletter.domain.errors import CanvasError
from canvasletter.domain.policy import AccessPolicy

router = APIRouter()


@router.post(
    "/{newsletter_id}/share",
    response_model=ShareResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_share(
    newsletter_id: UUID,
    body: CreateShareRequest,
    user: User = Depends(get_current_user),
    shares: SQLiteShareTokenRepo = Depends(get_share_repo),
    newsletters: SQLiteNewsletterRepo = Depends(get_newsletter_repo),
    policy: AccessPolicy = Depends(get_policy),
    clock: SystemClock = Depends(get_clock),
    config: ShareConfig = Depends(get_share_config),
) -> ShareResponse:
    try:
        result = run_create(
            CreateShareInput(
                newsletter_id=newsletter_id,
                user=user,
                role=body.role,
                expires_at=body.expires_at,
            ),
            repo=shares,
            newsletters=newsletters,
            policy=policy,
            time=clock,
            config=config,
        )
    except CanvasError as e:
        raise to_http_exception(e) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return ShareResponse.from_share(result.share)


@router.get("/{newsletter_id}/shares", response_model=list[ShareResponse])
def list_shares(
    newsletter_id: UUID,
    user: User = Depends(get_current_user),
    shares: SQLiteShareTokenRepo = Depends(get_share_repo),
    newsletters: SQLiteNewsletterRepo = Depends(get_newsletter_repo),
    policy: AccessPolicy = Depends(get_policy),
    clock: SystemClock = Depends(get_clock),
) -> list[ShareResponse]:
    try:
        result = run_list_active(
            ListActiveSharesInput(newsletter_id=newsletter_id, user=user),
            repo=shares,
            newsletters=newsletters,
            policy=policy,
            time=clock,
        )
    except CanvasError as e:
        raise to_http_exception(e) from e
    return [ShareResponse.from_share(s) for s in result.shares]


@router.post("/{newsletter_id}/update", response_model=UpdatedNewsletterResponse)
def update_content(
    newsletter_id: UUID,
    body: ContentUpdateRequest,
    user: User = Depends(get_current_user),
    newsletters: SQLiteNewsletterRepo = Depends(get_newsletter_repo),
    policy: AccessPolicy = Depends(get_policy),
    clock: SystemClock = Depends(get_clock),
    config: MutationConfig = Depends(get_mutation_config),
) -> UpdatedNewsletterResponse:
    try:
        decoded = deserialize_blocks(body.blocks, config.serialization)
        output = run_apply(
            ApplyMutationInput(
                newsletter_id=newsletter_id,
                actor=OwnerActor(user=user),
                blocks=decoded.blocks,
                structure_json=body.structure_json,
            ),
            repo=newsletters,
            policy=policy,
            time=clock,
            config=config,
        )
    except CanvasError as e:
        raise to_http_exception(e) from e
    return UpdatedNewsletterResponse.from_output(output)


@router.post(
    "/{newsletter_id}/sections/{container_id}/replace",
    response_model=UpdatedNewsletterResponse,
)
def replace_section(
    newsletter_id: UUID,
    container_id: str,
    body: ReplaceSectionRequest,
    user: User = Depends(get_current_user),
    newsletters: SQLiteNewsletterRepo = Depends(get_newsletter_repo),
    policy: AccessPolicy = Depends(get_policy),
    clock: SystemClock = Depends(get_clock),
    config: MutationConfig = Depends(get_mutation_config),
) -> UpdatedNewsletterResponse:
    try:
        decoded = deserialize_blocks(body.blocks, config.serialization)
        output = run_replace_section(
            ReplaceSectionInput(
                newsletter_id=newsletter_id,
                actor=OwnerActor(user=user),
                container_id=container_id,
                replacement=decoded.blocks,
                replacement_root_id=body.root_id,
                ai_action=body.ai_action,
            ),
            repo=newsletters,
            policy=policy,
            time=clock,
            config=config,
        )
    except CanvasError as e:
        raise to_http_exception(e) from e
    return UpdatedNewsletterResponse.from_output(output)
