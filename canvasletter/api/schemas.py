from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from canvasletter.components.mutation import MutationOutput
from canvasletter.domain.entities import AIAction, NewsletterStatus, ShareRole, ShareToken


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Requests ---


class ContentUpdateRequest(ApiModel):
    """Content fields only; anything else in the body is ignored."""

    blocks: list[dict[str, Any]]
    structure_json: dict[str, Any] | None = Field(default=None, alias="structureJSON")


class CreateShareRequest(ApiModel):
    role: ShareRole | None = None
    expires_at: datetime | None = None


class ReplaceSectionRequest(ApiModel):
    blocks: list[dict[str, Any]]
    root_id: str | None = None
    ai_action: AIAction | None = Field(default=None, alias="aiAction")


class ExtractSectionRequest(ApiModel):
    container_id: str
    blocks: list[dict[str, Any]]


class ValidateSectionRequest(ApiModel):
    blocks: list[dict[str, Any]]
    container_id: str | None = None
    text_block_id: str | None = None


# --- Responses ---


class UpdatedNewsletterResponse(ApiModel):
    id: UUID
    title: str
    blocks: list[dict[str, Any]]
    structure_json: dict[str, Any] = Field(alias="structureJSON")
    updated_at: datetime
    last_autosave: datetime

    @classmethod
    def from_output(cls, output: MutationOutput) -> "UpdatedNewsletterResponse":
        return cls(
            id=output.newsletter_id,
            title=output.title,
            blocks=output.blocks,
            structure_json=output.structure_json,
            updated_at=output.updated_at,
            last_autosave=output.last_autosave,
        )


class SharedNewsletterResponse(ApiModel):
    id: UUID
    title: str
    description: str
    status: NewsletterStatus
    blocks: list[dict[str, Any]]
    structure_json: dict[str, Any] = Field(alias="structureJSON")
    updated_at: datetime


class ResolveShareResponse(ApiModel):
    role: ShareRole
    newsletter_id: UUID
    expires_at: datetime | None = None
    newsletter: SharedNewsletterResponse


class ShareResponse(ApiModel):
    token: str
    newsletter_id: UUID
    role: ShareRole
    revoked: bool
    expires_at: datetime | None = None
    created_at: datetime

    @classmethod
    def from_share(cls, share: ShareToken) -> "ShareResponse":
        return cls(
            token=share.token,
            newsletter_id=share.newsletter_id,
            role=share.role,
            revoked=share.revoked,
            expires_at=share.expires_at,
            created_at=share.created_at,
        )


class RevokeResponse(ApiModel):
    revoked: bool
    already_revoked: bool


class ExtractSectionResponse(ApiModel):
    block_ids: list[str]
    prompt_text: str


class ValidateSectionResponse(ApiModel):
    valid: bool
    section_type: str
    depth: int
    block_count: int
    error: str | None = None
    issues: list[str] = Field(default_factory=list)
