from typing import Literal

from pydantic import BaseModel, Field, model_validator


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class AccessRules(BaseModel):
    roles: dict[str, list[str]]
    share_creation_roles: list[Literal["viewer", "editor"]] = Field(
        default_factory=lambda: ["viewer"]
    )
    default_share_role: Literal["viewer", "editor"] = "viewer"

    @model_validator(mode="after")
    def default_role_is_creatable(self) -> "AccessRules":
        if self.default_share_role not in self.share_creation_roles:
            raise ValueError("default_share_role must be one of share_creation_roles")
        return self


class SharingRules(BaseModel):
    token_bytes: int = Field(default=32, ge=16)
    default_expiry_days: int | None = None


class PointRule(BaseModel):
    x: float
    y: float


class SizeRule(BaseModel):
    width: float = Field(gt=0)
    height: float = Field(gt=0)


class BlocksRules(BaseModel):
    default_position: PointRule
    default_size: SizeRule
    default_z_index: int = Field(default=1, ge=1)
    unknown_type_policy: Literal["placeholder", "reject"] = "placeholder"
    placeholder_text: str = "Text"
    placeholder_image_src: str
    placeholder_image_alt: str = "Image"
    max_blocks_per_document: int


class RangeRule(BaseModel):
    min: float
    max: float


class StylesRules(BaseModel):
    # Keyed by wire name, e.g. "fontSize".
    clamps: dict[str, RangeRule] = Field(default_factory=dict)


class SectionsRules(BaseModel):
    max_depth: int
    max_blocks: int
    preview_length: int


class ApiRules(BaseModel):
    cors_origins: list[str] = Field(default_factory=list)


class Rules(BaseModel):
    project: ProjectRules
    access: AccessRules
    sharing: SharingRules
    blocks: BlocksRules
    styles: StylesRules
    sections: SectionsRules
    api: ApiRules
