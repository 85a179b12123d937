from datetime import UTC, datetime
from typing import Annotated, Any, Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# --- Enums / Literals ---
BlockType = Literal["text", "image", "shape", "container"]
NewsletterStatus = Literal["draft", "published", "archived"]
ShareRole = Literal["viewer", "editor"]
AccessRole = Literal["owner", "editor", "viewer"]
SectionType = Literal["header", "intro", "body", "footer", "sidebar", "other"]
SectionCreator = Literal["manual", "ai"]
AIAction = Literal[
    "rewrite", "shorten", "expand", "change_tone", "improve_clarity", "make_persuasive"
]
TextEffectType = Literal[
    "none", "shadow", "lift", "hollow", "outline", "echo", "glitch", "neon", "background"
]

BLOCK_TYPES: tuple[BlockType, ...] = ("text", "image", "shape", "container")


def utc_now() -> datetime:
    return datetime.now(UTC)


class CanvasModel(BaseModel):
    """Base model: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Geometry ---

class Position(CanvasModel):
    x: float = 0
    y: float = 0


class Size(CanvasModel):
    width: float = Field(default=200, gt=0)
    height: float = Field(default=100, gt=0)


# --- Styles ---

class TextEffect(CanvasModel):
    type: TextEffectType = "none"
    config: dict[str, Any] | None = None


class BlockStyles(CanvasModel):
    """Closed set of presentational attributes a block may carry."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    # Common
    background_color: str | None = None
    border_color: str | None = None
    border_width: float | None = None
    border_radius: float | None = None
    opacity: float | None = None
    # Text
    font_size: float | None = None
    font_weight: str | int | None = None
    font_family: str | None = None
    font_style: Literal["normal", "italic"] | None = None
    color: str | None = None
    text_align: Literal["left", "center", "right", "justify"] | None = None
    line_height: float | None = None
    letter_spacing: float | None = None
    text_decoration: str | None = None
    vertical_align: Literal["top", "middle", "bottom"] | None = None
    text_effect: TextEffect | None = None
    auto_height: bool | None = None
    # Image
    object_fit: Literal["cover", "contain", "fill", "none"] | None = None


# --- Blocks ---

class SectionMetadata(CanvasModel):
    section_id: str
    section_type: SectionType | None = None
    created_by: SectionCreator = "manual"
    last_ai_action: AIAction | None = Field(default=None, alias="lastAIAction")
    last_modified_at: str | None = None


class BaseBlock(CanvasModel):
    id: str
    position: Position = Field(default_factory=Position)
    size: Size = Field(default_factory=Size)
    styles: BlockStyles = Field(default_factory=BlockStyles)
    z_index: int = Field(default=1, ge=1)


class TextBlock(BaseBlock):
    type: Literal["text"] = "text"
    content: str = ""


class ImageBlock(BaseBlock):
    type: Literal["image"] = "image"
    src: str = Field(min_length=1)
    alt: str | None = None


class ShapeBlock(BaseBlock):
    type: Literal["shape"] = "shape"
    shape_type: str = Field(default="rectangle", min_length=1)


class ContainerBlock(BaseBlock):
    type: Literal["container"] = "container"
    # Child ids only; children are never embedded.
    children: list[str] = Field(default_factory=list)
    section_metadata: SectionMetadata | None = None


Block = Annotated[
    TextBlock | ImageBlock | ShapeBlock | ContainerBlock, Field(discriminator="type")
]

# --- Users ---

class User(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    email: str
    display_name: str
    status: Literal["active", "disabled"] = "active"
    created_at: datetime = Field(default_factory=utc_now)

# --- Newsletters ---

class NewsletterVersion(CanvasModel):
    version: int
    structure_json: dict[str, Any] = Field(default_factory=dict, alias="structureJSON")
    created_at: datetime = Field(default_factory=utc_now)


class Newsletter(CanvasModel):
    id: UUID = Field(default_factory=uuid4)
    owner_user_id: UUID
    title: str = "Untitled Newsletter"
    description: str = ""
    status: NewsletterStatus = "draft"

    # Persisted form: untyped block records, deserialized on demand.
    blocks: list[dict[str, Any]] = Field(default_factory=list)
    structure_json: dict[str, Any] = Field(default_factory=dict, alias="structureJSON")
    versions: list[NewsletterVersion] = Field(default_factory=list)
    brand_voice_id: str | None = None

    published_url: str | None = None
    published_at: datetime | None = None
    last_autosave: datetime | None = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

# --- Sharing ---

class ShareToken(CanvasModel):
    token: str
    newsletter_id: UUID
    role: ShareRole = "viewer"
    created_by: UUID
    # Monotonic: once True, never False again.
    revoked: bool = False
    expires_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)
