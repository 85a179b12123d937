"""
Section endpoints for AI features.

Endpoints:
- POST /api/sections/extract - Section block ids and prompt text
- POST /api/sections/validate - Whether a selection can be sent to AI
"""

from fastapi import APIRouter, Depends

from canvasletter.api.deps import get_sections_config, get_serialization_config
from canvasletter.api.errors import to_http_exception
from canvasletter.api.schemas import (
    ExtractSectionRequest,
    ExtractSectionResponse,
    ValidateSectionRequest,
    ValidateSectionResponse,
)
from canvasletter.components.sections import (
    SectionsConfig,
    extract_section,
    validate_section_for_ai,
)
from canvasletter.components.serialization import SerializationConfig, deserialize_blocks
from canvasletter.domain.errors import CanvasError

router = APIRouter()


@router.post("/extract", response_model=ExtractSectionResponse)
def extract(
    body: ExtractSectionRequest,
    serialization: SerializationConfig = Depends(get_serialization_config),
    config: SectionsConfig = Depends(get_sections_config),
) -> ExtractSectionResponse:
    try:
        blocks = deserialize_blocks(body.blocks, serialization).blocks
        section = extract_section(body.container_id, blocks, config)
    except CanvasError as e:
        raise to_http_exception(e) from e
    return ExtractSectionResponse(block_ids=section.block_ids, prompt_text=section.prompt_text)


@router.post("/validate", response_model=ValidateSectionResponse)
def validate(
    body: ValidateSectionRequest,
    serialization: SerializationConfig = Depends(get_serialization_config),
    config: SectionsConfig = Depends(get_sections_config),
) -> ValidateSectionResponse:
    try:
        blocks = deserialize_blocks(body.blocks, serialization).blocks
    except CanvasError as e:
        raise to_http_exception(e) from e
    result = validate_section_for_ai(
        blocks,
        container_id=body.container_id,
        text_block_id=body.text_block_id,
        config=config,
    )
    return ValidateSectionResponse(
        valid=result.valid,
        section_type=result.section_type,
        depth=result.depth,
        block_count=result.block_count,
        error=result.error,
        issues=result.issues,
    )
