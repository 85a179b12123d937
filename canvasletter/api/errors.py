from fastapi import HTTPException, status

from canvasletter.domain.errors import CanvasError, InvalidDocumentError

STATUS_BY_CODE = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "gone": status.HTTP_410_GONE,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "invalid_document": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "unknown_block_type": status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def to_http_exception(error: CanvasError) -> HTTPException:
    """Translate a core error into the HTTP status its code maps to."""
    detail: str | dict = error.message
    if isinstance(error, InvalidDocumentError):
        detail = {
            "code": error.code,
            "message": error.message,
            "issues": [
                {"code": i.code, "blockId": i.block_id, "message": i.message}
                for i in error.issues
            ],
        }
    return HTTPException(
        status_code=STATUS_BY_CODE.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=detail,
    )
