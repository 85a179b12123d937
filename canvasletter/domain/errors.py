"""
Error taxonomy shared by the core components.

Components raise these; the HTTP layer maps each ``code`` to a status.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StructureIssue:
    """One structural defect found in a candidate block tree."""

    code: str  # "dangling_reference", "cycle", "duplicate_id", "too_many_blocks"
    block_id: str | None
    message: str


class CanvasError(Exception):
    """Base error for the block document core."""

    code = "canvas_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(CanvasError):
    """No such token or document."""

    code = "not_found"


class GoneError(CanvasError):
    """Token exists but is revoked or expired."""

    code = "gone"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Share link is no longer valid: {reason}")


class ForbiddenError(CanvasError):
    """Valid credential, insufficient role or ownership."""

    code = "forbidden"


class InvalidDocumentError(CanvasError):
    """Candidate block tree violates a structural invariant."""

    code = "invalid_document"

    def __init__(self, issues: list[StructureIssue]) -> None:
        self.issues = issues
        summary = "; ".join(issue.message for issue in issues[:5])
        super().__init__(f"Invalid document: {summary}")


class UnknownBlockTypeError(CanvasError):
    """A record carries a variant tag outside the known block types."""

    code = "unknown_block_type"

    def __init__(self, block_type: object, block_id: str | None = None) -> None:
        self.block_type = block_type
        self.block_id = block_id
        super().__init__(f"Unknown block type {block_type!r} (block {block_id})")
