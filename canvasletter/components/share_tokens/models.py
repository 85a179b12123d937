"""
Share token component models.

State machine per token (computed from fields, never stored):
- valid-viewer / valid-editor: not revoked, and no expiry or expiry in the future
- invalid: revoked (terminal), or expired (ages out without a state change)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from canvasletter.domain.entities import Newsletter, ShareRole, ShareToken, User
from canvasletter.rules.models import SharingRules

# --- Configuration ---


@dataclass(frozen=True)
class ShareConfig:
    token_bytes: int = 32
    default_expiry_days: int | None = None  # None: links never expire by default

    @classmethod
    def from_rules(cls, rules: SharingRules) -> ShareConfig:
        return cls(
            token_bytes=rules.token_bytes,
            default_expiry_days=rules.default_expiry_days,
        )


# --- Resolution ---


@dataclass(frozen=True)
class ResolvedShare:
    """
    Outcome of a successful token lookup.

    Valid for the current request only; resolve again for the next one.
    """

    newsletter_id: UUID
    role: ShareRole
    fingerprint: str
    expires_at: datetime | None = None


# --- Input Models ---


@dataclass(frozen=True)
class CreateShareInput:
    newsletter_id: UUID
    user: User
    role: ShareRole | None = None  # None: the configured default role
    expires_at: datetime | None = None


@dataclass(frozen=True)
class RevokeShareInput:
    token: str
    user: User


@dataclass(frozen=True)
class ListActiveSharesInput:
    newsletter_id: UUID
    user: User


@dataclass(frozen=True)
class ResolveShareInput:
    token: str


# --- Output Models ---


@dataclass(frozen=True)
class CreateShareOutput:
    share: ShareToken


@dataclass(frozen=True)
class RevokeShareOutput:
    fingerprint: str
    revoked: bool = True
    already_revoked: bool = False


@dataclass(frozen=True)
class ListActiveSharesOutput:
    shares: list[ShareToken] = field(default_factory=list)


@dataclass(frozen=True)
class ResolveShareOutput:
    resolved: ResolvedShare
    newsletter: Newsletter
