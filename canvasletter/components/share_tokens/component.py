"""
Share token component - bearer-link authorization for unauthenticated
collaborators.

Every guest request resolves its token again: validity is a pure function
of (revoked, expires_at, now) and is never cached across requests, so a
revocation takes effect for the very next request.

Invariants:
- valid iff not revoked and (no expiry or expiry later than now)
- revoked takes precedence over expiry (both surface as Gone)
- revocation is one-directional and idempotent
- viewer links never authorize a mutation
- creating, listing and revoking links require proven ownership,
  independently of any token
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import UTC, datetime, timedelta
from uuid import UUID

from canvasletter.domain.entities import Newsletter, ShareToken, User
from canvasletter.domain.errors import ForbiddenError, GoneError, NotFoundError
from canvasletter.domain.policy import AccessPolicy

from .models import (
    CreateShareInput,
    CreateShareOutput,
    ListActiveSharesInput,
    ListActiveSharesOutput,
    ResolvedShare,
    ResolveShareInput,
    ResolveShareOutput,
    RevokeShareInput,
    RevokeShareOutput,
    ShareConfig,
)
from .ports import NewsletterReaderPort, ShareTokenRepoPort, TimePort

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = ShareConfig()


# --- Pure Functions (Functional Core) ---


def generate_share_token(token_bytes: int = DEFAULT_CONFIG.token_bytes) -> str:
    """URL-safe bearer token with ``token_bytes`` bytes of entropy."""
    return secrets.token_urlsafe(token_bytes)


def token_fingerprint(token: str) -> str:
    """Short, non-reversible label for a token. Safe to log."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:10]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def invalid_reason(share: ShareToken, now: datetime) -> str | None:
    """
    Why a share link is unusable at ``now``, or None if it is valid.

    Revocation is reported before expiry.
    """
    if share.revoked:
        return "revoked"
    if share.expires_at is not None and _as_utc(share.expires_at) <= _as_utc(now):
        return "expired"
    return None


def is_token_valid(share: ShareToken, now: datetime) -> bool:
    return invalid_reason(share, now) is None


def resolve(token: str, repo: ShareTokenRepoPort, now: datetime) -> ResolvedShare:
    """
    Resolve a bearer token to its newsletter and role.

    Raises:
        NotFoundError: no share link has this token.
        GoneError: the link exists but is revoked or expired.
    """
    fingerprint = token_fingerprint(token)
    share = repo.get(token) if token else None
    if share is None:
        logger.info("Share link %s not found", fingerprint)
        raise NotFoundError("Share link not found")

    reason = invalid_reason(share, now)
    if reason is not None:
        logger.info("Share link %s rejected: %s", fingerprint, reason)
        raise GoneError(reason)

    return ResolvedShare(
        newsletter_id=share.newsletter_id,
        role=share.role,
        fingerprint=fingerprint,
        expires_at=share.expires_at,
    )


def authorize_mutation(resolved: ResolvedShare) -> None:
    """
    Allow content mutation only for editor links.

    Raises:
        ForbiddenError: the link is read-only.
    """
    if resolved.role != "editor":
        logger.info("Share link %s denied mutation (role=%s)", resolved.fingerprint, resolved.role)
        raise ForbiddenError("Share link is read-only")


def _load_owned_newsletter(
    newsletter_id: UUID,
    user: User,
    newsletters: NewsletterReaderPort,
    policy: AccessPolicy,
) -> Newsletter:
    newsletter = newsletters.get_by_id(newsletter_id)
    if newsletter is None:
        raise NotFoundError("Newsletter not found")
    if not policy.can_manage_shares(user, newsletter):
        raise ForbiddenError("Only the owner can manage share links")
    return newsletter


# --- Component Entry Points ---


def run_create(
    inp: CreateShareInput,
    *,
    repo: ShareTokenRepoPort,
    newsletters: NewsletterReaderPort,
    policy: AccessPolicy,
    time: TimePort,
    config: ShareConfig = DEFAULT_CONFIG,
) -> CreateShareOutput:
    """
    Issue a new share link for an owned newsletter.

    Raises:
        NotFoundError: newsletter does not exist.
        ForbiddenError: caller is not the owner, or the role is not creatable.
        ValueError: explicit expiry is not in the future.
    """
    newsletter = _load_owned_newsletter(inp.newsletter_id, inp.user, newsletters, policy)

    role = inp.role or policy.rules.access.default_share_role
    if not policy.can_create_share_role(role):
        allowed = ", ".join(policy.allowed_share_roles())
        raise ForbiddenError(
            f"Share links with role {role!r} cannot be created (allowed: {allowed})"
        )

    now = time.now_utc()
    expires_at = inp.expires_at
    if expires_at is not None:
        expires_at = _as_utc(expires_at)
        if expires_at <= now:
            raise ValueError("expires_at must be in the future")
    elif config.default_expiry_days is not None:
        expires_at = now + timedelta(days=config.default_expiry_days)

    share = repo.create(
        ShareToken(
            token=generate_share_token(config.token_bytes),
            newsletter_id=newsletter.id,
            role=role,
            created_by=inp.user.id,
            expires_at=expires_at,
            created_at=now,
        )
    )
    logger.info(
        "Created %s share link %s for newsletter %s",
        role,
        token_fingerprint(share.token),
        newsletter.id,
    )
    return CreateShareOutput(share=share)


def run_revoke(
    inp: RevokeShareInput,
    *,
    repo: ShareTokenRepoPort,
    newsletters: NewsletterReaderPort,
    policy: AccessPolicy,
) -> RevokeShareOutput:
    """
    Revoke a share link. Revoking an already revoked link succeeds.

    Raises:
        NotFoundError: no such link, or its newsletter is gone.
        ForbiddenError: caller does not own the newsletter.
    """
    fingerprint = token_fingerprint(inp.token)
    share = repo.get(inp.token)
    if share is None:
        raise NotFoundError("Share link not found")

    _load_owned_newsletter(share.newsletter_id, inp.user, newsletters, policy)

    if share.revoked:
        logger.info("Share link %s already revoked", fingerprint)
        return RevokeShareOutput(fingerprint=fingerprint, already_revoked=True)

    repo.mark_revoked(inp.token)
    logger.info("Revoked share link %s for newsletter %s", fingerprint, share.newsletter_id)
    return RevokeShareOutput(fingerprint=fingerprint)


def run_list_active(
    inp: ListActiveSharesInput,
    *,
    repo: ShareTokenRepoPort,
    newsletters: NewsletterReaderPort,
    policy: AccessPolicy,
    time: TimePort,
) -> ListActiveSharesOutput:
    """Currently valid share links of an owned newsletter."""
    newsletter = _load_owned_newsletter(inp.newsletter_id, inp.user, newsletters, policy)
    now = time.now_utc()
    return ListActiveSharesOutput(
        shares=[s for s in repo.list_for_newsletter(newsletter.id) if is_token_valid(s, now)]
    )


def run_resolve(
    inp: ResolveShareInput,
    *,
    repo: ShareTokenRepoPort,
    newsletters: NewsletterReaderPort,
    policy: AccessPolicy,
    time: TimePort,
) -> ResolveShareOutput:
    """
    Resolve a token and load the newsletter it grants access to.

    Raises:
        NotFoundError: unknown token, or the newsletter no longer exists.
        GoneError: revoked or expired link.
        ForbiddenError: the link's role does not grant read access.
    """
    resolved = resolve(inp.token, repo, time.now_utc())
    if not policy.can_view(resolved.role):
        raise ForbiddenError(f"Share links with role {resolved.role!r} cannot read")
    newsletter = newsletters.get_by_id(resolved.newsletter_id)
    if newsletter is None:
        raise NotFoundError("Newsletter not found")
    return ResolveShareOutput(resolved=resolved, newsletter=newsletter)


def run(
    inp: CreateShareInput | RevokeShareInput | ListActiveSharesInput | ResolveShareInput,
    *,
    repo: ShareTokenRepoPort,
    newsletters: NewsletterReaderPort,
    policy: AccessPolicy,
    time: TimePort,
    config: ShareConfig = DEFAULT_CONFIG,
) -> CreateShareOutput | RevokeShareOutput | ListActiveSharesOutput | ResolveShareOutput:
    """
    Main component entry point (Atomic Component Pattern).

    Args:
        inp: Create, revoke, list or resolve input
        repo: Share link repository
        newsletters: Newsletter reader
        policy: Access policy
        time: Clock
        config: Token entropy and default expiry

    Returns:
        The output model matching the input
    """
    if isinstance(inp, CreateShareInput):
        return run_create(
            inp, repo=repo, newsletters=newsletters, policy=policy, time=time, config=config
        )
    elif isinstance(inp, RevokeShareInput):
        return run_revoke(inp, repo=repo, newsletters=newsletters, policy=policy)
    elif isinstance(inp, ListActiveSharesInput):
        return run_list_active(inp, repo=repo, newsletters=newsletters, policy=policy, time=time)
    elif isinstance(inp, ResolveShareInput):
        return run_resolve(inp, repo=repo, newsletters=newsletters, policy=policy, time=time)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
