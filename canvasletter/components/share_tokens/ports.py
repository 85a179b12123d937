"""
Share token component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from canvasletter.domain.entities import Newsletter, ShareToken


class ShareTokenRepoPort(Protocol):
    """Persistence for share links."""

    def get(self, token: str) -> ShareToken | None:
        """Look up a share link by its token value."""
        ...

    def create(self, share: ShareToken) -> ShareToken:
        """Persist a new share link."""
        ...

    def mark_revoked(self, token: str) -> None:
        """Set revoked. Idempotent; never clears the flag."""
        ...

    def list_for_newsletter(self, newsletter_id: UUID) -> list[ShareToken]:
        """All share links of a newsletter, revoked and expired included."""
        ...


class NewsletterReaderPort(Protocol):
    """Read access to newsletters."""

    def get_by_id(self, newsletter_id: UUID) -> Newsletter | None:
        ...


class TimePort(Protocol):
    def now_utc(self) -> datetime:
        ...
