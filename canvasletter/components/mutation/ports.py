"""
Mutation gateway port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from canvasletter.domain.entities import Newsletter


class NewsletterRepoPort(Protocol):
    """Newsletter persistence as seen by the write path."""

    def get_by_id(self, newsletter_id: UUID) -> Newsletter | None:
        ...

    def replace_content(
        self,
        newsletter_id: UUID,
        *,
        blocks: list[dict[str, Any]],
        structure_json: dict[str, Any],
        updated_at: datetime,
        last_autosave: datetime,
    ) -> Newsletter | None:
        """
        Replace blocks and structure in one atomic write.

        Returns the updated newsletter, or None if it no longer exists.
        """
        ...
