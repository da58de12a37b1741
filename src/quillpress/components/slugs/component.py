"""
Slugs component - unique slug allocation.

The registry lookup only proposes a candidate. The claim, a conditional insert on
the registry's unique key inside the caller's transaction, decides. A lost race
moves on to the next candidate, up to ``max_attempts`` claims.
"""

from __future__ import annotations

import logging
from uuid import UUID

from quillpress.domain.errors import ConflictError
from quillpress.domain.slugs import base_slug, first_free
from quillpress.rules.models import SlugRules

from .ports import ClockPort, SlugRegistryPort

logger = logging.getLogger(__name__)


class SlugAllocator:
    def __init__(self, registry: SlugRegistryPort, rules: SlugRules, clock: ClockPort):
        self.registry = registry
        self.rules = rules
        self.clock = clock

    def allocate(self, title: str, post_id: UUID, exclude_post_id: UUID | None = None) -> str:
        """
        Claim a unique slug for ``post_id`` derived from ``title``.

        Slugs held by ``exclude_post_id`` do not count as taken, so a post being
        renamed may get back a slug it already holds.

        Raises:
            ConflictError: every attempt lost a race
        """
        base = base_slug(title, self.rules.fallback, self.rules.max_length)
        lost: set[str] = set()

        for attempt in range(1, self.rules.max_attempts + 1):
            taken = self.registry.taken(base, exclude_post_id=exclude_post_id) | lost
            candidate = first_free(base, taken)

            if self.registry.claim(candidate, post_id, self.clock.now()):
                return candidate

            logger.info(
                "Slug %s claimed concurrently, retrying (attempt %d/%d)",
                candidate,
                attempt,
                self.rules.max_attempts,
            )
            lost.add(candidate)

        raise ConflictError(f"Could not allocate a unique slug for '{base}'")

    def retire(self, slug: str, post_id: UUID) -> None:
        """Mark a slug the post no longer uses. It stays reserved for that post."""
        self.registry.retire(slug, post_id, self.clock.now())
