"""Best-effort display name refresh."""

import logging
from dataclasses import dataclass
from typing import Protocol

from water_tracker.domain.models import UserRecord
from water_tracker.services.cache import Cache

_logger = logging.getLogger(__name__)


class ProfileLookup(Protocol):
    """Interface for fetching a user's display name."""

    async def get_display_name(self, user_id: str) -> str:
        """Return the user's current display name."""


@dataclass
class ProfileService:
    """Refresh display names only when missing or stale."""

    lookup: ProfileLookup
    cache: Cache
    ttl_seconds: int = 86400

    async def refresh(self, user: UserRecord) -> bool:
        """Update ``user.display_name`` if needed; return True when it changed."""
        cache_key = f"profile:{user.user_id}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            name = str(cached)
        else:
            try:
                name = await self.lookup.get_display_name(user.user_id)
            except Exception as exc:
                _logger.warning("Profile lookup failed for %s: %s", user.user_id, exc)
                return False
            self.cache.set(cache_key, name, ttl_seconds=self.ttl_seconds)
        if name and name != user.display_name:
            user.display_name = name
            return True
        return False
