"""
Onboarding Progress Store.

Transient persistence for in-flight onboarding progress, separate from the
durable profile. Records survive page reloads and restarts so users can
resume, and are deleted once onboarding completes.

Backends (KeyValueCache):
- MemoryCache: process-local (also used for session-scoped reminder flags)
- SupabaseSessionCache: onboarding_sessions table
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

from .errors import PersistenceError
from .state import OnboardingProgress

logger = logging.getLogger(__name__)


DEFAULT_NAMESPACE = "onboarding_progress"


# =============================================================================
# Key-Value Cache Port
# =============================================================================


@runtime_checkable
class KeyValueCache(Protocol):
    """Minimal key -> JSON record store."""

    def load(self, key: str) -> dict | None:
        ...

    def save(self, key: str, record: dict) -> None:
        ...

    def clear(self, key: str) -> None:
        ...


class MemoryCache:
    """
    Process-local cache.

    Records are stored as JSON text so callers never share mutable state
    with the cache (same behavior as browser storage).
    """

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def load(self, key: str) -> dict | None:
        raw = self._items.get(key)
        return json.loads(raw) if raw is not None else None

    def save(self, key: str, record: dict) -> None:
        self._items[key] = json.dumps(record, default=str)

    def clear(self, key: str) -> None:
        self._items.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)


class SupabaseSessionCache:
    """KeyValueCache backed by the onboarding_sessions table."""

    table_name = "onboarding_sessions"

    def __init__(self, client: Any):
        self.client = client

    def load(self, key: str) -> dict | None:
        try:
            result = (
                self.client.table(self.table_name)
                .select("state")
                .eq("key", key)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.warning(f"Failed to load onboarding session {key}: {e}")
            raise PersistenceError("Failed to load onboarding session") from e

        if result is None or not result.data:
            return None
        return result.data[0].get("state")

    def save(self, key: str, record: dict) -> None:
        try:
            self.client.table(self.table_name).upsert({
                "key": key,
                "state": record,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }, on_conflict="key").execute()
        except Exception as e:
            logger.error(f"Failed to save onboarding session {key}: {e}")
            raise PersistenceError("Failed to save onboarding session") from e

    def clear(self, key: str) -> None:
        try:
            self.client.table(self.table_name).delete().eq("key", key).execute()
        except Exception as e:
            logger.warning(f"Failed to clear onboarding session {key}: {e}")
            raise PersistenceError("Failed to clear onboarding session") from e


# =============================================================================
# Progress Store
# =============================================================================


class ProgressStore:
    """
    Reads and writes OnboardingProgress records through a KeyValueCache.

    One active record per user, keyed by "<namespace>:<user_id>".
    """

    def __init__(self, cache: KeyValueCache, namespace: str = DEFAULT_NAMESPACE):
        self.cache = cache
        self.namespace = namespace

    def key_for(self, user_id: str) -> str:
        return f"{self.namespace}:{user_id}"

    def load(self, user_id: str) -> OnboardingProgress | None:
        """
        Load the persisted record for a user.

        Unreadable or foreign records are treated as absent.
        Raises PersistenceError if the backend fails.
        """
        try:
            record = self.cache.load(self.key_for(user_id))
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError("Failed to load onboarding progress") from e

        if not record:
            return None

        try:
            progress = OnboardingProgress.from_dict(record)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable onboarding progress for user {user_id}: {e}")
            return None

        if progress.user_id != user_id:
            logger.warning(f"Discarding onboarding progress belonging to {progress.user_id}")
            return None

        return progress

    def save(self, progress: OnboardingProgress) -> None:
        """Persist a record. Raises PersistenceError on failure."""
        try:
            self.cache.save(self.key_for(progress.user_id), progress.to_dict())
        except PersistenceError:
            raise
        except Exception as e:
            logger.error(f"Failed to save onboarding progress for user {progress.user_id}: {e}")
            raise PersistenceError("Failed to save onboarding progress") from e

    def clear(self, user_id: str) -> None:
        """Delete a user's record. Raises PersistenceError on failure."""
        try:
            self.cache.clear(self.key_for(user_id))
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError("Failed to clear onboarding progress") from e
