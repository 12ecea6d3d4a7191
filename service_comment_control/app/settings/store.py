"""
Settings stores holding the persisted rule document.

The document is a JSON object with optional ``role_rules`` and
``post_rules`` lists (plus any add-on keys). A missing document means
"use the defaults".
"""

import copy
import json
from typing import Any, Dict, Optional

import redis.asyncio as redis

from shared.logging import get_logger
from shared.errors import ServiceError


class SettingsStore:
    """Key-value store interface for the rule document."""

    async def start(self):
        """Open connections."""

    async def stop(self):
        """Close connections."""

    async def get(self) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    async def set(self, document: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def delete(self) -> bool:
        raise NotImplementedError

    async def health_check(self) -> bool:
        return True


class InMemorySettingsStore(SettingsStore):
    """Process-local store, used for local runs and tests."""

    def __init__(self, document: Optional[Dict[str, Any]] = None):
        self._document = copy.deepcopy(document)

    async def get(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._document)

    async def set(self, document: Dict[str, Any]) -> None:
        self._document = copy.deepcopy(document)

    async def delete(self) -> bool:
        existed = self._document is not None
        self._document = None
        return existed


class RedisSettingsStore(SettingsStore):
    """Redis-backed store keeping the document as a JSON string."""

    def __init__(self, redis_url: str, key: str = "comment-control:settings"):
        self.redis_url = redis_url
        self.key = key
        self.logger = get_logger("comment_control.settings.redis")
        self.redis: Optional[redis.Redis] = None

    async def start(self):
        """Start the Redis connection."""
        try:
            self.redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30
            )

            await self.redis.ping()

            self.logger.info("Redis settings store started", key=self.key)

        except Exception as e:
            self.logger.error("Failed to start Redis settings store", error=str(e))
            raise ServiceError("Failed to start Redis settings store", {"error": str(e)})

    async def stop(self):
        """Stop the Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.logger.info("Redis settings store stopped")

    async def get(self) -> Optional[Dict[str, Any]]:
        """Load the persisted document, or None when nothing is stored."""
        try:
            raw = await self.redis.get(self.key)
        except Exception as e:
            self.logger.error("Error reading settings", key=self.key, error=str(e))
            raise ServiceError("Unable to read rule settings", {"error": str(e)})

        if not raw:
            return None

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            self.logger.error("Stored settings are not valid JSON", key=self.key, error=str(e))
            raise ServiceError("Stored rule settings are corrupt", {"error": str(e)})

        if not isinstance(document, dict):
            raise ServiceError("Stored rule settings are corrupt", {"error": "expected a JSON object"})
        return document

    async def set(self, document: Dict[str, Any]) -> None:
        """Persist the document."""
        try:
            await self.redis.set(self.key, json.dumps(document))
            self.logger.info("Settings saved", key=self.key)
        except Exception as e:
            self.logger.error("Error saving settings", key=self.key, error=str(e))
            raise ServiceError("Unable to save rule settings", {"error": str(e)})

    async def delete(self) -> bool:
        """Drop the persisted document."""
        try:
            removed = await self.redis.delete(self.key)
        except Exception as e:
            self.logger.error("Error deleting settings", key=self.key, error=str(e))
            raise ServiceError("Unable to delete rule settings", {"error": str(e)})
        return bool(removed)

    async def health_check(self) -> bool:
        """Check Redis health."""
        try:
            await self.redis.ping()
            return True
        except Exception:
            return False


def create_settings_store(backend: str, redis_url: str, key: str) -> SettingsStore:
    """Build the store named by configuration."""
    if backend == "redis":
        return RedisSettingsStore(redis_url, key)
    if backend == "memory":
        return InMemorySettingsStore()
    raise ServiceError(f"Unknown settings backend: {backend}", {"backend": backend})
