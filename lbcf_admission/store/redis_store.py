import logging

import redis

from .interface import WebhookRegistry
from .static_store import KNOWN_WEBHOOKS

log = logging.getLogger("lbcf-admission")


class RedisRegistry(WebhookRegistry):
    """Known webhook names kept in a Redis set shared by all webhook replicas."""

    def __init__(
        self,
        url: str,
        key: str = "lbcf:known-webhooks",
        fallback: tuple[str, ...] = KNOWN_WEBHOOKS,
    ) -> None:
        self._client = redis.Redis.from_url(url)
        self._key = key
        self._fallback = tuple(fallback)

    def names(self) -> tuple[str, ...]:
        members = self._client.smembers(self._key)
        names = {
            m.decode() if isinstance(m, bytes) else str(m) for m in members or ()
        }
        names.discard("")
        if not names:
            log.warning(
                "Redis set %s is empty; using built-in webhook names", self._key
            )
            return self._fallback
        # Set members have no order; sort so patches are deterministic
        return tuple(sorted(names))
