from typing import Iterable

from .interface import WebhookRegistry

# Webhooks an LBCF driver implements, in load balancer / backend lifecycle order
KNOWN_WEBHOOKS: tuple[str, ...] = (
    "validateLoadBalancer",
    "createLoadBalancer",
    "ensureLoadBalancer",
    "deleteLoadBalancer",
    "validateBackend",
    "generateBackendAddr",
    "ensureBackendRegistration",
    "deregisterBackend",
    "judgeBackendDeregister",
)


class StaticRegistry(WebhookRegistry):
    def __init__(self, names: Iterable[str] = KNOWN_WEBHOOKS) -> None:
        # dict.fromkeys drops repeats and keeps first-seen order
        self._names = tuple(dict.fromkeys(n for n in names if n))

    def names(self) -> tuple[str, ...]:
        return self._names
