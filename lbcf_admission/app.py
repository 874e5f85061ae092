"""
Mutating admission webhook for lb-controlling-framework resources.
"""
import logging
import os

from flask import Flask

from .config import settings
from .routes import create_routes
from .store.interface import WebhookRegistry
from .store.redis_store import RedisRegistry
from .store.static_store import StaticRegistry

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(message)s",
)
log = logging.getLogger("lbcf-admission")


def _create_registry() -> WebhookRegistry:
    if not settings.known_webhooks_redis_url:
        log.info("Using built-in known webhook names")
        return StaticRegistry()

    try:
        registry = RedisRegistry(
            settings.known_webhooks_redis_url, settings.known_webhooks_redis_key
        )
        log.info(
            "Known webhook names read from Redis set %s",
            settings.known_webhooks_redis_key,
        )
        return registry
    except Exception as e:
        if settings.app_env == "test":
            log.warning("Failed to initialize Redis in test env: %s; using built-in names", e)
            return StaticRegistry()
        raise


app = Flask(__name__)
registry = _create_registry()

bp = create_routes(settings, registry)
app.register_blueprint(bp)

if __name__ == "__main__":
    log.info("Starting webhook server...")
    app.run(
        host="0.0.0.0",
        port=settings.port,
        ssl_context=(settings.tls_cert_file, settings.tls_key_file),
    )
