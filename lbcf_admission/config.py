import os
from dataclasses import dataclass
from datetime import timedelta

from kubernetes.utils.duration import parse_duration


def _get_env(name: str, default: str) -> str:
    val = os.getenv(name)
    return val if val is not None and val != "" else default


def _parse_int(name: str, default: int) -> int:
    val = _get_env(name, str(default))
    try:
        return int(val)
    except Exception:
        return default


def _parse_duration(name: str, default: timedelta) -> timedelta:
    val = _get_env(name, "")
    if not val:
        return default
    try:
        parsed = parse_duration(val)
    except Exception:
        return default
    return parsed if parsed > timedelta(0) else default


def _parse_list(name: str) -> tuple[str, ...]:
    val = _get_env(name, "")
    return tuple(item.strip() for item in val.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    # Behavior
    app_env: str = "production"
    webhook_default_timeout: timedelta = timedelta(seconds=10)
    finalizers: tuple[str, ...] = ()

    # Keys (labels)
    association_label: str = "lbcf.tkestack.io/lb-name"

    # Known webhook registry; empty URL selects the built-in list
    known_webhooks_redis_url: str = ""
    known_webhooks_redis_key: str = "lbcf:known-webhooks"

    # Server
    port: int = 8443
    tls_cert_file: str = "tls/tls.crt"
    tls_key_file: str = "tls/tls.key"


def load() -> Settings:
    return Settings(
        app_env=_get_env("APP_ENV", "production"),
        webhook_default_timeout=_parse_duration(
            "WEBHOOK_DEFAULT_TIMEOUT", timedelta(seconds=10)
        ),
        finalizers=_parse_list("FINALIZERS"),
        association_label=_get_env("ASSOCIATION_LABEL", "lbcf.tkestack.io/lb-name"),
        known_webhooks_redis_url=_get_env("KNOWN_WEBHOOKS_REDIS_URL", ""),
        known_webhooks_redis_key=_get_env(
            "KNOWN_WEBHOOKS_REDIS_KEY", "lbcf:known-webhooks"
        ),
        port=_parse_int("PORT", 8443),
        tls_cert_file=_get_env("TLS_CERT_FILE", "tls/tls.crt"),
        tls_key_file=_get_env("TLS_KEY_FILE", "tls/tls.key"),
    )


# Singleton settings for app usage (optional in tests)
settings: Settings = load()
