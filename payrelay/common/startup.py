"""Startup-time helpers for safe config logging."""

from payrelay.common.config import RelaySettings
from payrelay.common.logging import logger


SECRET_MARKERS = ("KEY", "SECRET", "PASSWORD", "TOKEN")


def _safe_value(name: str, value) -> str:
    """Return a printable value, redacted for secret-like setting names."""

    if value is None:
        return "<unset>"
    if any(marker in name.upper() for marker in SECRET_MARKERS):
        return "<redacted>"
    return str(value)


def startup_config(settings: RelaySettings) -> dict[str, str]:
    config = {"service": settings.service_name}
    for name, value in settings.model_dump(mode="json").items():
        # key_index is a version tag, not a secret.
        if name == "phonepe_key_index":
            config[name] = str(value)
            continue
        config[name] = _safe_value(name, value)
    config["gateway_base_url"] = settings.gateway_base_url
    return config


def log_startup_config(settings: RelaySettings) -> None:
    """Log the effective configuration for quick troubleshooting."""

    logger.info("startup_config=%s", startup_config(settings))
