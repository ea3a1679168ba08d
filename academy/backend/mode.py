from enum import Enum
from typing import Optional

from academy.config import Settings


class Mode(str, Enum):
    LIVE = "live"
    DEMO = "demo"


def _on_static_host(host: str, static_domain: str) -> bool:
    host = host.split(":", 1)[0].strip().lower()
    return bool(static_domain) and (host == static_domain or host.endswith("." + static_domain))


def current_mode(handle, settings: Optional[Settings] = None, host: Optional[str] = None) -> Mode:
    """LIVE only with a backend handle, a production deployment, and a host
    outside the static-hosting fallback domain. Settings are re-read from the
    environment on every call unless passed in.
    """
    settings = settings or Settings.from_env()
    if settings.demo_mode or handle is None:
        return Mode.DEMO
    if settings.app_env != "production":
        return Mode.DEMO
    if _on_static_host(host or settings.public_host, settings.static_hosting_domain):
        return Mode.DEMO
    return Mode.LIVE
