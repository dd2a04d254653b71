# Runtime settings, read once from the environment (and .env) and passed explicitly to the app.
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

from probe import ProviderEndpoint

APP_VERSION = "1.2.0"
SERVICE_NAME = "tiktok-connectivity-test"

DEFAULT_API_BASE = "https://business-api.tiktok.com/open_api/v1.3"
DEFAULT_TIMEOUT = 5.0
DEFAULT_IP_PROVIDERS: Tuple[ProviderEndpoint, ...] = (
    ProviderEndpoint("ifconfig.me", "https://ifconfig.me/all.json"),
    ProviderEndpoint("ip-api", "http://ip-api.com/json"),
)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def clampf(v, lo, hi, default):
    try: x = float(v)
    except (TypeError, ValueError): return default
    return max(lo, min(hi, x))

def clampi(v, lo, hi, default):
    try: x = int(v)
    except (TypeError, ValueError): return default
    return max(lo, min(hi, x))

def parse_providers(raw: str) -> Tuple[ProviderEndpoint, ...]:
    """``name=url,name=url`` -> ordered endpoints. Malformed entries are skipped."""
    out = []
    for item in (raw or "").split(","):
        name, sep, url = item.strip().partition("=")
        if sep and name.strip() and url.strip():
            out.append(ProviderEndpoint(name.strip(), url.strip()))
    return tuple(out)


@dataclass(frozen=True)
class Settings:
    port: int = 5000
    api_base: str = DEFAULT_API_BASE
    timeout: float = DEFAULT_TIMEOUT
    probe_user_agent: str = "Render-TikTok-Test"
    ip_providers: Tuple[ProviderEndpoint, ...] = DEFAULT_IP_PROVIDERS
    log_level: str = "INFO"

    @property
    def track_url(self) -> str:
        return self.api_base.rstrip("/") + "/event/track/"

    @property
    def pixel_list_url(self) -> str:
        return self.api_base.rstrip("/") + "/pixel/list/"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        if environ is None:
            load_dotenv()
            environ = os.environ
        providers = parse_providers(environ.get("IP_PROVIDERS", "")) or DEFAULT_IP_PROVIDERS
        return cls(
            port=clampi(environ.get("PORT"), 1, 65535, 5000),
            api_base=(environ.get("TIKTOK_API_BASE") or DEFAULT_API_BASE).strip(),
            timeout=clampf(environ.get("PROBE_TIMEOUT_SECONDS"), 0.1, 60.0, DEFAULT_TIMEOUT),
            probe_user_agent=environ.get("PROBE_USER_AGENT") or "Render-TikTok-Test",
            ip_providers=providers,
            log_level=(environ.get("LOG_LEVEL") or "INFO").upper(),
        )


def configure_logging(level: str = "INFO"):
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
