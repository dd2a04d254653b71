# Reachability probe: ordered provider fallback with a fixed per-call timeout.
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests

from errors import ProbeExhausted

logger = logging.getLogger(__name__)

TRANSPORT_FAILURE = "Network / DNS / TLS failure"


@dataclass(frozen=True)
class ProviderEndpoint:
    name: str
    url: str
    method: str = "GET"
    body: Optional[Dict[str, Any]] = field(default=None, compare=False)


@dataclass
class ProbeResult:
    provider: str
    status_code: int
    body: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def parse_body(resp):
    """JSON when the upstream sent JSON, raw text otherwise."""
    try:
        return resp.json()
    except ValueError:
        return resp.text


def nested_code(body):
    if isinstance(body, dict):
        return body.get("code")
    return None


# -------------------- Interpretations --------------------
def interpret_business_status(status: int) -> str:
    if status in (401, 403):
        return "SUCCESS: TikTok API reachable (auth expected)"
    if 200 <= status < 300:
        return "SUCCESS: TikTok API reachable"
    return "Unexpected status but network reachable"

def interpret_events_status(status: int) -> str:
    if 400 <= status < 500:
        return "SUCCESS: Events API reachable (auth/data expected)"
    if 200 <= status < 300:
        return "SUCCESS: Events API reachable"
    return "Unexpected response"


class Prober:
    """Issues one outbound call per endpoint, in order, each bounded by ``timeout`` seconds."""

    def __init__(self, session: requests.Session, timeout: float, user_agent: str = ""):
        self.session = session
        self.timeout = timeout
        self.user_agent = user_agent

    def attempt(self, endpoint: ProviderEndpoint) -> ProbeResult:
        headers = {"User-Agent": self.user_agent} if self.user_agent else {}
        resp = self.session.request(
            endpoint.method,
            endpoint.url,
            json=endpoint.body,
            headers=headers,
            timeout=self.timeout,
        )
        return ProbeResult(endpoint.name, resp.status_code, parse_body(resp))

    def probe(self, endpoints: Sequence[ProviderEndpoint], require_ok: bool = False,
              failure: str = "All providers failed", hint: str = "") -> ProbeResult:
        """Return the first provider that answers; raise ProbeExhausted once all have failed.

        With ``require_ok`` a non-2xx answer counts as a failure and the next provider is tried.
        ``failure`` and ``hint`` become the message of the aggregate error.
        """
        errors: List[Dict[str, str]] = []
        for ep in endpoints:
            try:
                result = self.attempt(ep)
            except requests.RequestException as e:
                logger.warning("probe: %s failed: %s", ep.name, e)
                errors.append({"provider": ep.name, "error": str(e)})
                continue
            if require_ok and not result.ok:
                logger.warning("probe: %s answered HTTP %s", ep.name, result.status_code)
                errors.append({"provider": ep.name, "error": f"HTTP {result.status_code}"})
                continue
            logger.info("probe: %s answered HTTP %s", ep.name, result.status_code)
            return result
        raise ProbeExhausted(failure, errors=errors, hint=hint)

    def check(self, endpoint: ProviderEndpoint, interpret: Callable[[int], str]) -> Dict[str, Any]:
        """Reachability report for a single endpoint.

        Any HTTP answer, including an auth rejection, proves the network path and TLS handshake.
        """
        try:
            result = self.attempt(endpoint)
        except requests.RequestException as e:
            logger.warning("check: %s unreachable: %s", endpoint.name, e)
            return {"reachable": False, "error": str(e), "interpretation": TRANSPORT_FAILURE}

        report = {
            "reachable": True,
            "httpStatus": result.status_code,
            "interpretation": interpret(result.status_code),
        }
        code = nested_code(result.body)
        if code is not None:
            report["upstreamCode"] = code
        logger.info("check: %s -> %s", endpoint.name, report["interpretation"])
        return report
