# Event assembly + forwarding: one synthetic conversion event to the TikTok Events API.
# PII (email, phone, first/last name) is normalized and SHA-256 hashed before it enters the payload.
import hashlib, json, logging, math, time, uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

import requests

from errors import UpstreamRequestFailed, ValidationFailed
from probe import nested_code, parse_body

logger = logging.getLogger(__name__)

EVENT_TYPES = (
    "PageView", "ViewContent", "ClickButton", "Search", "AddToWishlist",
    "AddToCart", "InitiateCheckout", "AddPaymentInfo", "CompletePayment", "SubmitForm",
)
DEFAULT_EVENT        = "PageView"
DEFAULT_PAGE_URL     = "https://example.com"
DEFAULT_USER_AGENT   = "Mozilla/5.0 (compatible; TikTokConnectivityTest/1.0)"
DEFAULT_CONTENT_TYPE = "product"
SUCCESS_CODE = 0
UNKNOWN_IP   = "unknown"
TRUNCATE_AT  = 80

WARN_NO_TTP   = "ttp (TikTok browser cookie id) missing: event match quality will be reduced"
WARN_NO_PII   = "Neither email nor phone supplied: advanced matching is unavailable"
WARN_BAD_VALUE = "value {!r} is not numeric and was dropped"

# -------------------- Utils --------------------
def sha256_norm(s):
    norm = str(s or "").strip().lower()
    return hashlib.sha256(norm.encode("utf-8")).hexdigest()

def _clean(v):
    if v is None: return None
    s = str(v).strip()
    return s or None

def _truncate(s, n=TRUNCATE_AT):
    s = str(s)
    return s if len(s) <= n else s[:n] + "..."

def _to_number(v):
    if isinstance(v, bool): return None
    try: x = float(v)
    except (TypeError, ValueError): return None
    return x if math.isfinite(x) else None

def _lower_keys(headers) -> Dict[str, str]:
    return {str(k).lower(): v for k, v in (headers or {}).items()}

def client_ip(headers: Mapping[str, str], remote_addr: Optional[str] = None) -> str:
    """First hop of X-Forwarded-For, then X-Real-IP, then the peer address.

    Behind a proxy or load balancer the peer address is the proxy's own.
    """
    h = _lower_keys(headers)
    fwd = _clean(h.get("x-forwarded-for"))
    if fwd:
        first = fwd.split(",")[0].strip()
        if first:
            return first
    return _clean(h.get("x-real-ip")) or _clean(remote_addr) or UNKNOWN_IP

def make_event_id() -> str:
    return f"test_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


@dataclass
class RequestContext:
    headers: Mapping[str, str] = field(default_factory=dict)
    remote_addr: Optional[str] = None


@dataclass
class Credentials:
    pixel_id: str
    access_token: str
    test_event_code: Optional[str] = None

    def masked_token(self) -> str:
        t = self.access_token
        return (t[:4] + "...") if len(t) > 8 else "***"


@dataclass
class AssembledEvent:
    event: Dict[str, Any]
    warnings: List[str]
    sent_data: Dict[str, Any]

    @property
    def event_id(self) -> str:
        return self.event["event_id"]


@dataclass
class ForwardResult:
    success: bool
    event_id: str
    warnings: List[str]
    sent_data: Dict[str, Any]
    provider_response: Any

    def to_dict(self):
        out = {"success": self.success, "eventId": self.event_id}
        if self.warnings:
            out["warnings"] = list(self.warnings)
        out["sentData"] = self.sent_data
        out["tiktokResponse"] = self.provider_response
        return out

# -------------------- Validation --------------------
def validate_request(body) -> Tuple[Credentials, str]:
    """Credentials and event name, or ValidationFailed. Never touches the network."""
    if not isinstance(body, dict):
        body = {}

    pixel_id = _clean(body.get("pixelId")) if isinstance(body.get("pixelId"), str) else None
    token = _clean(body.get("accessToken")) if isinstance(body.get("accessToken"), str) else None
    fields = {
        "pixelId": "OK" if pixel_id else "Required",
        "accessToken": "OK" if token else "Required",
    }
    if not (pixel_id and token):
        raise ValidationFailed("pixelId and accessToken are required", fields=fields)

    event = body.get("event")
    if event is None or event == "":
        event = DEFAULT_EVENT
    if event not in EVENT_TYPES:
        raise ValidationFailed(
            f"Invalid event {event!r}. Allowed events: {', '.join(EVENT_TYPES)}",
            allowedEvents=list(EVENT_TYPES),
        )
    return Credentials(pixel_id, token, _clean(body.get("testEventCode"))), event

# -------------------- Assembly --------------------
def build_event(body: Dict[str, Any], event_name: str, creds: Credentials,
                context: RequestContext, now: Optional[float] = None) -> AssembledEvent:
    browser = body.get("browser") if isinstance(body.get("browser"), dict) else {}
    headers = _lower_keys(context.headers)
    warnings: List[str] = []

    email = _clean(body.get("email"))
    phone = _clean(body.get("phone"))
    ttp = _clean(body.get("ttp"))
    ttclid = _clean(body.get("ttclid"))
    first_name = _clean(body.get("firstName"))
    last_name = _clean(body.get("lastName"))
    if not ttp:
        warnings.append(WARN_NO_TTP)
    if not (email or phone):
        warnings.append(WARN_NO_PII)

    supplied_id = body.get("eventId")
    event_id = str(supplied_id) if supplied_id not in (None, "") else make_event_id()

    user = {
        "external_id": sha256_norm(email) if email else sha256_norm(uuid.uuid4().hex),
        "ip": _clean(body.get("ip")) or client_ip(headers, context.remote_addr),
        "user_agent": (_clean(browser.get("userAgent")) or _clean(body.get("userAgent"))
                       or _clean(headers.get("user-agent")) or DEFAULT_USER_AGENT),
    }
    locale = _clean(body.get("locale")) or _clean(browser.get("language"))
    if locale: user["locale"] = locale
    if email: user["email"] = sha256_norm(email)
    if phone: user["phone"] = sha256_norm(phone)
    if first_name: user["first_name"] = sha256_norm(first_name)
    if last_name: user["last_name"] = sha256_norm(last_name)
    if ttclid: user["ttclid"] = ttclid
    if ttp: user["ttp"] = ttp

    page = {"url": _clean(body.get("url")) or _clean(browser.get("url")) or DEFAULT_PAGE_URL}
    referrer = _clean(body.get("referrer")) or _clean(browser.get("referrer"))
    if referrer: page["referrer"] = referrer

    props: Dict[str, Any] = {"content_type": _clean(body.get("contentType")) or DEFAULT_CONTENT_TYPE}
    currency = _clean(body.get("currency"))
    if currency: props["currency"] = currency.upper()
    raw_value = body.get("value")
    if raw_value is not None and raw_value != "":
        value = _to_number(raw_value)
        if value is None:
            warnings.append(WARN_BAD_VALUE.format(raw_value))
        else:
            props["value"] = value

    event = {
        "event": event_name,
        "event_time": int(now if now is not None else time.time()),
        "event_id": event_id,
        "user": user,
        "page": page,
        "properties": props,
    }
    return AssembledEvent(event, warnings, summarize(event, creds))

def build_payload(event: Dict[str, Any], creds: Credentials) -> Dict[str, Any]:
    payload = {"event_source": "web", "event_source_id": creds.pixel_id, "data": [event]}
    if creds.test_event_code:
        payload["test_event_code"] = creds.test_event_code
    return payload

def summarize(event: Dict[str, Any], creds: Credentials) -> Dict[str, Any]:
    """Redacted view of what goes upstream: presence flags and truncated strings, no secrets."""
    user, page, props = event["user"], event["page"], event["properties"]
    out = {
        "pixelId": creds.pixel_id,
        "event": event["event"],
        "eventId": event["event_id"],
        "eventTime": event["event_time"],
        "url": _truncate(page["url"]),
        "testMode": bool(creds.test_event_code),
        "hasEmail": "email" in user,
        "hasPhone": "phone" in user,
        "hasFirstName": "first_name" in user,
        "hasLastName": "last_name" in user,
        "hasTtclid": "ttclid" in user,
        "hasTtp": "ttp" in user,
        "externalId": user["external_id"][:12] + "...",
        "ip": user["ip"],
        "userAgent": _truncate(user["user_agent"]),
        "contentType": props["content_type"],
    }
    if "referrer" in page: out["referrer"] = _truncate(page["referrer"])
    if "locale" in user: out["locale"] = user["locale"]
    if "currency" in props: out["currency"] = props["currency"]
    if "value" in props: out["value"] = props["value"]
    return out

# -------------------- Forwarding --------------------
class Forwarder:
    def __init__(self, session: requests.Session, track_url: str, timeout: float):
        self.session = session
        self.track_url = track_url
        self.timeout = timeout

    def build_and_send(self, body, context: RequestContext) -> ForwardResult:
        creds, event_name = validate_request(body)
        assembled = build_event(body, event_name, creds, context)
        return self.send(assembled, creds)

    def send(self, assembled: AssembledEvent, creds: Credentials) -> ForwardResult:
        """POST one event. Accepted only when the response's nested ``code`` is 0."""
        payload = build_payload(assembled.event, creds)
        ctx: Dict[str, Any] = {"eventId": assembled.event_id}
        if assembled.warnings:
            ctx["warnings"] = list(assembled.warnings)
        ctx["sentData"] = assembled.sent_data

        logger.debug("track: pixel=%s token=%s payload=%s",
                     creds.pixel_id, creds.masked_token(), json.dumps(payload))
        try:
            resp = self.session.post(
                self.track_url,
                json=payload,
                headers={"Access-Token": creds.access_token, "Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("track: %s transport failure: %s", assembled.event_id, e)
            raise UpstreamRequestFailed(str(e), error_code=type(e).__name__, context=ctx) from e

        body = parse_body(resp)
        code = nested_code(body)
        if not (200 <= resp.status_code < 300):
            logger.warning("track: %s got HTTP %s", assembled.event_id, resp.status_code)
            raise UpstreamRequestFailed(
                f"TikTok API returned HTTP {resp.status_code}",
                error_code=code, upstream_status=resp.status_code, upstream_body=body, context=ctx,
            )
        if code != SUCCESS_CODE:
            message = body.get("message") if isinstance(body, dict) else None
            logger.warning("track: %s rejected, code=%s message=%s", assembled.event_id, code, message)
            raise UpstreamRequestFailed(
                f"TikTok API rejected the event (code {code}): {message or 'no message'}",
                error_code=code, upstream_status=resp.status_code, upstream_body=body, context=ctx,
            )

        logger.info("track: %s %s accepted", assembled.event["event"], assembled.event_id)
        return ForwardResult(True, assembled.event_id, assembled.warnings, assembled.sent_data, body)
