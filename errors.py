# Error taxonomy for the relay: local validation, probe exhaustion, upstream send failures.
from typing import Any, Dict, List, Optional


class RelayError(Exception):
    """Base error; carries the HTTP status the web layer answers with."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationFailed(RelayError):
    """Missing or invalid request fields. Raised before any outbound call."""

    status_code = 400

    def __init__(self, message: str, fields: Optional[Dict[str, str]] = None, **detail):
        super().__init__(message)
        self.fields = fields or {}
        self.detail = detail

    def to_dict(self):
        out = {"success": False, "error": self.message}
        if self.fields:
            out["fields"] = dict(self.fields)
        out.update(self.detail)
        return out


class ProbeExhausted(RelayError):
    """Every configured endpoint failed at transport level (or with a rejected status)."""

    status_code = 500

    def __init__(self, message: str, errors: List[Dict[str, str]], hint: str = ""):
        super().__init__(message)
        self.errors = list(errors)
        self.hint = hint

    def to_dict(self):
        out = {"error": self.message}
        if self.hint:
            out["hint"] = self.hint
        out["details"] = [dict(e) for e in self.errors]
        return out


class UpstreamRequestFailed(RelayError):
    """The single event send failed in transport, with a non-2xx status, or with a non-zero API code."""

    status_code = 502

    def __init__(self, message: str, error_code=None, upstream_status: Optional[int] = None,
                 upstream_body: Any = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.error_code = error_code
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body
        self.context = context or {}

    def to_dict(self):
        out = {"success": False, "error": self.message}
        if self.error_code is not None:
            out["errorCode"] = self.error_code
        if self.upstream_status is not None:
            out["httpStatus"] = self.upstream_status
        if self.upstream_body is not None:
            out["tiktokError"] = self.upstream_body
        out.update(self.context)
        return out
