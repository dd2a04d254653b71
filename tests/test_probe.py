"""Tests for the reachability probe."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from errors import ProbeExhausted
from probe import (
    TRANSPORT_FAILURE,
    ProviderEndpoint,
    Prober,
    interpret_business_status,
    interpret_events_status,
)

FIRST = ProviderEndpoint("first", "https://first.stub/json")
SECOND = ProviderEndpoint("second", "https://second.stub/json")


@pytest.fixture
def prober(session: MagicMock) -> Prober:
    return Prober(session, timeout=0.5, user_agent="Probe-Test")


class TestProbe:
    """Tests for Prober.probe ordered fallback."""

    def test_first_success_wins(self, prober: Prober, session: MagicMock, make_response) -> None:
        session.request.return_value = make_response(200, {"ip": "1.2.3.4"})
        result = prober.probe([FIRST, SECOND])
        assert result.provider == "first"
        assert result.body == {"ip": "1.2.3.4"}
        assert session.request.call_count == 1

    def test_falls_back_after_timeout(self, prober: Prober, session: MagicMock, make_response) -> None:
        session.request.side_effect = [
            requests.exceptions.ReadTimeout("read timed out"),
            make_response(200, {"query": "5.6.7.8"}),
        ]
        result = prober.probe([FIRST, SECOND])
        assert result.provider == "second"
        assert result.status_code == 200
        urls = [c.args[1] for c in session.request.call_args_list]
        assert urls == [FIRST.url, SECOND.url]

    def test_each_call_uses_timeout_and_user_agent(self, prober: Prober, session: MagicMock, make_response) -> None:
        session.request.return_value = make_response(200, {})
        prober.probe([FIRST])
        _, kwargs = session.request.call_args
        assert kwargs["timeout"] == 0.5
        assert kwargs["headers"] == {"User-Agent": "Probe-Test"}

    def test_exhaustion_reports_every_provider(self, prober: Prober, session: MagicMock) -> None:
        session.request.side_effect = [
            requests.exceptions.ConnectTimeout("connect timed out"),
            requests.exceptions.ConnectionError("Name or service not known"),
        ]
        with pytest.raises(ProbeExhausted) as exc:
            prober.probe([FIRST, SECOND], failure="All IP providers failed", hint="Outbound networking may be blocked")
        assert exc.value.errors == [
            {"provider": "first", "error": "connect timed out"},
            {"provider": "second", "error": "Name or service not known"},
        ]
        body = exc.value.to_dict()
        assert body["error"] == "All IP providers failed"
        assert body["hint"] == "Outbound networking may be blocked"
        assert len(body["details"]) == 2

    def test_exhaustion_message_is_generic_by_default(self, prober: Prober, session: MagicMock) -> None:
        session.request.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(ProbeExhausted) as exc:
            prober.probe([FIRST])
        body = exc.value.to_dict()
        assert body["error"] == "All providers failed"
        assert "IP" not in body["error"]
        assert "hint" not in body

    def test_any_status_accepted_by_default(self, prober: Prober, session: MagicMock, make_response) -> None:
        session.request.return_value = make_response(503, text="busy")
        result = prober.probe([FIRST, SECOND])
        assert result.provider == "first"
        assert result.body == "busy"

    def test_require_ok_skips_error_status(self, prober: Prober, session: MagicMock, make_response) -> None:
        session.request.side_effect = [make_response(503, text="busy"), make_response(200, {"ok": True})]
        result = prober.probe([FIRST, SECOND], require_ok=True)
        assert result.provider == "second"

    def test_require_ok_records_status(self, prober: Prober, session: MagicMock, make_response) -> None:
        session.request.side_effect = [make_response(503, text="busy"), make_response(429, text="slow down")]
        with pytest.raises(ProbeExhausted) as exc:
            prober.probe([FIRST, SECOND], require_ok=True)
        assert [e["error"] for e in exc.value.errors] == ["HTTP 503", "HTTP 429"]


class TestCheck:
    """Tests for single-endpoint reachability reports."""

    def test_auth_rejection_is_reachable(self, prober: Prober, session: MagicMock, make_response) -> None:
        session.request.return_value = make_response(401, {"code": 40105, "message": "Access token is null"})
        report = prober.check(FIRST, interpret_business_status)
        assert report == {
            "reachable": True,
            "httpStatus": 401,
            "interpretation": "SUCCESS: TikTok API reachable (auth expected)",
            "upstreamCode": 40105,
        }

    def test_server_error_is_reachable_but_unexpected(self, prober: Prober, session: MagicMock, make_response) -> None:
        session.request.return_value = make_response(502, text="bad gateway")
        report = prober.check(FIRST, interpret_business_status)
        assert report["reachable"] is True
        assert report["interpretation"] == "Unexpected status but network reachable"
        assert "upstreamCode" not in report

    def test_transport_failure_is_unreachable(self, prober: Prober, session: MagicMock) -> None:
        session.request.side_effect = requests.exceptions.SSLError("handshake failure")
        report = prober.check(FIRST, interpret_business_status)
        assert report == {
            "reachable": False,
            "error": "handshake failure",
            "interpretation": TRANSPORT_FAILURE,
        }

    def test_sends_endpoint_method_and_body(self, prober: Prober, session: MagicMock, make_response) -> None:
        session.request.return_value = make_response(400, {"code": 40002})
        endpoint = ProviderEndpoint("events", "https://tiktok.stub/event/track/", method="POST", body={})
        prober.check(endpoint, interpret_events_status)
        args, kwargs = session.request.call_args
        assert args == ("POST", "https://tiktok.stub/event/track/")
        assert kwargs["json"] == {}


class TestInterpretations:
    """Tests for status interpretation tables."""

    @pytest.mark.parametrize("status", [401, 403, 200])
    def test_business_success(self, status: int) -> None:
        assert interpret_business_status(status).startswith("SUCCESS")

    @pytest.mark.parametrize("status", [404, 500, 302])
    def test_business_unexpected(self, status: int) -> None:
        assert interpret_business_status(status) == "Unexpected status but network reachable"

    @pytest.mark.parametrize("status", [400, 401, 405, 200])
    def test_events_success(self, status: int) -> None:
        assert interpret_events_status(status).startswith("SUCCESS")

    def test_events_unexpected(self) -> None:
        assert interpret_events_status(500) == "Unexpected response"
