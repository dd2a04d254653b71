#!/usr/bin/env python3
# TikTok connectivity relay: outbound reachability probes (IP geolocation, Business API,
# Events API) and a single test-event forwarder with PII hashing and match-quality warnings.
import logging
from datetime import datetime, timezone
from typing import Optional

import requests
from flask import Flask, Response, jsonify, request
from werkzeug.exceptions import HTTPException

from config import APP_VERSION, SERVICE_NAME, Settings, configure_logging
from console import render_console
from errors import RelayError
from probe import ProviderEndpoint, Prober, interpret_business_status, interpret_events_status
from tracking import EVENT_TYPES, Forwarder, RequestContext

logger = logging.getLogger(__name__)

ENDPOINTS = [
    {"method": "GET",  "path": "/api",                  "description": "Service status and endpoint catalog"},
    {"method": "GET",  "path": "/healthz",              "description": "Alias of /api"},
    {"method": "GET",  "path": "/version",              "description": "Service version"},
    {"method": "GET",  "path": "/ip-check",             "description": "Outbound IP and region via fallback providers"},
    {"method": "GET",  "path": "/tiktok-business-test", "description": "Business API reachability (401/403 = reachable)"},
    {"method": "GET",  "path": "/tiktok-events-test",   "description": "Events API reachability, no real event sent"},
    {"method": "POST", "path": "/test-track-tiktok",    "description": "Send one test event to the Events API"},
]
API_PREFIXES = ("/api", "/ip-check", "/tiktok-", "/test-track", "/healthz", "/version")


def now_iso():
    return datetime.now(tz=timezone.utc).isoformat()

def _wants_json() -> bool:
    if request.path.startswith(API_PREFIXES) or request.method != "GET":
        return True
    return request.accept_mimetypes.best_match(["text/html", "application/json"]) == "application/json"


def create_app(settings: Optional[Settings] = None, session: Optional[requests.Session] = None) -> Flask:
    settings = settings or Settings.from_env()
    session = session or requests.Session()

    prober = Prober(session, settings.timeout, settings.probe_user_agent)
    forwarder = Forwarder(session, settings.track_url, settings.timeout)
    business_ep = ProviderEndpoint("tiktok-business", settings.pixel_list_url)
    events_ep = ProviderEndpoint("tiktok-events", settings.track_url, method="POST", body={})

    app = Flask(__name__)
    app.config["RELAY_SETTINGS"] = settings
    app.json.sort_keys = False

    # -------------------- Errors --------------------
    @app.errorhandler(RelayError)
    def relay_error(e: RelayError):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def http_error(e: HTTPException):
        if e.code == 404:
            if not _wants_json():
                return Response(render_console(EVENT_TYPES), mimetype="text/html")
            return jsonify({"error": "Not found", "path": request.path, "availableEndpoints": ENDPOINTS}), 404
        return jsonify({"error": e.name, "message": e.description, "path": request.path}), e.code

    @app.errorhandler(Exception)
    def unhandled(e: Exception):
        logger.exception("Unhandled error on %s %s: %s", request.method, request.path, e)
        return jsonify({"error": "Internal server error"}), 500

    @app.after_request
    def log_request(resp):
        logger.info("%s %s -> %s", request.method, request.path, resp.status_code)
        return resp

    # -------------------- Status --------------------
    @app.get("/")
    def home():
        return Response(render_console(EVENT_TYPES), mimetype="text/html")

    @app.get("/api")
    @app.get("/healthz")
    def status():
        return jsonify({
            "status": "ok",
            "service": SERVICE_NAME,
            "version": APP_VERSION,
            "timestamp": now_iso(),
            "endpoints": ENDPOINTS,
        })

    @app.get("/version")
    def version():
        return jsonify({"version": APP_VERSION})

    # -------------------- Reachability --------------------
    @app.get("/ip-check")
    def ip_check():
        result = prober.probe(
            settings.ip_providers,
            require_ok=True,
            failure="All IP providers failed",
            hint="Outbound networking may be blocked",
        )
        return jsonify({"provider": result.provider, "data": result.body})

    @app.get("/tiktok-business-test")
    def tiktok_business_test():
        report = prober.check(business_ep, interpret_business_status)
        return jsonify(report), (200 if report["reachable"] else 500)

    @app.get("/tiktok-events-test")
    def tiktok_events_test():
        report = prober.check(events_ep, interpret_events_status)
        return jsonify(report), (200 if report["reachable"] else 500)

    # -------------------- Event forwarder --------------------
    @app.post("/test-track-tiktok")
    def test_track_tiktok():
        body = request.get_json(force=True, silent=True)
        ctx = RequestContext(headers=request.headers, remote_addr=request.remote_addr)
        result = forwarder.build_and_send(body, ctx)
        return jsonify(result.to_dict())

    return app


# -------------------- Entry --------------------
if __name__ == "__main__":
    cfg = Settings.from_env()
    configure_logging(cfg.log_level)
    create_app(cfg).run(host="0.0.0.0", port=cfg.port)
