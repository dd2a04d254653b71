#!/usr/bin/env python3
# Smoke client: walks a deployed relay's diagnostic endpoints and prints what each one answers.
import argparse, json, sys

import requests

CHECKS = ["/api", "/ip-check", "/tiktok-business-test", "/tiktok-events-test"]


def call(session, method, url, timeout, body=None):
    try:
        r = session.request(method, url, json=body, timeout=timeout)
    except requests.RequestException as e:
        return None, {"error": str(e)}
    try:
        return r.status_code, r.json()
    except ValueError:
        return r.status_code, r.text[:300]

def track_body(args):
    body = {"pixelId": args.pixel_id, "accessToken": args.access_token, "event": args.event}
    for key, v in (("testEventCode", args.test_event_code), ("email", args.email), ("ttp", args.ttp)):
        if v: body[key] = v
    return body

def run(args, session=None, out=sys.stdout) -> int:
    session = session or requests.Session()
    base = args.target.rstrip("/")
    calls = [("GET", path, None) for path in CHECKS]
    if args.pixel_id and args.access_token:
        calls.append(("POST", "/test-track-tiktok", track_body(args)))

    failed = 0
    for method, path, body in calls:
        status, data = call(session, method, base + path, args.timeout, body)
        if status is None or status >= 500:
            failed += 1
        print(f"{method} {path} -> {status if status is not None else 'no response'}", file=out)
        print(json.dumps(data, indent=2, ensure_ascii=False), file=out)
    return 1 if failed else 0

def main(argv=None):
    ap = argparse.ArgumentParser(description="Run the relay's diagnostic endpoints against a deployment")
    ap.add_argument("--target", required=True, help="Relay base URL (e.g., http://127.0.0.1:5000)")
    ap.add_argument("--timeout", type=float, default=15.0, help="seconds per call")
    ap.add_argument("--pixel-id", default="", help="also send a test event with this pixel")
    ap.add_argument("--access-token", default="")
    ap.add_argument("--test-event-code", default="")
    ap.add_argument("--event", default="PageView")
    ap.add_argument("--email", default="")
    ap.add_argument("--ttp", default="")
    return run(ap.parse_args(argv))

if __name__ == "__main__":
    sys.exit(main())
