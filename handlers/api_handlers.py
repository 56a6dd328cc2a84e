"""Client Hints diagnostic endpoint."""

import json
from datetime import datetime, timezone

from client_hints import SERVER_SUPPORT, extract_client_hints, negotiation_headers
from request import HTTPRequest
from response import HTTPResponse


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def client_hints_api(request: HTTPRequest) -> HTTPResponse:
    snapshot = extract_client_hints(request.headers)
    envelope = {
        "success": True,
        "timestamp": now_iso(),
        "clientHints": snapshot.to_dict(),
        "detectedOS": snapshot.detected_os,
        "isMobile": snapshot.is_mobile,
        "hasHighEntropyData": snapshot.has_high_entropy_data,
        "serverSupport": SERVER_SUPPORT.to_dict(),
    }

    headers = {"Content-Type": "application/json"}
    headers.update(negotiation_headers(critical=True))
    return HTTPResponse(
        status_code=200,
        headers=headers,
        body=json.dumps(envelope, indent=2),
    )
