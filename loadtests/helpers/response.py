"""Response error extraction for load test observability.

Every commerce API failure uses the same envelope:
``{"success": false, "error": "msg", "kind": "InvalidTransition"}``.
Auto-ship toggles that partly fail answer 207 with per-id results.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import Response


def extract_error_detail(response: Response) -> str:
    """Extract a human-readable error message from an API error response.

    Returns a compact string suitable for Locust failure messages and log lines.
    """
    try:
        body = response.json()
    except ValueError:
        text = getattr(response, "text", "") or ""
        return text[:300] or "(empty response body)"

    if isinstance(body, dict) and "error" in body:
        kind = body.get("kind")
        return f"{kind}: {body['error']}" if kind else str(body["error"])

    return str(body)[:300]


def extract_data(response: Response):
    """The ``data`` member of a success envelope, or None."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("success"):
        return body.get("data")
    return None
