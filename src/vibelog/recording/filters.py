"""Noise filter chain for observed network responses.

Most traffic a page generates (analytics beacons, images, fonts,
successfully loaded scripts) says nothing about application behavior.
The chain below drops it before it reaches the timeline. Each stage is a
short-circuiting predicate evaluated in a fixed order; the first stage
that matches decides the drop reason.
"""

from __future__ import annotations

import json
import posixpath
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

from vibelog.models.timeline import NetworkCandidate
from vibelog.recording.redaction import redact_text, sanitize

# Tracking and analytics hosts, matched as URL substrings.
BLOCKED_DOMAINS: tuple[str, ...] = (
    "google-analytics.com",
    "googletagmanager.com",
    "doubleclick.net",
    "googlesyndication.com",
    "facebook.net",
    "connect.facebook.com",
    "hotjar.com",
    "segment.io",
    "cdn.segment.com",
    "mixpanel.com",
    "amplitude.com",
    "fullstory.com",
    "clarity.ms",
    "nr-data.net",
)

DROPPED_RESOURCE_TYPES: frozenset[str] = frozenset({"image", "font", "media", "stylesheet"})

STATIC_EXTENSIONS: frozenset[str] = frozenset({
    ".png", ".jpg", ".jpeg", ".gif", ".webp", ".avif", ".ico", ".svg",
    ".css", ".woff", ".woff2", ".ttf", ".otf",
    ".mp4", ".webm", ".mp3",
})

# Resource types worth a visual toast in the page, recorded or not.
NOTIFY_RESOURCE_TYPES: frozenset[str] = frozenset({"xhr", "fetch", "document"})

TRUNCATION_SUFFIX = "... [truncated]"
DEFAULT_SNIPPET_LIMIT = 1024


@dataclass(frozen=True)
class FilterDecision:
    """Outcome of running a candidate through the filter chain."""

    keep: bool
    reason: str | None = None  # Name of the stage that dropped it
    notify: bool = False
    capture_body: bool = False


def url_extension(url: str) -> str:
    """Lower-cased file extension of a URL path, ignoring query and fragment."""
    try:
        path = urlsplit(url).path
    except ValueError:
        return ""
    return posixpath.splitext(path)[1].lower()


class NoiseFilter:
    """Decide which network responses are worth keeping.

    Stages, in order:
        1. blocked_domain  - URL contains a tracking/analytics host
        2. resource_type   - image, font, media or stylesheet
        3. static_asset    - URL path ends in a static asset extension
        4. script_ok       - script loaded successfully (status < 400)

    evaluate() is total: it never raises for any NetworkCandidate.
    """

    def __init__(self, extra_blocked_domains: list[str] | None = None) -> None:
        self.blocked_domains: tuple[str, ...] = BLOCKED_DOMAINS + tuple(
            d for d in (extra_blocked_domains or []) if d
        )
        self._stages: list[tuple[str, Callable[[NetworkCandidate], bool]]] = [
            ("blocked_domain", self._is_blocked_domain),
            ("resource_type", self._is_dropped_resource),
            ("static_asset", self._is_static_asset),
            ("script_ok", self._is_successful_script),
        ]

    def evaluate(self, candidate: NetworkCandidate) -> FilterDecision:
        """Run the candidate through every stage until one drops it."""
        for reason, predicate in self._stages:
            if predicate(candidate):
                return FilterDecision(keep=False, reason=reason)

        return FilterDecision(
            keep=True,
            notify=candidate.resource_type.lower() in NOTIFY_RESOURCE_TYPES,
            capture_body=candidate.is_json,
        )

    def _is_blocked_domain(self, candidate: NetworkCandidate) -> bool:
        url = candidate.url.lower()
        return any(domain in url for domain in self.blocked_domains)

    def _is_dropped_resource(self, candidate: NetworkCandidate) -> bool:
        return candidate.resource_type.lower() in DROPPED_RESOURCE_TYPES

    def _is_static_asset(self, candidate: NetworkCandidate) -> bool:
        return url_extension(candidate.url) in STATIC_EXTENSIONS

    def _is_successful_script(self, candidate: NetworkCandidate) -> bool:
        return candidate.resource_type.lower() == "script" and candidate.status < 400


def truncate_bytes(content: str, max_bytes: int) -> str:
    """Cut content to at most max_bytes of UTF-8, appending a notice if cut.

    Never splits a multi-byte character.
    """
    encoded = content.encode("utf-8")
    if len(encoded) <= max_bytes:
        return content
    return encoded[:max_bytes].decode("utf-8", errors="ignore") + TRUNCATION_SUFFIX


def _parse_maybe_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return text


def build_network_payload(
    candidate: NetworkCandidate,
    capture_body: bool,
    snippet_limit: int = DEFAULT_SNIPPET_LIMIT,
    sanitizer: Callable[[Any], Any] = sanitize,
) -> dict[str, Any]:
    """Build the NETWORK_REQUEST payload for a kept candidate.

    The request body is kept as parsed JSON when the post data parses,
    otherwise as text with secret patterns redacted. The response body
    is included only when capture_body is set (JSON responses). It is
    redacted first; if its serialized form exceeds snippet_limit bytes it
    is replaced by a truncated text snippet.

    Args:
        candidate: The network response that passed the filter chain.
        capture_body: Whether to include a response body snippet.
        snippet_limit: Maximum response snippet size in UTF-8 bytes.
        sanitizer: Key-based redaction applied to structured bodies.

    Returns:
        A JSON-serializable payload dict.
    """
    payload: dict[str, Any] = {
        "url": candidate.url,
        "method": candidate.method,
        "status": candidate.status,
        "resourceType": candidate.resource_type,
    }

    if candidate.request_body:
        request_body = _parse_maybe_json(candidate.request_body)
        if isinstance(request_body, str):
            request_body = redact_text(request_body)
        payload["request"] = {"body": sanitizer(request_body)}

    body = candidate.body
    if capture_body and body is not None and body != "":
        if isinstance(body, str):
            body = _parse_maybe_json(body)
        body = sanitizer(body)
        if isinstance(body, str):
            body = redact_text(body)
            serialized = body
        else:
            serialized = json.dumps(body, ensure_ascii=False, default=str)
        if len(serialized.encode("utf-8")) > snippet_limit:
            body = truncate_bytes(serialized, snippet_limit)
        payload["response"] = {"body": body}

    return payload
