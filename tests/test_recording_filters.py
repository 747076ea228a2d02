"""Tests for vibelog.recording.filters - noise filter chain and payloads."""

from __future__ import annotations

import json

import pytest

from vibelog.models.timeline import NetworkCandidate
from vibelog.recording.filters import (
    BLOCKED_DOMAINS,
    TRUNCATION_SUFFIX,
    NoiseFilter,
    build_network_payload,
    truncate_bytes,
    url_extension,
)
from vibelog.recording.redaction import REDACTED_PLACEHOLDER


def _candidate(**overrides) -> NetworkCandidate:
    fields = {
        "url": "https://app.example.com/api/items",
        "method": "GET",
        "status": 200,
        "resource_type": "fetch",
        "content_type": "application/json",
    }
    fields.update(overrides)
    return NetworkCandidate(**fields)


class TestFilterStages:
    """Each stage drops what it should and reports why."""

    def test_api_call_kept(self):
        decision = NoiseFilter().evaluate(_candidate())
        assert decision.keep is True
        assert decision.reason is None
        assert decision.notify is True
        assert decision.capture_body is True

    @pytest.mark.parametrize("resource_type", ["image", "font", "media", "stylesheet", "Image"])
    def test_dropped_resource_types(self, resource_type):
        decision = NoiseFilter().evaluate(
            _candidate(resource_type=resource_type, url="https://app.example.com/x")
        )
        assert decision.keep is False
        assert decision.reason == "resource_type"

    @pytest.mark.parametrize(
        "url",
        [
            "https://cdn.example.com/logo.PNG",
            "https://cdn.example.com/app.css?v=3",
            "https://cdn.example.com/font.woff2#x",
            "https://cdn.example.com/clip.mp4",
        ],
    )
    def test_static_extensions_dropped(self, url):
        decision = NoiseFilter().evaluate(_candidate(url=url, resource_type="other"))
        assert decision.keep is False
        assert decision.reason == "static_asset"

    def test_extension_in_query_only_is_kept(self):
        """Only the URL path decides the extension."""
        decision = NoiseFilter().evaluate(_candidate(url="https://x.com/api?file=a.png"))
        assert decision.keep is True

    def test_successful_script_dropped(self):
        decision = NoiseFilter().evaluate(
            _candidate(url="https://x.com/bundle", resource_type="script", status=200)
        )
        assert decision.keep is False
        assert decision.reason == "script_ok"

    def test_failed_script_kept(self):
        decision = NoiseFilter().evaluate(
            _candidate(url="https://x.com/bundle", resource_type="script", status=404)
        )
        assert decision.keep is True
        assert decision.notify is False

    def test_document_notifies(self):
        decision = NoiseFilter().evaluate(
            _candidate(resource_type="document", content_type="text/html")
        )
        assert decision.keep is True
        assert decision.notify is True
        assert decision.capture_body is False

    def test_stage_order_blocklist_first(self):
        """A blocked analytics image reports the blocklist, not the resource type."""
        decision = NoiseFilter().evaluate(
            _candidate(url="https://www.google-analytics.com/collect.gif", resource_type="image")
        )
        assert decision.reason == "blocked_domain"


class TestBlocklistSoundness:
    """Blocklisted URLs are dropped regardless of status or resource type."""

    @pytest.mark.parametrize("domain", BLOCKED_DOMAINS)
    @pytest.mark.parametrize("status", [200, 404, 500])
    @pytest.mark.parametrize("resource_type", ["xhr", "fetch", "document", "script", "other"])
    def test_blocked(self, domain, status, resource_type):
        decision = NoiseFilter().evaluate(
            _candidate(
                url=f"https://{domain}/track?id=1",
                status=status,
                resource_type=resource_type,
            )
        )
        assert decision.keep is False
        assert decision.reason == "blocked_domain"

    def test_extra_blocked_domains(self):
        nf = NoiseFilter(extra_blocked_domains=["telemetry.internal"])
        assert nf.evaluate(_candidate(url="https://telemetry.internal/v1")).keep is False
        assert nf.evaluate(_candidate()).keep is True


class TestUrlExtension:
    def test_plain(self):
        assert url_extension("https://a.com/x/y.JS") == ".js"

    def test_no_extension(self):
        assert url_extension("https://a.com/api/users") == ""

    def test_malformed_url(self):
        assert url_extension("http://[::1") == ""


class TestTruncateBytes:
    def test_within_limit(self):
        assert truncate_bytes("short", 10) == "short"

    def test_exceeds_limit(self):
        result = truncate_bytes("a" * 2000, 1024)
        assert result == "a" * 1024 + TRUNCATION_SUFFIX

    def test_multibyte_not_split(self):
        """Truncation never leaves half a character behind."""
        result = truncate_bytes("é" * 10, 5)  # 2 bytes each
        assert result == "éé" + TRUNCATION_SUFFIX


class TestBuildNetworkPayload:
    """Test NETWORK_REQUEST payload construction."""

    def test_basic_fields(self):
        payload = build_network_payload(_candidate(method="POST", status=201), capture_body=False)
        assert payload == {
            "url": "https://app.example.com/api/items",
            "method": "POST",
            "status": 201,
            "resourceType": "fetch",
        }

    def test_json_body_kept_structured_and_redacted(self):
        candidate = _candidate(body={"user": "ada", "token": "abc"})
        payload = build_network_payload(candidate, capture_body=True)
        assert payload["response"]["body"] == {"user": "ada", "token": REDACTED_PLACEHOLDER}

    def test_json_text_body_parsed(self):
        candidate = _candidate(body='{"ok": true}')
        payload = build_network_payload(candidate, capture_body=True)
        assert payload["response"]["body"] == {"ok": True}

    def test_large_body_truncated_to_snippet(self):
        candidate = _candidate(body={"items": ["x" * 100 for _ in range(50)]})
        payload = build_network_payload(candidate, capture_body=True, snippet_limit=1024)
        body = payload["response"]["body"]
        assert isinstance(body, str)
        assert body.endswith(TRUNCATION_SUFFIX)
        assert len(body.removesuffix(TRUNCATION_SUFFIX).encode("utf-8")) == 1024

    def test_large_body_redacted_before_truncation(self):
        candidate = _candidate(body={"password": "hunter2", "filler": "y" * 2000})
        body = build_network_payload(candidate, capture_body=True)["response"]["body"]
        assert "hunter2" not in body
        assert REDACTED_PLACEHOLDER in body

    def test_body_skipped_without_capture(self):
        payload = build_network_payload(_candidate(body={"a": 1}), capture_body=False)
        assert "response" not in payload

    def test_empty_body_skipped(self):
        payload = build_network_payload(_candidate(body=""), capture_body=True)
        assert "response" not in payload

    def test_request_body_json(self):
        candidate = _candidate(request_body=json.dumps({"email": "a@b.c", "password": "pw"}))
        payload = build_network_payload(candidate, capture_body=False)
        assert payload["request"]["body"] == {"email": "a@b.c", "password": REDACTED_PLACEHOLDER}

    def test_request_body_form_text_redacted(self):
        candidate = _candidate(request_body="email=a%40b.c&password=pw123")
        payload = build_network_payload(candidate, capture_body=False)
        assert "pw123" not in payload["request"]["body"]


class TestNetworkCandidate:
    @pytest.mark.parametrize(
        "content_type, expected",
        [
            ("application/json", True),
            ("application/json; charset=utf-8", True),
            ("application/problem+json", True),
            ("text/html", False),
            (None, False),
        ],
    )
    def test_is_json(self, content_type, expected):
        assert _candidate(content_type=content_type).is_json is expected
