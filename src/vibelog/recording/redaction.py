"""Key-based redaction for timeline payloads.

Every payload is passed through a sanitizer before it reaches the
timeline buffer. Values stored under keys that look sensitive
(passwords, tokens, API keys) are replaced by a fixed marker while the
surrounding structure is preserved.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any

# Lower-cased substrings that mark a key as sensitive.
SENSITIVE_KEYS: tuple[str, ...] = (
    "password",
    "token",
    "auth",
    "secret",
    "key",
    "credential",
    "authorization",
    "apikey",
    "api_key",
)

REDACTED_PLACEHOLDER = "***REDACTED***"
CIRCULAR_PLACEHOLDER = "[Circular]"
DEPTH_PLACEHOLDER = "[MaxDepth]"

# Containers nested deeper than this are replaced by DEPTH_PLACEHOLDER.
MAX_DEPTH = 100


def is_sensitive_key(key: Any, sensitive: Iterable[str] = SENSITIVE_KEYS) -> bool:
    """Check whether a record key names a sensitive value."""
    lowered = str(key).lower()
    return any(fragment in lowered for fragment in sensitive)


def _sanitize(value: Any, sensitive: tuple[str, ...], ancestors: set[int]) -> Any:
    is_mapping = isinstance(value, Mapping)
    if not is_mapping and not isinstance(value, (list, tuple)):
        # None, str, int, float, bool and anything opaque pass through
        return value
    if id(value) in ancestors:
        return CIRCULAR_PLACEHOLDER
    if len(ancestors) >= MAX_DEPTH:
        return DEPTH_PLACEHOLDER

    ancestors.add(id(value))
    try:
        if not is_mapping:
            return [_sanitize(item, sensitive, ancestors) for item in value]
        sanitized: dict[Any, Any] = {}
        for key, item in value.items():
            if item is not None and is_sensitive_key(key, sensitive):
                sanitized[key] = REDACTED_PLACEHOLDER
            else:
                sanitized[key] = _sanitize(item, sensitive, ancestors)
        return sanitized
    finally:
        ancestors.discard(id(value))


def sanitize(value: Any) -> Any:
    """Mask sensitive fields in an arbitrary JSON-like value.

    Scalars are returned unchanged. Sequences are mapped element-wise.
    Mappings are rebuilt: a non-null value whose lower-cased key contains
    any of SENSITIVE_KEYS becomes REDACTED_PLACEHOLDER, everything else
    is sanitized recursively. A container that contains itself is
    replaced by CIRCULAR_PLACEHOLDER at the point of recursion, and a
    container nested more than MAX_DEPTH levels deep by DEPTH_PLACEHOLDER.

    The input is never mutated, and sanitizing an already-sanitized
    value returns an equal value.

    Args:
        value: Any JSON-like structure (dicts, lists, scalars).

    Returns:
        A sanitized copy of the value.
    """
    return _sanitize(value, SENSITIVE_KEYS, set())


def build_sanitizer(extra_keys: list[str] | None = None) -> Callable[[Any], Any]:
    """Build a sanitizer combining the built-in and extra sensitive keys.

    Extra keys extend (never replace) SENSITIVE_KEYS and are matched
    case-insensitively as substrings, like the built-in set.

    Args:
        extra_keys: Optional additional key fragments to treat as sensitive.

    Returns:
        A function with the same contract as sanitize().
    """
    if not extra_keys:
        return sanitize

    combined = SENSITIVE_KEYS + tuple(
        key.lower() for key in extra_keys if key and key.lower() not in SENSITIVE_KEYS
    )

    def sanitize_with_extras(value: Any) -> Any:
        return _sanitize(value, combined, set())

    return sanitize_with_extras


# Secret formats that can hide inside free text (raw form posts, text
# bodies). Applied only to text payloads, never to sanitize() strings.
TEXT_REDACTION_PATTERNS: list[str] = [
    r"(?i)bearer\s+[a-zA-Z0-9._-]+",  # Bearer tokens (before general auth pattern)
    r"(?i)(api[_-]?key|secret|password|passwd|token|authorization)\s*[:=]\s*[^\s&]+",
    r"(?i)cookie:\s*\S+",
    r"sk-[a-zA-Z0-9-]{20,}",  # Provider API key values
    r"ghp_[a-zA-Z0-9]{36}",  # GitHub PATs
]

_COMPILED_TEXT_PATTERNS: list[re.Pattern[str]] = [
    re.compile(p) for p in TEXT_REDACTION_PATTERNS
]


def redact_text(content: str) -> str:
    """Replace secret patterns in free text with REDACTED_PLACEHOLDER.

    Args:
        content: The string to redact.

    Returns:
        Content with matching secret patterns replaced.
    """
    for pattern in _COMPILED_TEXT_PATTERNS:
        content = pattern.sub(REDACTED_PLACEHOLDER, content)
    return content
