"""Recording subpackage: redaction, noise filtering, and session lifecycle.

Only the dependency-free leaf modules are re-exported here; import
SessionManager from vibelog.recording.session and EventPump from
vibelog.recording.ingest.
"""

from vibelog.recording.filters import FilterDecision, NoiseFilter, build_network_payload
from vibelog.recording.redaction import (
    REDACTED_PLACEHOLDER,
    SENSITIVE_KEYS,
    build_sanitizer,
    sanitize,
)

__all__ = [
    "REDACTED_PLACEHOLDER",
    "SENSITIVE_KEYS",
    "FilterDecision",
    "NoiseFilter",
    "build_network_payload",
    "build_sanitizer",
    "sanitize",
]
