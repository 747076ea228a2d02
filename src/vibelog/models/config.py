"""Recorder configuration model for vibelog.

Captures vibelog.yaml fields with sensible defaults for
recording, filtering, and logging settings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

CONFIG_FILENAME = "vibelog.yaml"
DEFAULT_OUTPUT_DIR = "captures"


class RecorderConfig(BaseModel):
    """Project-level configuration loaded from vibelog.yaml."""

    model_config = {"extra": "forbid"}

    output_dir: str = DEFAULT_OUTPUT_DIR
    trace_stop_timeout: float = Field(default=5.0, gt=0)
    response_snippet_limit: int = Field(default=1024, ge=1)
    console_mode: Literal["timeline", "separate"] = "timeline"
    console_ignore_substrings: list[str] = Field(
        default_factory=lambda: ["Vibe Logger", "---"]
    )
    clean_snapshots: bool = True
    navigation_snapshot_delay: float = Field(default=0.5, ge=0)
    queue_maxsize: int = Field(default=1000, ge=1)
    extra_sensitive_keys: list[str] = Field(default_factory=list)
    extra_blocked_domains: list[str] = Field(default_factory=list)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_json: bool = False

    def resolve_output_dir(self, project_root: Path) -> Path:
        """Absolute capture directory for this project."""
        output = Path(self.output_dir)
        if output.is_absolute():
            return output
        return project_root / output


def _is_project_root(directory: Path) -> bool:
    return (directory / CONFIG_FILENAME).is_file() or (directory / DEFAULT_OUTPUT_DIR).is_dir()


def find_project_root(start: Path | None = None) -> Path:
    """Nearest directory at or above start holding vibelog.yaml or captures/.

    Falls back to the current directory when no ancestor qualifies.
    """
    origin = (start or Path.cwd()).resolve()
    if origin.is_file():
        origin = origin.parent
    return next(
        (d for d in (origin, *origin.parents) if _is_project_root(d)),
        Path.cwd(),
    )


def load_recorder_config(project_root: Path | None = None) -> RecorderConfig:
    """Read vibelog.yaml from the project root.

    A missing or empty file yields the defaults.

    Raises:
        pydantic.ValidationError: If the file holds unknown keys or bad values.
    """
    config_path = (project_root or find_project_root()) / CONFIG_FILENAME
    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raw = None
    return RecorderConfig.model_validate(raw or {})
