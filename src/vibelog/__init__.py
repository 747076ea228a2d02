"""vibelog - browser session telemetry reduced to a compact timeline."""

__version__ = "0.2.0"
