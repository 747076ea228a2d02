"""Session persistence (timeline buffer, snapshots, console dump)."""

from vibelog.storage.session_store import SessionStore, load_timeline

__all__ = ["SessionStore", "load_timeline"]
