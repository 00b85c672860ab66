"""HTTP server: application factory, lifecycle and signal handling."""

from cliprelay.server.app import create_app
from cliprelay.server.lifecycle import ServerLifecycle

__all__ = ["ServerLifecycle", "create_app"]
