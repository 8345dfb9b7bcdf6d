"""HTTP transport for the mutating admission webhook."""

from .app import app, create_app, get_hook

__all__ = ["app", "create_app", "get_hook"]
