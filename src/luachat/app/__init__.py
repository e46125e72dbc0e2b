"""HTTP application and startup wiring."""

from luachat.app.bootstrap import build_relay_context
from luachat.app.server import create_app, run_server

__all__ = ["build_relay_context", "create_app", "run_server"]
