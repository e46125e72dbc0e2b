"""luachat - stream model replies over WebSocket and run their Lua in a sandbox."""

from luachat.core import ExecutionResult, LuaSandbox
from luachat.core.relay import RelayContext, RelaySession
from luachat.transcript import Role, Turn, get_codec

__version__ = "0.1.0"

__all__ = ["ExecutionResult", "LuaSandbox", "RelayContext", "RelaySession", "Role", "Turn", "get_codec"]
