"""Script extraction and sandboxed execution."""

from luachat.core.sandbox import ExecutionResult, LuaSandbox
from luachat.core.script import ScriptBlock, ScriptDelimiters, dangling_close, extract_script

__all__ = [
    "ExecutionResult",
    "LuaSandbox",
    "ScriptBlock",
    "ScriptDelimiters",
    "dangling_close",
    "extract_script",
]
