"""System prompt for conversations that may call the Lua sandbox."""

from __future__ import annotations

from luachat.core.script import ScriptDelimiters

LUA_PROMPT_TEMPLATE = """If you are doing math, use a lua sandbox, which can be accessed by writing lua code in between {open} and {close}. The code will directly be loaded into a lua sandbox. Here is an example of running a math problem in a sandbox:
user: What is 8+8?
assistant: {open}
print(8+8)
{close}
tool: 16
Only use Lua when performing calculations. When using lua, make sure to enclose the lua with {open} and {close}. For non-mathematical queries, respond normally without Lua code. Always be concise."""


def render_system_prompt(delimiters: ScriptDelimiters, override: str | None = None) -> str:
    if override:
        return override
    return LUA_PROMPT_TEMPLATE.format(open=delimiters.open, close=delimiters.close)
