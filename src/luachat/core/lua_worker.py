"""Lua execution with a single print capability.

Imports nothing but lupa and the standard library so it can also run as a
standalone worker process: it reads one JSON request from stdin and writes one
JSON result to stdout.
"""

from __future__ import annotations

import json
import sys

import lupa

TRACEBACK_MARKER = "\nstack traceback:"
LUA_OUT_OF_MEMORY = "not enough memory"
MEMORY_LIMIT_ERROR = "memory limit exceeded"

# Runs inside a fresh runtime. User code gets its own environment holding the pure
# standard libraries plus ``print``; no io, os.execute, require, load, debug or
# python bridge. pcall and coroutine are withheld so the instruction hook cannot be
# swallowed or escaped.
_BOOTSTRAP = """
function(code, limit, write)
  local select, tostring, concat = select, tostring, table.concat
  local function copy(lib)
    local out = {}
    for key, value in pairs(lib) do out[key] = value end
    return out
  end

  local env = {
    assert = assert, error = error, ipairs = ipairs, next = next, pairs = pairs,
    rawequal = rawequal, rawget = rawget, rawlen = rawlen, select = select,
    tonumber = tonumber, tostring = tostring, type = type,
    unpack = table.unpack or unpack,
    math = copy(math), string = copy(string), table = copy(table), utf8 = utf8 and copy(utf8),
    os = { time = os.time, clock = os.clock, date = os.date, difftime = os.difftime },
  }
  env.print = function(...)
    local parts = {}
    for i = 1, select("#", ...) do
      parts[i] = tostring((select(i, ...)))
    end
    write(concat(parts, "\\t"))
  end
  env._G = env

  local chunk, err = load(code, "=script", "t", env)
  if not chunk then
    error(err, 0)
  end

  debug.sethook(function()
    error("instruction limit exceeded", 2)
  end, "", limit)
  local ok, result = pcall(chunk)
  debug.sethook()
  if not ok then
    error(tostring(result), 0)
  end
end
"""


def _clean_error(message: str) -> str:
    return message.split(TRACEBACK_MARKER, 1)[0].strip()


def execute_lua(code: str, *, instruction_limit: int, memory_limit_bytes: int) -> tuple[str, str | None]:
    """Run ``code`` in a fresh runtime; returns ``(output, error)``."""

    records: list[str] = []

    def write(data: bytes) -> None:
        # encoding=None hands Lua strings over as raw bytes.
        records.append(bytes(data).decode("utf-8", errors="replace"))

    runtime = lupa.LuaRuntime(
        encoding=None,
        source_encoding="UTF-8",
        register_eval=False,
        register_builtins=False,
        unpack_returned_tuples=True,
        max_memory=memory_limit_bytes or None,
    )
    try:
        runner = runtime.eval(_BOOTSTRAP)
        runner(code.encode("utf-8"), instruction_limit, write)
    except lupa.LuaMemoryError:
        return "\n".join(records), MEMORY_LIMIT_ERROR
    except lupa.LuaError as exc:
        message = _clean_error(str(exc))
        if message.endswith(LUA_OUT_OF_MEMORY):
            # Raised inside the script and rethrown by the bootstrap as a plain error.
            return "\n".join(records), MEMORY_LIMIT_ERROR
        return "\n".join(records), message or type(exc).__name__
    return "\n".join(records), None


def main() -> None:
    request = json.load(sys.stdin)
    output, error = execute_lua(
        request["code"],
        instruction_limit=int(request["instruction_limit"]),
        memory_limit_bytes=int(request["memory_limit_bytes"]),
    )
    json.dump({"output": output, "error": error}, sys.stdout)
    sys.stdout.flush()


if __name__ == "__main__":
    main()
