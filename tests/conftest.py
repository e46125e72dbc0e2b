from __future__ import annotations

import os
from pathlib import Path

import pytest

_BARE_ENV_NAMES = {"API_KEY", "BASE_URL", "MODEL", "PORT"}


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in list(os.environ):
        upper = name.upper()
        if upper.startswith("LUACHAT_") or upper in _BARE_ENV_NAMES:
            monkeypatch.delenv(name, raising=False)
    # Keeps a developer's .env out of the settings under test.
    monkeypatch.chdir(tmp_path)
