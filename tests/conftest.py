# ruff: noqa: E402

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import batchpatch.log as batchpatch_log


@pytest.fixture(autouse=True)
def _quiet_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("BATCHPATCH_LOG_LEVEL", raising=False)
    monkeypatch.delenv("SSH_KEY", raising=False)
    monkeypatch.setattr(batchpatch_log, "_configured_level", None)
    monkeypatch.setattr(batchpatch_log, "_no_color", True)
