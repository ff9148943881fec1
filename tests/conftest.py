# tests/conftest.py
import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtWidgets import QApplication


@pytest.fixture(autouse=True)
def isolated_state_file(tmp_path, monkeypatch):
    path = tmp_path / "state" / "prompt.yaml"
    monkeypatch.setenv("MIDJOURNEY_PROMPT_STATE", str(path))
    return path


@pytest.fixture(scope="session")
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app
