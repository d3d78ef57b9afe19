"""
Shared fixtures: isolate every test from the user's config and environment.
"""

import pytest

import latex_edit.config as config_module


ENV_VARS = [
    "LATEX_EDIT_HISTORY_LIMIT",
    "LATEX_EDIT_ESCAPE_HTML",
    "LATEX_EDIT_WRAP_WITH_MATH",
    "LATEX_EDIT_LOG_LEVEL",
    "LATEX_EDIT_CONFIG",
]


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point HOME at a temp dir and reset the global config manager."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setattr(config_module, "_config_manager", None)
    yield tmp_path
