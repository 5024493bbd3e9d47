from __future__ import annotations

import os

import pytest

ENV_PREFIXES = ("METASYNC_", "SHOPIFY_")


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep shop credentials and sync settings of the developer's shell out of tests."""

    for name in list(os.environ):
        if name.startswith(ENV_PREFIXES):
            monkeypatch.delenv(name)
