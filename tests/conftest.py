from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from foundry_relay.config import ProviderConfig  # noqa: E402

from tests.fixtures import openai_fake  # noqa: E402


@pytest.fixture(autouse=True)
def clear_foundry_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep ``FOUNDRY_*`` variables from the developer shell out of tests."""

    for name in list(os.environ):
        if name.startswith("FOUNDRY_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def api_key_config() -> ProviderConfig:
    return ProviderConfig(endpoint=openai_fake.ENDPOINT, api_key="test-key", deployment_id="gpt-4o")


@pytest.fixture
def identity_config() -> ProviderConfig:
    return ProviderConfig(endpoint=openai_fake.ENDPOINT, use_identity=True, deployment_id="gpt-4o")
