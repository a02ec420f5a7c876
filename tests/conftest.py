from __future__ import annotations

from pathlib import Path

import pytest

_RETRYWISE_ENV = (
    "RETRYWISE_MAX_RETRIES",
    "RETRYWISE_BASE_DELAY_SECONDS",
    "RETRYWISE_BACKOFF_MULTIPLIER",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _RETRYWISE_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.hookimpl(trylast=True)
def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    del config
    for item in items:
        path = Path(str(getattr(item, "path", item.fspath)))
        if "integration" in path.parts:
            item.add_marker(pytest.mark.integration)
            item.add_marker(pytest.mark.slow)
