from collections.abc import Generator
from typing import Any

import pytest

from eventky_lite.config_loader import ENV_OVERRIDES, Config
from eventky_lite.core.validation import get_validation_registry


@pytest.fixture
def default_config() -> Config:
    """Engine configuration with library defaults (strict COUNT mode)."""
    return Config()


@pytest.fixture
def test_timezone() -> str:
    """Return a deterministic timezone identifier for tests.

    Using a fixed timezone string avoids host-local timezone differences
    which can make datetime-sensitive tests flaky.
    """
    return "America/New_York"


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Ensure EVENTKY_* environment variables don't leak between tests.

    Tests run from a temporary working directory so a developer's
    ./eventky_lite.yaml is never picked up.
    """
    for env_key in (*ENV_OVERRIDES, "EVENTKY_CONFIG", "EVENTKY_DEBUG"):
        monkeypatch.delenv(env_key, raising=False)
    yield


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Any, monkeypatch: Any) -> None:
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def reset_validation_registry() -> Generator[None, Any, None]:
    """Reset the process-wide validation registry after each test."""
    yield
    get_validation_registry().reset()
