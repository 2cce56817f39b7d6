import pytest

from bear_mcp.config import Settings, get_settings


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(monkeypatch) -> Settings:
    monkeypatch.delenv("BEAR_TOKEN", raising=False)
    return Settings(
        _env_file=None,
        callback_timeout=2.0,
        callback_host="127.0.0.1",
        bind_host="127.0.0.1",
    )


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
