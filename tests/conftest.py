from __future__ import annotations

import pytest

from tests.helpers.fake_loco import BASE_URL, FakeLoco


@pytest.fixture(autouse=True)
def loco_env(monkeypatch, tmp_path):
    """Hermetic settings for every test: fixed key, fake base URL, temp telemetry."""
    monkeypatch.setenv("LOCALISE_API_KEY", "test-key")
    monkeypatch.setenv("LOCO_API_BASE", BASE_URL)
    monkeypatch.setenv("LOCO_TELEMETRY_DIR", str(tmp_path / "telemetry"))
    monkeypatch.delenv("LOCO_HTTP_TIMEOUT", raising=False)
    monkeypatch.delenv("LOCO_DISABLE_TELEMETRY", raising=False)


@pytest.fixture(autouse=True)
def no_network(monkeypatch):
    def _blocked(*args, **kwargs):
        raise AssertionError("unexpected network call; use the `loco` fixture")

    monkeypatch.setattr("requests.request", _blocked)


@pytest.fixture
def loco(monkeypatch) -> FakeLoco:
    """Route LocoClient traffic to an in-memory fake Loco project."""
    fake = FakeLoco()
    monkeypatch.setattr("requests.request", fake)
    return fake
