"""Fixtures compartilhadas: devices de exemplo, sessão falsa e ambiente limpo."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from config import ENV_VARS, Settings
from etl.credentials import generate_key
from etl.logs import close_logging
from etl.models import ManagedDevice


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    close_logging()


@pytest.fixture
def clean_env(monkeypatch):
    for var in ENV_VARS.values():
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


@pytest.fixture
def raw_devices() -> list[dict]:
    return [
        {"deviceName": "PC1", "id": "1", "model": "X1", "lastSyncDateTime": "2024-01-01T00:00:00Z"},
        {"deviceName": None, "id": "2", "model": "X2", "lastSyncDateTime": "2024-01-02T00:00:00Z"},
    ]


@pytest.fixture
def devices(raw_devices) -> list[ManagedDevice]:
    return [ManagedDevice.from_graph(raw) for raw in raw_devices]


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        tenant_id="t1",
        credential_path=Path("creds.xml"),
        log_path=tmp_path / "run.log",
        output_directory=tmp_path / "out",
    )


@pytest.fixture
def fake_session(raw_devices) -> MagicMock:
    """GraphSession falsa: connect() devolve uma api que lista raw_devices."""
    session = MagicMock()
    session.connect.return_value.get_managed_devices.return_value = raw_devices
    return session


@pytest.fixture
def fernet_key() -> str:
    return generate_key()
