"""Test configuration and shared fixtures."""

import os

import pytest
import yaml

from frontdoor.sdk import configuration as sdk_configuration
from frontdoor.sdk import metrics as sdk_metrics
from frontdoor.sdk import runtime


@pytest.fixture(autouse=True)
def _isolated_runtime(tmp_path, monkeypatch):
    """Run every test from an empty directory with default runtime flags."""

    for key in list(os.environ):
        if key.startswith("FRONTDOOR_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    sdk_configuration.pin_config_file(None)
    runtime.reload()
    sdk_metrics.reset_metrics()
    yield
    # Leave tmp_path before reloading; a test may have left a broken config there.
    sdk_configuration.pin_config_file(None)
    monkeypatch.undo()
    runtime.reload()


@pytest.fixture
def configure_sdk(tmp_path, monkeypatch):
    def _apply(data: dict, *, filename: str = "frontdoor.yml") -> str:
        cfg_path = tmp_path / filename
        cfg_path.write_text(yaml.safe_dump(data))
        monkeypatch.chdir(tmp_path)
        runtime.reload()
        return str(cfg_path)

    yield _apply
