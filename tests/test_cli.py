from unittest.mock import patch

import pytest
from fastapi import FastAPI

from chatroom import config
from chatroom.cli import serve


@pytest.fixture(autouse=True)
def _isolated_overrides(monkeypatch):
    monkeypatch.setattr(config, "_runtime_overrides", {})
    for key in ("LONG_POLLING_TIMEOUT", "LOG_LEVEL", "HOST", "PORT"):
        monkeypatch.delenv(key, raising=False)
    config.refresh_settings()


def test_parse_args_maps_flags() -> None:
    args = serve._parse_args(["--port", "9000", "--long-polling-timeout", "5", "--waiter-conflict-policy", "reject"])
    assert args.port == 9000
    assert args.long_polling_timeout_seconds == 5.0
    assert args.waiter_conflict_policy == "reject"
    assert args.host is None


def test_parse_args_rejects_unknown_policy() -> None:
    with pytest.raises(SystemExit):
        serve._parse_args(["--waiter-conflict-policy", "sometimes"])


def test_main_applies_overrides_and_runs_uvicorn() -> None:
    with patch.object(serve, "setup_logging") as mock_logging, patch.object(serve.uvicorn, "run") as mock_run:
        assert serve.main(["--host", "0.0.0.0", "--port", "9000", "--long-polling-timeout", "2"]) == 0

    mock_logging.assert_called_once_with(None, level="INFO", stderr_level="INFO")
    (app,), kwargs = mock_run.call_args
    assert isinstance(app, FastAPI)
    assert kwargs["host"] == "0.0.0.0"
    assert kwargs["port"] == 9000
    assert app.state.registry.timeout == 2.0


def test_main_keeps_stderr_quiet_when_logging_to_a_file(tmp_path) -> None:
    with patch.object(serve, "setup_logging") as mock_logging, patch.object(serve.uvicorn, "run"):
        serve.main(["--log-dir", str(tmp_path), "--log-level", "debug"])

    mock_logging.assert_called_once_with(tmp_path, level="DEBUG", stderr_level="WARNING")
