import os
from unittest.mock import MagicMock, patch

import run


def test_main_passes_log_level_to_app(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    monkeypatch.setattr("sys.argv", ["run.py", "--port", "9000", "--log-level", "DEBUG"])

    with patch("run.uvicorn.run") as mock_run, \
            patch("run.configure_logging", return_value=MagicMock()) as mock_logging:
        assert run.main() == 0

    assert os.environ["LOG_LEVEL"] == "DEBUG"
    mock_logging.assert_called_once_with("DEBUG")
    assert mock_run.call_args.args == ("voice_relay.main:app",)
    assert mock_run.call_args.kwargs["port"] == 9000
    assert mock_run.call_args.kwargs["log_level"] == "debug"
