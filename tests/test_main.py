"""Tests for the process entry point."""
from unittest.mock import MagicMock, patch

import pytest
import yaml

from promforward.main import main


def test_bad_config_exits_with_status_1(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--config", "/nonexistent/forwarder.yaml"])

    assert excinfo.value.code == 1
    assert "Error loading configuration" in capsys.readouterr().err


def test_unexpected_config_error_exits_with_status_1(capsys):
    with patch("promforward.main.load_config", side_effect=TypeError("bad section")):
        with pytest.raises(SystemExit) as excinfo:
            main([])

    assert excinfo.value.code == 1
    assert "bad section" in capsys.readouterr().err


def test_runs_scheduler_in_foreground_without_control_api(tmp_path):
    path = tmp_path / "forwarder.yaml"
    path.write_text(yaml.safe_dump({
        "control_api": {"enabled": False},
        "remote_write": {"url": "prom.example.net/push", "user": "u", "key": "k"},
    }))
    scheduler = MagicMock()

    with patch("promforward.main.ForwarderScheduler") as scheduler_cls, \
            patch("promforward.main.signal.signal") as install_handler, \
            patch("promforward.main.ControlAPI") as control_api_cls:
        scheduler_cls.from_config.return_value = scheduler
        main(["--config", str(path)])

    scheduler.run.assert_called_once_with()
    control_api_cls.assert_not_called()
    assert install_handler.call_count == 2

    # the installed handler stops the loop
    handler = install_handler.call_args.args[1]
    handler(15, None)
    scheduler.stop.assert_called_once_with()
