from __future__ import annotations

import logging
import textwrap
from pathlib import Path

import pytest

from taghub.cli.args import parse_args
from taghub.cli.main import main


@pytest.fixture(autouse=True)
def _drop_console_handler():
    yield
    root = logging.getLogger()
    for h in list(root.handlers):
        if getattr(h, "_taghub_console", False):
            root.removeHandler(h)


def _config(tmp_path: Path, extra: str = "") -> Path:
    path = tmp_path / "fleet.yml"
    path.write_text(
        textwrap.dedent(
            """
            hub_name: my-hub
            tx_interval_ms: 100
            driver: simulated
            driver_params:
              reading_interval_s: 0.02
              seed: 1
            channels:
              gyroscope: true
            devices:
              - id: b0b448c98a01
                name: lab-tag
                key: c2VjcmV0LWtleQ==
            """
        ).lstrip()
        + extra,
        encoding="utf-8",
    )
    return path


def test_channels_command_lists_flags(tmp_path: Path, capsys) -> None:
    rc = main(["channels", "--config", str(_config(tmp_path))])
    out = capsys.readouterr().out

    assert rc == 0
    assert "ON  gyroscope" in out
    assert "off ir_temperature" in out
    assert "[only: cc2650]" in out
    assert "15 min" in out


def test_devices_command_masks_keys(tmp_path: Path, capsys) -> None:
    rc = main(["devices", "--config", str(_config(tmp_path))])
    out = capsys.readouterr().out

    assert rc == 0
    assert "Hub:       my-hub.azure-devices.net" in out
    assert "name=lab-tag" in out
    assert "key=c2Vj...eQ==" in out
    assert "c2VjcmV0LWtleQ==" not in out


def test_missing_config_returns_error(tmp_path: Path, capsys) -> None:
    rc = main(["devices", "--config", str(tmp_path / "nope.yml")])
    out = capsys.readouterr().out

    assert rc == 1
    assert out.startswith("ERROR:")
    assert "Hint:" in out


def test_unknown_driver_returns_error(tmp_path: Path, capsys) -> None:
    path = _config(tmp_path)
    path.write_text(path.read_text(encoding="utf-8").replace("driver: simulated", "driver: bluez"), encoding="utf-8")

    rc = main(["run", "--config", str(path), "--dry-run", "--secs", "0.1"])
    assert rc == 1
    assert "bluez" in capsys.readouterr().out


def test_secs_must_be_positive() -> None:
    with pytest.raises(SystemExit):
        parse_args(["run", "--secs", "0"])


def test_dry_run_prints_payloads(tmp_path: Path, capsys) -> None:
    rc = main(["run", "--config", str(_config(tmp_path)), "--dry-run", "--secs", "1.0", "--status-every", "0"])
    out = capsys.readouterr().out

    assert rc == 0
    assert "(dry run)" in out
    assert "EVENT lab-tag -> {" in out
    assert '"DeviceId": "lab-tag"' in out
    assert "state=active" in out
