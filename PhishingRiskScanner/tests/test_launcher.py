import importlib.util
from pathlib import Path

import pytest

LAUNCHER_PATH = Path(__file__).resolve().parent.parent / "app" / "main.py"


@pytest.fixture
def launcher():
    spec = importlib.util.spec_from_file_location("scanner_launcher", LAUNCHER_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_run_forwards_arguments_to_cli(launcher, monkeypatch):
    seen = []
    monkeypatch.setattr(launcher, "main", lambda argv=None: seen.append(argv))

    assert launcher.run(["--history", "carol"]) == 0
    assert seen == [["--history", "carol"]]


def test_run_maps_interrupt_to_exit_status_130(launcher, monkeypatch, capsys):
    def interrupted(argv=None):
        raise KeyboardInterrupt

    monkeypatch.setattr(launcher, "main", interrupted)

    assert launcher.run([]) == 130
    assert "Scan cancelled" in capsys.readouterr().err
