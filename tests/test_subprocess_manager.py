import logging
import sys
import threading
import time

import pytest

from devmode import subprocess_manager as sm


@pytest.mark.unit
def test_run_sync_captures_output_and_status(tmp_path):
    ok = sm.run_subprocess_sync([sys.executable, "-c", "import os; print(os.getcwd())"], cwd=str(tmp_path))
    assert ok["ok"] is True
    assert ok["stdout"].strip() == str(tmp_path)

    bad = sm.run_subprocess_sync([sys.executable, "-c", "import sys; sys.stderr.write('nope'); sys.exit(3)"])
    assert bad["ok"] is False
    assert bad["code"] == 3
    assert bad["stderr"] == "nope"


@pytest.mark.unit
def test_missing_binary_is_reported_not_raised():
    result = sm.run_subprocess_sync(["definitely-not-a-real-binary-xyz"])
    assert result["ok"] is False
    assert result["code"] == -2


@pytest.mark.unit
def test_timeout_kills_process():
    result = sm.run_subprocess_sync([sys.executable, "-c", "import time; time.sleep(10)"], timeout=0.2)
    assert result["ok"] is False
    assert result["code"] == -1
    assert sm.get_active_processes() == {}


@pytest.mark.unit
def test_cleanup_all_processes_terminates_running_builds():
    results = []
    t = threading.Thread(
        target=lambda: results.append(
            sm.run_subprocess_sync([sys.executable, "-c", "import time; time.sleep(30)"])
        ),
        daemon=True,
    )
    t.start()
    deadline = time.time() + 5
    while not sm.get_active_processes() and time.time() < deadline:
        time.sleep(0.05)

    assert sm.cleanup_all_processes() == 1
    t.join(10)
    assert results and results[0]["ok"] is False


@pytest.mark.unit
def test_bad_default_timeout_is_logged(monkeypatch, caplog):
    monkeypatch.setenv("SUBPROCESS_DEFAULT_TIMEOUT", "ten minutes")
    with caplog.at_level(logging.WARNING, logger="devmode"):
        assert sm._default_timeout() == 600.0
    assert any("SUBPROCESS_DEFAULT_TIMEOUT" in m for m in caplog.messages)

    monkeypatch.setenv("SUBPROCESS_DEFAULT_TIMEOUT", "30")
    assert sm._default_timeout() == 30.0
