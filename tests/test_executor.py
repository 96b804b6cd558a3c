import threading

import pytest

from wat.cancel import CancelScope, Cancelled, DeadlineExceeded
from wat.commands import WatCommand
from wat.executor import run_cmd_and_log


def test_success_and_failure(tmp_path):
    ok = run_cmd_and_log(CancelScope(), tmp_path, WatCommand(command="true"))
    bad = run_cmd_and_log(CancelScope(), tmp_path, WatCommand(command="exit 3"))

    assert ok.command == "true"
    assert ok.success
    assert ok.duration >= 0
    assert not bad.success


def test_runs_in_workspace_root(tmp_path):
    (tmp_path / "marker").write_text("")

    log = run_cmd_and_log(CancelScope(), tmp_path, WatCommand(command="test -f marker"))

    assert log.success


def test_cancelled_scope_does_not_start_command(tmp_path):
    scope = CancelScope()
    scope.cancel()

    with pytest.raises(Cancelled):
        run_cmd_and_log(scope, tmp_path, WatCommand(command="touch started"))

    assert not (tmp_path / "started").exists()


def test_command_timeout_is_a_failure(tmp_path):
    log = run_cmd_and_log(CancelScope(), tmp_path, WatCommand(command="sleep 5"), timeout=0.2)

    assert not log.success
    assert log.duration < 5


def test_scope_deadline_raises(tmp_path):
    with pytest.raises(DeadlineExceeded):
        run_cmd_and_log(CancelScope(timeout=0.2), tmp_path, WatCommand(command="sleep 5"), timeout=60)


def test_cancellation_does_not_interrupt_running_command(tmp_path):
    scope = CancelScope()
    cmd = WatCommand(command="sleep 0.3 && touch finished")

    threading.Timer(0.05, scope.cancel).start()
    log = run_cmd_and_log(scope, tmp_path, cmd)

    assert log.success
    assert (tmp_path / "finished").exists()
