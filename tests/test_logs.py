import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from wat.logs import (
    CMD_LOG_FILE,
    CommandLog,
    CommandLogGroup,
    LogContext,
    LogSource,
    dump_cmd_log_groups,
    read_cmd_log_groups,
    write_cmd_log_groups,
)


def make_group():
    group = CommandLogGroup(
        logs=[],
        context=LogContext(
            recent_edits=frozenset({"pkg/a.go"}),
            start_time=datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc),
            source=LogSource.FUZZ,
        ),
    )
    group.add(CommandLog(command="go test ./pkg", success=False, duration=2.25))
    return group


def test_log_source_is_closed():
    assert [s.name for s in LogSource] == ["USER", "BOOTSTRAP", "FUZZ", "TRAIN_INIT"]
    with pytest.raises(ValidationError):
        LogContext(start_time=datetime.now(timezone.utc), source=7)


def test_context_and_logs_are_immutable():
    group = make_group()

    with pytest.raises(ValidationError):
        group.context.source = LogSource.USER
    with pytest.raises(ValidationError):
        group.logs[0].success = True


def test_dump_is_indented_json():
    doc = json.loads(dump_cmd_log_groups([make_group()]))

    assert doc == [{
        "logs": [{"command": "go test ./pkg", "success": False, "duration": 2.25}],
        "context": {
            "recent_edits": ["pkg/a.go"],
            "start_time": "2024-05-01T12:30:00Z",
            "source": 3,
        },
    }]
    assert '\n  {' in dump_cmd_log_groups([make_group()])


def test_write_then_read(ws):
    write_cmd_log_groups(ws, [make_group()])

    assert read_cmd_log_groups(ws) == [make_group()]
    assert [p.name for p in ws.wat_dir.iterdir()] == [CMD_LOG_FILE]


def test_write_replaces_previous_artifact(ws):
    write_cmd_log_groups(ws, [make_group(), make_group()])
    write_cmd_log_groups(ws, [])

    assert read_cmd_log_groups(ws) == []
