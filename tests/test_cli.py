"""
Tests for the betty CLI: parser wiring and the history viewer.
"""

import json

import pytest

from betty import __version__
from betty.cli import build_parser, cmd_history, main


@pytest.fixture
def history_file(tmp_path):
    f = tmp_path / "conversation-history.jsonl"
    lines = [
        {"role": "user", "content": "add milk", "timestamp": "2025-03-15T09:00:00+00:00"},
        {"role": "assistant", "content": "Added milk.", "timestamp": "2025-03-15T09:00:02+00:00"},
        "not json",
        {"role": "user", "content": "thanks", "timestamp": "2025-03-15T09:01:00+00:00"},
    ]
    f.write_text("\n".join(line if isinstance(line, str) else json.dumps(line) for line in lines) + "\n")
    return f


def test_aliases_resolve_to_same_command():
    parser = build_parser()
    for name in ("history", "log", "tail"):
        args = parser.parse_args([name])
        assert args.func is cmd_history
    assert parser.parse_args(["serve"]).func is parser.parse_args(["run"]).func


def test_version(capsys):
    with pytest.raises(SystemExit):
        main(["--version"])
    assert __version__ in capsys.readouterr().out


def test_history_raw_last(history_file, capsys):
    main(["history", "--file", str(history_file), "--raw", "--last", "2"])
    out = capsys.readouterr().out.splitlines()
    assert [json.loads(line)["content"] for line in out] == ["Added milk.", "thanks"]


def test_history_role_filter(history_file, capsys):
    main(["log", "-f", str(history_file), "--raw", "--role", "user"])
    out = capsys.readouterr().out.splitlines()
    assert [json.loads(line)["content"] for line in out] == ["add milk", "thanks"]


def test_history_formatted(history_file, capsys):
    main(["history", "--file", str(history_file)])
    out = capsys.readouterr().out
    assert "2025-03-15 09:00:02" in out
    assert "ASSISTANT" in out
    assert "Added milk." in out


def test_history_missing_file(tmp_path, capsys):
    main(["history", "--file", str(tmp_path / "none.jsonl")])
    assert "No history found" in capsys.readouterr().out


def test_history_reads_through_store(history_file, capsys, monkeypatch):
    from betty.history import HistoryStore

    seen = []
    original = HistoryStore.records

    def spy(self):
        seen.append(self.path)
        return original(self)

    monkeypatch.setattr(HistoryStore, "records", spy)
    main(["history", "--file", str(history_file), "--raw"])

    assert seen == [history_file]
    assert len(capsys.readouterr().out.splitlines()) == 3


def test_history_skips_undecodable_line(history_file, capsys):
    with open(history_file, "ab") as f:
        f.write(b"\xff\xfe garbage\n")
        f.write(json.dumps({"role": "assistant", "content": "bye"}).encode() + b"\n")

    main(["history", "--file", str(history_file), "--raw", "--last", "1"])
    (line,) = capsys.readouterr().out.splitlines()
    assert json.loads(line)["content"] == "bye"
