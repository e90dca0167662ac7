import subprocess
from datetime import timedelta
from pathlib import Path

import pytest
import yaml

from dtconvert.config.common import load_ffmpeg_dir
from dtconvert.services.logging_service import ErrorLog, SuccessLog
from dtconvert.utils import ffmpeg_utils, module_updater
from dtconvert.utils.ffmpeg_utils import join_command, run_cmd
from dtconvert.utils.format_utils import format_number, format_timedelta, formatted_size
from dtconvert.utils.module_updater import Modules


@pytest.mark.parametrize(
    "value, expected",
    [(25, "25"), (30.0, "30"), (29.97, "29.97"), (12.5, "12.5"), (0.1 + 0.2, "0.3"), (-0.0000001, "0")],
)
def test_format_number(value, expected):
    assert format_number(value) == expected


def test_format_timedelta():
    assert format_timedelta(timedelta(seconds=7261)) == "02:01:01"
    assert format_timedelta(None) == "00:00:00"


@pytest.mark.parametrize("size, expected", [(0, "0 B"), (512, "512 B"), (1536, "1.50 KB"), (2097152, "2 MB")])
def test_formatted_size(size, expected):
    assert formatted_size(size) == expected


def test_run_cmd_success(monkeypatch, tmp_path):
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append((cmd, kwargs))
        return subprocess.CompletedProcess(cmd, 0, "out", "")

    monkeypatch.setattr(ffmpeg_utils.subprocess, "run", fake_run)
    cmd_log = tmp_path / "cmd.txt"

    result = run_cmd(["ffmpeg", "-i", "a b.mov"], command_log_path=cmd_log, timeout=2.5)

    assert result.returncode == 0
    assert calls[0][0] == ["ffmpeg", "-i", "a b.mov"]
    assert calls[0][1]["timeout"] == 2.5
    assert cmd_log.read_text(encoding="utf-8").strip() == join_command(["ffmpeg", "-i", "a b.mov"])


def test_run_cmd_missing_executable(monkeypatch, tmp_path):
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(ffmpeg_utils.subprocess, "run", fake_run)

    result = run_cmd(["ffmpeg"], source_path=Path("clip.mov"), error_dir=tmp_path)

    assert result is None
    assert "clip.mov" in (tmp_path / "error.txt").read_text(encoding="utf-8")


def test_run_cmd_timeout(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr(ffmpeg_utils.subprocess, "run", fake_run)
    assert run_cmd(["ffprobe", "x"], timeout=0.01) is None


def test_run_cmd_rejects_empty():
    assert run_cmd([]) is None


def test_error_log_appends_blocks(tmp_path):
    log = ErrorLog(tmp_path)
    log.write("first", "line")
    log.write("second")
    text = (tmp_path / "error.txt").read_text(encoding="utf-8")
    assert text.count(ErrorLog.linesep_marker) == 2
    assert text.index("first") < text.index("second")


def test_success_log_indexes_entries(tmp_path):
    SuccessLog(tmp_path).write({"input_file": "a.mov"})
    SuccessLog(tmp_path).write({"input_file": "b.mov"})
    entries = yaml.safe_load((tmp_path / "success_log.yaml").read_text(encoding="utf-8"))
    assert [entry["index"] for entry in entries] == [1, 2]
    assert entries[1]["input_file"] == "b.mov"


def test_success_log_dated_filename(tmp_path):
    log = SuccessLog(tmp_path, use_dated_filename=True)
    assert log.log_file_path.name.startswith("log_")
    assert log.log_file_path.suffix == ".yaml"


def test_modules_get_version(monkeypatch):
    def fake_run(cmd, **kwargs):
        return subprocess.CompletedProcess(cmd, 0, "ffmpeg version 7.0.1 Copyright (c) 2000-2024\n", "")

    monkeypatch.setattr(module_updater.subprocess, "run", fake_run)
    assert Modules.get_version("ffmpeg") == "7.0.1"
    assert Modules.verify_ffmpeg()


def test_modules_missing_executable(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(module_updater.subprocess, "run", fake_run)
    assert Modules.get_version("ffmpeg") is None
    assert not Modules.verify_ffmpeg()


def test_load_ffmpeg_dir_reads_paths_section(tmp_path):
    config = tmp_path / "config.user.yaml"
    config.write_text("paths:\n  ffmpeg_dir: /opt/ffmpeg/bin\n", encoding="utf-8")
    assert load_ffmpeg_dir(config) == Path("/opt/ffmpeg/bin")


@pytest.mark.parametrize(
    "content",
    ["", "paths:\n", "other: 1\n", "- a\n- b\n", "paths: [unclosed\n"],
)
def test_load_ffmpeg_dir_falls_back_to_path(tmp_path, content):
    config = tmp_path / "config.user.yaml"
    config.write_text(content, encoding="utf-8")
    assert load_ffmpeg_dir(config) is None


def test_load_ffmpeg_dir_missing_file(tmp_path):
    assert load_ffmpeg_dir(tmp_path / "absent.yaml") is None
