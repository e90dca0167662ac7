"""
Process boundary for FFmpeg and ffprobe: running a command and rendering one
as a copy-pasteable command line.
"""

import os
import shlex
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence, Union

from loguru import logger

from ..services.logging_service import ErrorLog


def join_command(cmd_list: Sequence[str]) -> str:
    """Quotes an argument list for the current platform's shell."""
    if os.name == "nt":
        return subprocess.list2cmdline(list(cmd_list))
    return shlex.join(cmd_list)


def _as_argument_list(cmd: Union[str, Sequence[str]]) -> Optional[List[str]]:
    if isinstance(cmd, str):
        logger.warning(f"run_cmd got a plain string, splitting it: {cmd[:100]}")
        try:
            return shlex.split(cmd)
        except ValueError as e:
            logger.error(f"Cannot split command {cmd!r}: {e}")
            return None
    return [str(part) for part in cmd]


def run_cmd(
    cmd: Union[str, Sequence[str]],
    source_path: Optional[Path] = None,
    error_dir: Optional[Path] = None,
    show_cmd: bool = False,
    command_log_path: Optional[Path] = None,
    timeout: Optional[float] = None,
) -> Optional[subprocess.CompletedProcess]:
    """
    Runs an external tool, capturing stdout and stderr as text.

    A non-zero exit code is returned to the caller like any other result. Only
    when the process cannot be started, or exceeds `timeout`, is None returned;
    the reason is logged and, when `error_dir` is given, appended to its error log.

    Args:
        cmd: Argument list (preferred) or a string that is split with shlex.
        source_path: The media file the command works on, used in error records.
        error_dir: Where to record failures to start the process.
        show_cmd: Log the command line at DEBUG before running it.
        command_log_path: Append the command line to this file (e.g. `cmd.txt`).
        timeout: Seconds to wait before giving up, None waits forever.
    """
    cmd_list = _as_argument_list(cmd)
    if not cmd_list:
        logger.error("run_cmd got an empty command.")
        return None

    command_line = join_command(cmd_list)
    if show_cmd:
        logger.debug(f"Executing command: {command_line}")
    if command_log_path is not None:
        try:
            command_log_path.parent.mkdir(parents=True, exist_ok=True)
            with command_log_path.open("a", encoding="utf-8") as command_log:
                command_log.write(command_line + "\n")
        except OSError as e:
            logger.error(f"Cannot append to command log {command_log_path}: {e}")

    source_name = source_path.name if source_path is not None else "N/A"
    try:
        result = subprocess.run(
            cmd_list,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            shell=False,
            timeout=timeout,
        )
    except FileNotFoundError:
        reason = f"'{cmd_list[0]}' not found. Put it on PATH or set paths.ffmpeg_dir in config.user.yaml."
    except subprocess.TimeoutExpired:
        reason = f"Timed out after {timeout}s."
    except OSError as e:
        reason = f"{type(e).__name__}: {e}"
    else:
        if result.returncode != 0:
            logger.debug(f"{cmd_list[0]} exited with {result.returncode}:\n{result.stderr}")
        else:
            logger.trace(f"{cmd_list[0]} stderr: {(result.stderr or '')[:500]}")
        return result

    logger.error(f"Could not run command for {source_name}: {reason} Command: {command_line}")
    if error_dir is not None:
        ErrorLog(error_dir).write(f"Command execution error for: {source_name}", f"Command: {command_line}", reason)
    return None
