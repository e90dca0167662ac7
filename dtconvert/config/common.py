"""
Common configuration settings used throughout the application.

This module contains globally shared configuration settings and constants that are
used across the entire DT Convert application. It centralizes parameters for
logging, external tool locations, probing and error/success log locations. It
also handles the loading of user-specific configurations from an external YAML
file, allowing for easy customization without modifying the source code.
"""
from pathlib import Path
from typing import Optional

import yaml
from loguru import logger

# --- External tools ---

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

# Optional per-machine settings, e.g.
#   paths:
#     ffmpeg_dir: /opt/ffmpeg/bin
USER_CONFIG_PATH = PROJECT_ROOT / "config.user.yaml"


def load_ffmpeg_dir(config_path: Path = USER_CONFIG_PATH) -> Optional[Path]:
    """
    Reads `paths.ffmpeg_dir` from a user YAML file.

    Returns None when the file, the section or the key is missing, or when the
    file cannot be parsed (a warning is logged); ffmpeg and ffprobe are then
    looked up on PATH.
    """
    if not config_path.is_file():
        logger.debug(f"No user config at '{config_path}', using executables from PATH.")
        return None
    try:
        user_config = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Ignoring unreadable user config '{config_path}': {e}")
        return None
    if not isinstance(user_config, dict):
        return None
    ffmpeg_dir = (user_config.get("paths") or {}).get("ffmpeg_dir")
    return Path(ffmpeg_dir) if ffmpeg_dir else None


# Directory holding ffmpeg/ffprobe, None for PATH lookup.
MODULE_PATH: Optional[Path] = load_ffmpeg_dir()


# --- Logging ---

# Console format for loguru; the thread name tells concurrent conversions apart.
LOGGER_FORMAT = (
    "<green>{time:MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{thread.name} - <level>{message}</level>"
)


# --- Error and success records ---

# Failed runs are recorded under here, grouped as ffmpeg_rc_<code>/error.txt.
BASE_ERROR_DIR = Path("dtconvert_error").resolve()

# Every FFmpeg command line that was run is appended to this file in BASE_ERROR_DIR.
COMMAND_TEXT = "cmd.txt"

DEFAULT_SUCCESS_LOG_YAML = "success_log.yaml"

# Length of the random part in dated success log names (log_YYYYMMDD_XXXXXXXX.yaml).
SUCCESS_LOG_RANDOM_LENGTH = 8


# --- Probing ---

# Upper bound, in milliseconds, to wait for ffprobe to exit once its output
# has been consumed. Non-positive values given by callers fall back to this.
DEFAULT_PROBE_TIMEOUT_MS = 1000


# --- Metadata ---

# Comment embedded in every converted file so the output can be recognized later.
COMMENT_ENCODED = "Encoded with DT Convert"


# --- Concurrency ---

# Number of files converted in parallel by the batch pipeline.
DEFAULT_MAX_WORKERS = 2
