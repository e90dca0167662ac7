"""
This module provides the Modules class to locate and verify the external tools
required by the application, FFmpeg and ffprobe.
"""
import subprocess
import sys
from typing import Optional

from loguru import logger

from ..config.common import MODULE_PATH
from ..domain.media import parse_probe_version


class Modules:
    """
    Resolves the FFmpeg and ffprobe executables.

    A directory configured as `paths.ffmpeg_dir` in `config.user.yaml` wins;
    otherwise the bare command names are returned and resolved through PATH.
    """

    @staticmethod
    def _get_executable_path(name: str) -> str:
        exe_name = f"{name}.exe" if sys.platform == "win32" else name

        if MODULE_PATH and MODULE_PATH.is_dir():
            configured_path = MODULE_PATH / exe_name
            if configured_path.is_file():
                logger.debug(f"Using {name} from configured path: '{configured_path}'")
                return str(configured_path)
            logger.warning(f"`ffmpeg_dir` is configured, but '{exe_name}' was not found there. Falling back to system PATH.")

        return name

    @staticmethod
    def get_ffmpeg_path() -> str:
        return Modules._get_executable_path("ffmpeg")

    @staticmethod
    def get_ffprobe_path() -> str:
        return Modules._get_executable_path("ffprobe")

    @staticmethod
    def get_version(executable: str) -> Optional[str]:
        """
        Runs `<executable> -version` and returns the version number, or None on failure.
        """
        try:
            result = subprocess.run(
                [executable, "-version"],
                check=True,
                capture_output=True,
                text=True,
                encoding="utf-8",
            )
        except subprocess.CalledProcessError as e:
            logger.error(f"{executable} version command failed (return code {e.returncode}):\n{e.stderr}")
            return None
        except FileNotFoundError:
            logger.error(
                f"{executable} not found. Please ensure FFmpeg is installed and accessible.\n"
                "You can either add it to your system's PATH or specify its location in the 'config.user.yaml' file."
            )
            return None
        except OSError as e:
            logger.error(f"An unexpected error occurred while checking {executable} version: {e}")
            return None
        return parse_probe_version(result.stdout)

    @staticmethod
    def verify_ffmpeg() -> bool:
        """
        Checks that both ffmpeg and ffprobe can be executed and logs their versions.

        Returns:
            True if both tools answered with a version.
        """
        ok = True
        for executable in (Modules.get_ffmpeg_path(), Modules.get_ffprobe_path()):
            version = Modules.get_version(executable)
            if version is None:
                ok = False
            else:
                logger.info(f"{executable} version {version}")
        return ok
