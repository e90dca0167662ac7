import platform
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional

from loguru import logger

from ..config.common import BASE_ERROR_DIR, COMMAND_TEXT
from ..domain.exceptions import ConversionException, InvalidSourceException
from ..domain.parameters import ConversionParameters, ConversionStatus
from ..utils.ffmpeg_utils import join_command, run_cmd
from ..utils.format_utils import format_timedelta, formatted_size
from ..utils.module_updater import Modules
from .logging_service import ErrorLog, SuccessLog


class ConversionService:
    """
    Runs the FFmpeg commands synthesized by a `ConversionParameters`.

    Each public method converts one thing for one parameter set and drives that
    set's status: it claims the status (returning None without doing anything if
    an operation is already active), runs FFmpeg and marks the outcome. On
    failure the status becomes FAILED, an error record with the command and
    FFmpeg's stderr is appended under `error_dir`, and `ConversionException` is
    raised.

    Attributes:
        ffmpeg_path (str): The FFmpeg executable.
        error_dir (Path): Root directory for error records and the command log.
        success_log_dir (Path | None): Where successes are recorded as YAML; None disables it.
    """

    def __init__(
        self,
        ffmpeg_path: Optional[str] = None,
        error_dir: Path = BASE_ERROR_DIR,
        success_log_dir: Optional[Path] = None,
    ):
        self.ffmpeg_path = ffmpeg_path or Modules.get_ffmpeg_path()
        self.error_dir = error_dir
        self.success_log_dir = success_log_dir

    def command_for(self, arguments: List[str]) -> List[str]:
        return [self.ffmpeg_path] + arguments

    # --- Public operations ---

    def convert_video(self, params: ConversionParameters) -> Optional[Path]:
        """
        Converts the video stream of `params`' source.

        Returns:
            The destination path, or None if a video operation was already active.
        """
        self._require_valid(params)
        destination = params.destination_video_path()
        arguments = params.build_video_arguments(destination)
        if not params.try_begin_video(ConversionStatus.CONVERTING):
            return None
        return self._run(params, arguments, destination, "video", params.finish_video)

    def convert_audio(self, params: ConversionParameters) -> Optional[Path]:
        """
        Converts the audio stream of `params`' source.

        Raises:
            AudioChannelsException: If the requested channel split is impossible for the source.
        """
        self._require_valid(params)
        destination = params.destination_audio_path()
        arguments = params.build_audio_arguments(destination)
        if not params.try_begin_audio():
            return None
        return self._run(params, arguments, destination, "audio", params.finish_audio)

    def create_preview_in(self, params: ConversionParameters) -> Optional[Path]:
        """Writes the input thumbnail. The video status returns to NONE afterwards."""
        self._require_valid(params)
        if not params.try_begin_video(ConversionStatus.CREATING_PREVIEW_IN):
            return None
        return self._run_preview(params, params.build_preview_in_arguments(), params.thumbnail_path_in)

    def create_preview_out(self, params: ConversionParameters) -> Optional[Path]:
        """Writes the output thumbnail with every geometry setting applied."""
        self._require_valid(params)
        if not params.try_begin_video(ConversionStatus.CREATING_PREVIEW_OUT):
            return None
        return self._run_preview(params, params.build_preview_out_arguments(), params.thumbnail_path_out)

    def convert(self, params: ConversionParameters) -> List[Path]:
        """
        Runs every enabled conversion for `params`: video, then audio.

        Returns:
            The destinations that were written.
        """
        if not params.is_conversion_enabled:
            logger.info(f"Conversion disabled for {params.source_path}, skipping.")
            return []
        outputs = []
        if params.is_video_enabled:
            video_out = self.convert_video(params)
            if video_out is not None:
                outputs.append(video_out)
        if params.is_audio_enabled:
            audio_out = self.convert_audio(params)
            if audio_out is not None:
                outputs.append(audio_out)
        return outputs

    # --- Internals ---

    @staticmethod
    def _require_valid(params: ConversionParameters):
        if not params.is_valid:
            raise InvalidSourceException(f"'{params.source_path}' has no duration, it cannot be converted.")

    def _execute(self, params: ConversionParameters, arguments: List[str], destination: Path):
        destination.parent.mkdir(parents=True, exist_ok=True)
        cmd = self.command_for(arguments)
        return run_cmd(
            cmd,
            source_path=params.source_path,
            error_dir=self.error_dir,
            show_cmd=True,
            command_log_path=self.error_dir / COMMAND_TEXT,
        )

    def _run(self, params: ConversionParameters, arguments: List[str], destination: Path, kind: str, finish) -> Path:
        start_datetime = datetime.now()
        logger.info(f"Converting {kind} of {params.source_path.name} -> {destination}")
        try:
            result = self._execute(params, arguments, destination)
        except Exception:
            finish(False)
            raise

        if result is None or result.returncode != 0:
            finish(False)
            self.failed_action(params, arguments, result.returncode if result else -1, result.stderr if result else "")

        finish(True)
        elapsed = datetime.now() - start_datetime
        logger.success(f"{kind.capitalize()} of {params.source_path.name} converted in {format_timedelta(elapsed)}.")
        self.write_success_log(params, kind, destination, elapsed)
        return destination

    def _run_preview(self, params: ConversionParameters, arguments: List[str], destination: Path) -> Path:
        try:
            result = self._execute(params, arguments, destination)
            if result is None or result.returncode != 0:
                self.failed_action(params, arguments, result.returncode if result else -1, result.stderr if result else "")
        finally:
            params.cancel_video()
        return destination

    def failed_action(self, params: ConversionParameters, arguments: List[str], return_code: int, stderr: str):
        """Records a failed FFmpeg run and raises `ConversionException`."""
        cmd_str = join_command(self.command_for(arguments))
        logger.error(f"ffmpeg failed for {params.source_path} (rc={return_code}):\n{stderr}")

        error_file_dir = self.error_dir / f"ffmpeg_rc_{return_code}"
        ErrorLog(error_file_dir).write(
            f"Failed command: {cmd_str}",
            f"Original file: {params.source_path}",
            f"Return code: {return_code}",
            f"Stderr: {stderr}",
        )
        raise ConversionException(f"ffmpeg failed for {params.source_path} (rc={return_code})", return_code, stderr)

    def write_success_log(self, params: ConversionParameters, kind: str, destination: Path, elapsed: timedelta):
        if self.success_log_dir is None:
            return

        source_size = params.source_path.stat().st_size if params.source_path.is_file() else 0
        # sequences and tiles do not exist under the destination name itself
        output_size = destination.stat().st_size if destination.is_file() else 0
        duration_seconds = params.source_info.duration.seconds if params.source_info.duration else 0
        log_dict = {
            "index": 0,
            "input_file": str(params.source_path),
            "output_file": str(destination),
            "kind": kind,
            "encoder": params.video_encoder.value if kind == "video" else params.audio_encoder.value,
            "file_duration_seconds": duration_seconds,
            "file_duration_formatted": format_timedelta(timedelta(seconds=duration_seconds)),
            "conversion_time_formatted": format_timedelta(elapsed),
            "original_size_bytes": source_size,
            "original_size_formatted": formatted_size(source_size),
            "output_size_bytes": output_size,
            "output_size_formatted": formatted_size(output_size),
            "ended_datetime": datetime.now().strftime("%Y%m%d_%H:%M:%S"),
            "platform_info": platform.platform(),
        }
        SuccessLog(self.success_log_dir).write(log_dict)
