import argparse
import concurrent.futures
import traceback
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger

from ..config.common import DEFAULT_MAX_WORKERS, DEFAULT_PROBE_TIMEOUT_MS
from ..domain.encoders import AudioChannels, AudioEncoder, VideoEncoder
from ..domain.exceptions import DTConvertException, InvalidSourceException
from ..domain.geometry import Resolution
from ..domain.parameters import ConversionParameters
from ..services.conversion_service import ConversionService
from ..utils.ffmpeg_utils import join_command


def apply_args(params: ConversionParameters, args: argparse.Namespace):
    """
    Transfers the command-line settings onto a probed parameter set.

    Options that were not given leave the probed defaults alone. Time options go
    through the timecode setters, so they accept `HH:MM:SS.mmm`, plain seconds
    or a frame count like `120f`, and are clamped to the source length.
    """
    if getattr(args, "encoder", None):
        params.video_encoder = VideoEncoder.from_name(args.encoder)
    if getattr(args, "resolution", None) is not None:
        horizontal, vertical = args.resolution
        params.resolution = Resolution(horizontal, vertical, params.video_encoder.profile.resolution_multiple, True)
    if getattr(args, "bitrate", None):
        params.video_bitrate = args.bitrate
        params.is_video_bitrate_enabled = True
    if getattr(args, "framerate", None):
        params.out_frame_rate = args.framerate
        params.is_out_frame_rate_enabled = True
    if getattr(args, "rotate", None):
        params.rotation = args.rotate
        params.is_rotation_enabled = True
        params.rotate_metadata_only = getattr(args, "rotate_metadata_only", False)

    if getattr(args, "crop", None) is not None:
        params.crop.left, params.crop.top, params.crop.right, params.crop.bottom = args.crop
        params.crop.is_enabled = True
    if getattr(args, "pad", None) is not None:
        params.padding.left, params.padding.top, params.padding.right, params.padding.bottom = args.pad
        params.padding.is_enabled = True
    if getattr(args, "slices", None) is not None:
        params.slicer.vertical_number, params.slicer.horizontal_number = args.slices
        if getattr(args, "overlap", None) is not None:
            params.slicer.horizontal_overlap, params.slicer.vertical_overlap = args.overlap
        params.slicer.is_enabled = True

    if getattr(args, "start", None):
        params.start_timecode = args.start
    if getattr(args, "duration", None):
        params.duration_timecode = args.duration
    if getattr(args, "preview_time", None):
        params.preview_seconds = params.start_seconds + float(args.preview_time)

    if getattr(args, "audio_encoder", None):
        params.audio_encoder = AudioEncoder.from_name(args.audio_encoder)
    if getattr(args, "audio_rate", None):
        params.audio_rate = args.audio_rate
        params.is_audio_rate_enabled = True
    if getattr(args, "channels", None):
        params.channels = AudioChannels.from_name(args.channels)
        params.is_channels_enabled = True
    params.split_channels = getattr(args, "split_channels", False)

    if getattr(args, "no_video", False):
        params.is_video_enabled = False
    if getattr(args, "no_audio", False):
        params.is_audio_enabled = False


class BatchPipeline:
    """
    Probes and converts a batch of files concurrently, one worker per file.

    Every file gets its own `ConversionParameters`, so workers never share
    mutable state. A failing file is logged and does not stop the others.

    Attributes:
        files (list[Path]): The sources, in submission order.
        args (argparse.Namespace): Parsed command-line options applied to every file.
        service (ConversionService | None): Runs FFmpeg; unused in dry-run mode.
        results (dict[Path, list[Path]]): Outputs written per source once `run` returns.
        failed (list[Path]): Sources whose probe or conversion failed.
    """

    def __init__(
        self,
        files: List[Path],
        args: argparse.Namespace,
        service: Optional[ConversionService] = None,
    ):
        self.files = [Path(f) for f in files]
        self.args = args
        self.dry_run = getattr(args, "dry_run", False)
        self.service = service if service is not None or self.dry_run else ConversionService(
            success_log_dir=getattr(args, "success_log_dir", None)
        )
        self.results: Dict[Path, List[Path]] = {}
        self.failed: List[Path] = []

    def prepare(self, path: Path) -> ConversionParameters:
        """Probes `path` and applies the command-line settings."""
        params = ConversionParameters(path)
        params.probe_source(getattr(self.args, "probe_timeout", DEFAULT_PROBE_TIMEOUT_MS))
        if not params.is_valid:
            raise InvalidSourceException(f"'{path}' has no duration, skipping.")
        apply_args(params, self.args)
        logger.debug(f"Prepared {params!r}")
        return params

    def commands_for(self, params: ConversionParameters) -> List[List[str]]:
        """The FFmpeg argument lists `process_single_file` would run, without running them."""
        commands = []
        if getattr(self.args, "preview", False):
            commands.append(params.build_preview_in_arguments())
            commands.append(params.build_preview_out_arguments())
        if params.is_conversion_enabled:
            if params.is_video_enabled:
                commands.append(params.build_video_arguments())
            if params.is_audio_enabled:
                commands.append(params.build_audio_arguments())
        return commands

    def process_single_file(self, path: Path) -> List[Path]:
        params = self.prepare(path)

        if self.dry_run:
            for arguments in self.commands_for(params):
                print(join_command(["ffmpeg"] + arguments))
            return []

        outputs = []
        if getattr(self.args, "preview", False):
            for create_preview in (self.service.create_preview_in, self.service.create_preview_out):
                preview_path = create_preview(params)
                if preview_path is not None:
                    outputs.append(preview_path)
        outputs.extend(self.service.convert(params))
        return outputs

    def run(self) -> Dict[Path, List[Path]]:
        if not self.files:
            logger.info("No files to process.")
            return self.results

        max_workers = max(1, getattr(self.args, "processes", None) or DEFAULT_MAX_WORKERS)
        logger.info(f"[{self.__class__.__name__}] Processing {len(self.files)} file(s) with {max_workers} worker(s).")

        with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {executor.submit(self.process_single_file, file_path): file_path for file_path in self.files}
            for i, future in enumerate(concurrent.futures.as_completed(futures)):
                file_path = futures[future]
                try:
                    self.results[file_path] = future.result()
                    logger.debug(f"Completed {i + 1}/{len(self.files)}: {file_path.name}")
                except DTConvertException as exc:
                    self.failed.append(file_path)
                    logger.error(f"{file_path.name}: {type(exc).__name__}: {exc}")
                except Exception as exc:
                    self.failed.append(file_path)
                    tb_str = traceback.format_exception(type(exc), exc, exc.__traceback__)
                    logger.error(
                        f"Error processing task for {file_path.name}:\n"
                        f"Exception type: {type(exc).__name__}\n"
                        f"Exception message: {exc}\n"
                        f"Traceback: {''.join(tb_str)}"
                    )

        logger.info(
            f"[{self.__class__.__name__}] Finished: {len(self.results)} succeeded, {len(self.failed)} failed."
        )
        return self.results
