"""
Command-Line Interface (CLI) setup for DT Convert.

This module uses Python's `argparse` to define and parse the command-line
arguments that control which files are converted and how.
"""
import argparse
from pathlib import Path
from typing import List, Optional, Tuple

from .config.common import DEFAULT_MAX_WORKERS, DEFAULT_PROBE_TIMEOUT_MS
from .domain.encoders import AudioEncoder, VideoEncoder


def _int_list(text: str, count: int, separator: str) -> Tuple[int, ...]:
    parts = text.lower().split(separator)
    if len(parts) != count:
        raise argparse.ArgumentTypeError(f"expected {count} values separated by '{separator}', got '{text}'")
    try:
        return tuple(int(p) for p in parts)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{text}' contains a non-integer value")


def resolution_type(text: str) -> Tuple[int, int]:
    """Parses `WxH`."""
    return _int_list(text, 2, "x")


def grid_type(text: str) -> Tuple[int, int]:
    """Parses `RxC` (rows x columns)."""
    return _int_list(text, 2, "x")


def insets_type(text: str) -> Tuple[int, int, int, int]:
    """Parses `L,T,R,B`."""
    return _int_list(text, 4, ",")


def pair_type(text: str) -> Tuple[int, int]:
    return _int_list(text, 2, ",")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="DT Convert: probe media files and convert them with FFmpeg.")
    parser.add_argument("files", nargs="+", type=Path, help="Source media files.")

    video = parser.add_argument_group("video")
    video.add_argument(
        "--encoder", type=str, default=None, choices=[e.value for e in VideoEncoder],
        help="Video encoder (default: HAP)."
    )
    video.add_argument("--resolution", type=resolution_type, default=None, help="Output resolution as WxH.")
    video.add_argument("--bitrate", type=int, default=None, help="Video bitrate in kb/s.")
    video.add_argument("--framerate", type=float, default=None, help="Output frame rate.")
    video.add_argument("--rotate", type=int, default=None, choices=[0, 90, 180, 270], help="Clockwise rotation.")
    video.add_argument(
        "--rotate-metadata-only", action="store_true",
        help="Only tag the rotation in the stream metadata instead of transposing pixels."
    )
    video.add_argument("--crop", type=insets_type, default=None, help="Crop as L,T,R,B pixels.")
    video.add_argument("--pad", type=insets_type, default=None, help="Padding as L,T,R,B pixels.")
    video.add_argument("--slices", type=grid_type, default=None, help="Split the output into RxC tiles.")
    video.add_argument("--overlap", type=pair_type, default=None, help="Tile overlap as H,V pixels.")

    time_group = parser.add_argument_group("time range")
    time_group.add_argument("--start", type=str, default=None, help="Start as HH:MM:SS.mmm, seconds or frames (e.g. 120f).")
    time_group.add_argument("--duration", type=str, default=None, help="Duration, same formats as --start.")

    audio = parser.add_argument_group("audio")
    audio.add_argument(
        "--audio-encoder", type=str, default=None, choices=[e.value for e in AudioEncoder],
        help="Audio encoder (default: WAV_16)."
    )
    audio.add_argument("--audio-rate", type=int, default=None, help="Audio sample rate in Hz.")
    audio.add_argument("--channels", type=str, default=None, choices=["Mono", "Stereo", "5.1"], help="Output channel layout.")
    audio.add_argument("--split-channels", action="store_true", help="Write one file per channel.")

    parser.add_argument("--no-video", action="store_true", help="Do not convert the video stream.")
    parser.add_argument("--no-audio", action="store_true", help="Do not convert the audio stream.")
    parser.add_argument("--preview", action="store_true", help="Also write input and output thumbnails.")
    parser.add_argument(
        "--preview-time", type=float, default=None,
        help="Thumbnail position in seconds after the start."
    )
    parser.add_argument("--dry-run", action="store_true", help="Print the FFmpeg commands instead of running them.")
    parser.add_argument(
        "--processes", type=int, default=DEFAULT_MAX_WORKERS, help="Number of files converted in parallel."
    )
    parser.add_argument(
        "--probe-timeout", type=int, default=DEFAULT_PROBE_TIMEOUT_MS, help="ffprobe timeout in milliseconds."
    )
    parser.add_argument(
        "--success-log-dir", type=Path, default=None, help="Directory for the YAML success log."
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set the logging level."
    )
    return parser


def get_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parses command-line arguments for DT Convert.

    Args:
        argv: Arguments to parse instead of `sys.argv[1:]`.

    Returns:
        argparse.Namespace: An object containing the parsed command-line
                            arguments as attributes.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.no_video and args.no_audio:
        parser.error("--no-video and --no-audio together leave nothing to convert.")
    if args.overlap is not None and args.slices is None:
        parser.error("--overlap requires --slices.")
    if args.processes < 1:
        parser.error("--processes must be at least 1.")

    args.files = [f.resolve() for f in args.files]
    return args
