"""
The `ConversionParameters` aggregate: one source file plus every setting used to
convert it.

An instance is created when a file is added, probed once, edited by the user
(or bulk-edited with `paste_parameters`) and handed to the conversion service.
It computes destination paths and delegates argument synthesis to
`services.command_builder`; it never starts a process itself.

Each instance owns its Duration and geometry values, so instances are
independent of each other. Video and audio each have a status; starting an
operation is guarded by a lock so at most one video operation and one audio
operation can be active per instance.
"""

import threading
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from loguru import logger

from ..config.audio import DEFAULT_AUDIO_CHANNELS, DEFAULT_AUDIO_ENCODER, DEFAULT_AUDIO_RATE
from ..config.common import DEFAULT_PROBE_TIMEOUT_MS
from ..config.video import (
    ALLOWED_ROTATIONS,
    DEFAULT_VIDEO_ENCODER,
    PREVIEW_EXTENSION,
    PREVIEW_HORIZONTAL_RESOLUTION,
    PREVIEW_VERTICAL_RESOLUTION,
    THUMBNAIL_DIR,
)
from ..services import command_builder
from ..services.probe_service import probe_source
from ..utils.format_utils import format_number
from .duration import Duration, DurationKind
from .encoders import AudioChannels, AudioEncoder, VideoEncoder
from .geometry import Crop, Padding, Resolution, Slicer
from .media import SourceDescription


class ConversionStatus(Enum):
    NONE = "None"
    CREATING_PREVIEW_IN = "CreatingPreviewIn"
    CREATING_PREVIEW_OUT = "CreatingPreviewOut"
    CONVERTING = "Converting"
    SUCCESS = "Success"
    FAILED = "Failed"

    @property
    def is_active(self) -> bool:
        return self in ACTIVE_STATUSES


ACTIVE_STATUSES = frozenset(
    {
        ConversionStatus.CREATING_PREVIEW_IN,
        ConversionStatus.CREATING_PREVIEW_OUT,
        ConversionStatus.CONVERTING,
    }
)


def _parse_user_time(value: str) -> Duration:
    """Reads a user-typed time: '120f' (frames), '12s' or '[HH:]MM:SS[.mmmuuu]'."""
    parsed = Duration()
    parsed.timecode = value
    return parsed


class ConversionParameters:
    """
    All conversion settings for one source file.

    `source_path` is fixed at construction. `source_info` and the derived
    `is_valid` only change through `probe_source` / `apply_source_description`;
    `paste_parameters` never touches them.

    Time range: `start`, `duration` and `end` can be read and written in seconds,
    frames or timecode. Writes are clamped to the probed source length; moving
    the start keeps the end in place. When an output frame rate differs from the
    source rate, a duration stored in frames counts output frames.
    """

    def __init__(self, source_path: Optional[Union[str, Path]] = None):
        self._source_path: Optional[Path] = Path(source_path) if source_path is not None else None
        self._source_info: Optional[SourceDescription] = None
        self._status_lock = threading.Lock()
        self.thumbnail_dir: Path = THUMBNAIL_DIR
        self.reset_to_defaults()

    def reset_to_defaults(self):
        """Restores every user setting to its default. Source and probe data are kept."""
        self.resolution = Resolution()
        self._start = Duration()
        self._duration = Duration()
        self._preview_time = Duration()
        self.crop = Crop()
        self.padding = Padding()
        self.slicer = Slicer()
        self.preview_resolution = Resolution(PREVIEW_HORIZONTAL_RESOLUTION, PREVIEW_VERTICAL_RESOLUTION)

        self._video_status = ConversionStatus.NONE
        self._audio_status = ConversionStatus.NONE

        self._is_conversion_enabled = True
        self._is_video_enabled = True
        self._is_audio_enabled = True
        self.video_encoder = VideoEncoder.from_name(DEFAULT_VIDEO_ENCODER)
        self.audio_encoder = AudioEncoder.from_name(DEFAULT_AUDIO_ENCODER)
        self.is_audio_rate_enabled = False
        self.audio_rate = DEFAULT_AUDIO_RATE
        self.is_channels_enabled = False
        self.channels = AudioChannels.from_name(DEFAULT_AUDIO_CHANNELS)
        self.split_channels = False

        self.is_video_bitrate_enabled = False
        self._video_bitrate = 0
        self._is_out_frame_rate_enabled = False
        self._out_frame_rate = 0.0
        self.is_rotation_enabled = False
        self._rotation = 0
        self.rotate_metadata_only = False

    def copy_from(self, other: "ConversionParameters"):
        """
        Copies every user setting from `other`.

        The source path, the probe results and therefore validity are left
        untouched, so a valid item can never make an invalid one convertible.
        Geometry values are cloned, not shared.
        """
        self.preview_seconds = other.preview_seconds
        self.preview_resolution = other.preview_resolution.clone()

        self._is_conversion_enabled = other._is_conversion_enabled
        self._is_video_enabled = other._is_video_enabled
        self._is_audio_enabled = other._is_audio_enabled
        self.video_encoder = other.video_encoder
        self.audio_encoder = other.audio_encoder
        self.is_audio_rate_enabled = other.is_audio_rate_enabled
        self.audio_rate = other.audio_rate
        self.is_channels_enabled = other.is_channels_enabled
        self.channels = other.channels
        self.split_channels = other.split_channels

        self.resolution = other.resolution.clone()
        self.is_video_bitrate_enabled = other.is_video_bitrate_enabled
        self._video_bitrate = other._video_bitrate
        self._is_out_frame_rate_enabled = other._is_out_frame_rate_enabled
        self._out_frame_rate = other._out_frame_rate
        self.is_rotation_enabled = other.is_rotation_enabled
        self.rotation = other.rotation
        self.rotate_metadata_only = other.rotate_metadata_only
        self.crop = other.crop.clone()
        self.padding = other.padding.clone()
        self.slicer = other.slicer.clone()
        self._paste_time_range(other)

    paste_parameters = copy_from

    def _paste_time_range(self, other: "ConversionParameters"):
        # frame rates are already copied, so frame counts rescale for this source
        if other._start.kind == DurationKind.FRAMES:
            total_frames = Duration.get_frames(self._source_seconds, self._source_frame_rate)
            self._start.frames = min(other.start_frames, total_frames)
        else:
            self._start.seconds = min(other.start_seconds, self._source_seconds)
        if other._duration.kind == DurationKind.FRAMES:
            self.duration_frames = other._duration_in_source_frames()
        else:
            self.duration_seconds = other.duration_seconds

    # --- Source ---

    @property
    def source_path(self) -> Optional[Path]:
        return self._source_path

    @property
    def source_info(self) -> Optional[SourceDescription]:
        return self._source_info

    @property
    def is_valid(self) -> bool:
        """True once a probe found a positive duration."""
        return self._source_info is not None and self._source_info.is_valid

    def probe_source(self, timeout_ms: int = DEFAULT_PROBE_TIMEOUT_MS, ffprobe_path: Optional[str] = None) -> bool:
        """
        Probes the source file and applies the result.

        Returns:
            The resulting `is_valid`.

        Raises:
            ProbeException: If ffprobe could not be run.
        """
        if self._source_path is None:
            logger.warning("Cannot probe parameters without a source path.")
            return False
        self.apply_source_description(probe_source(self._source_path, timeout_ms, ffprobe_path))
        return self.is_valid

    def apply_source_description(self, description: SourceDescription):
        """
        Stores probe results and seeds the settings from them.

        A valid source sets the resolution, the full duration, the frame rate and
        the bitrate. An invalid one disables conversion.
        """
        self._source_info = description
        if description.is_valid:
            self.resolution.horizontal = description.horizontal_resolution
            self.resolution.vertical = description.vertical_resolution
            self.duration_seconds = description.duration.seconds
            self.out_frame_rate = description.frame_rate
            self.video_bitrate = description.video_bitrate
        else:
            self._is_conversion_enabled = False

    @property
    def _source_frame_rate(self) -> float:
        return self._source_info.frame_rate if self._source_info is not None else 0.0

    @property
    def _source_seconds(self) -> float:
        if self._source_info is None or self._source_info.duration is None:
            return 0.0
        return self._source_info.duration.seconds

    # --- Enable flags ---

    @property
    def is_conversion_enabled(self) -> bool:
        return self._is_conversion_enabled and self.is_valid

    @is_conversion_enabled.setter
    def is_conversion_enabled(self, value: bool):
        self._is_conversion_enabled = value

    @property
    def is_video_enabled(self) -> bool:
        return self._is_video_enabled and self._source_info is not None and self._source_info.has_video

    @is_video_enabled.setter
    def is_video_enabled(self, value: bool):
        self._is_video_enabled = value

    @property
    def is_audio_enabled(self) -> bool:
        return self._is_audio_enabled and self._source_info is not None and self._source_info.has_audio

    @is_audio_enabled.setter
    def is_audio_enabled(self, value: bool):
        self._is_audio_enabled = value

    # --- Video settings ---

    @property
    def video_encoder(self) -> VideoEncoder:
        return self._video_encoder

    @video_encoder.setter
    def video_encoder(self, value: VideoEncoder):
        self._video_encoder = value
        multiple = value.profile.resolution_multiple
        if multiple:
            self.resolution.multiple = multiple

    @property
    def video_final_resolution(self) -> Resolution:
        """
        The size of the converted picture.

        The explicit resolution when enabled, otherwise the source size with
        the enabled crop removed and padding added.
        """
        horizontal = self._final_dimension(
            self.resolution.horizontal, "horizontal_resolution", self.crop.out_width, self.padding.out_width
        )
        vertical = self._final_dimension(
            self.resolution.vertical, "vertical_resolution", self.crop.out_height, self.padding.out_height
        )
        return Resolution(horizontal, vertical)

    def _final_dimension(self, explicit: int, source_attr: str, crop_out, padding_out) -> int:
        if self.resolution.is_enabled and explicit > 0:
            return explicit
        if self._source_info is None:
            return 0
        value = getattr(self._source_info, source_attr)
        if self.crop.is_enabled:
            value = crop_out(value)
        if self.padding.is_enabled:
            value = padding_out(value)
        return value

    @property
    def video_bitrate(self) -> int:
        """Bitrate in kb/s: the explicit value when enabled, otherwise the source bitrate."""
        if self.is_video_bitrate_enabled and self._video_bitrate > 0:
            return self._video_bitrate
        if self._source_info is not None:
            return self._source_info.video_bitrate
        return 0

    @video_bitrate.setter
    def video_bitrate(self, value: int):
        self._video_bitrate = int(value)

    @property
    def is_out_frame_rate_enabled(self) -> bool:
        return self._is_out_frame_rate_enabled

    @is_out_frame_rate_enabled.setter
    def is_out_frame_rate_enabled(self, value: bool):
        source_frames = 0
        if self._duration.kind == DurationKind.FRAMES:
            source_frames = self._duration_in_source_frames()
        self._is_out_frame_rate_enabled = value
        if source_frames > 0:
            self.duration_frames = source_frames

    @property
    def out_frame_rate(self) -> float:
        """The explicit output rate when enabled, otherwise the source rate, rounded to 2 decimals."""
        if self._is_out_frame_rate_enabled and self._out_frame_rate > 0:
            return round(self._out_frame_rate, 2)
        if self._source_info is not None:
            return round(self._source_info.frame_rate, 2)
        return 0.0

    @out_frame_rate.setter
    def out_frame_rate(self, value: float):
        source_frames = 0
        if self._duration.kind == DurationKind.FRAMES and self._rescales_frames():
            source_frames = self._duration_in_source_frames()
        self._out_frame_rate = float(value)
        if source_frames > 0:
            self.duration_frames = source_frames

    def _rescales_frames(self) -> bool:
        return self._is_out_frame_rate_enabled and self._out_frame_rate > 0 and self._source_frame_rate != 0

    def _duration_in_source_frames(self) -> int:
        if self._rescales_frames():
            return int(round(self._duration.frames / self._out_frame_rate * self._source_frame_rate))
        return self._duration.frames

    @property
    def rotation(self) -> int:
        return self._rotation

    @rotation.setter
    def rotation(self, value: int):
        value = int(value) % 360
        if value not in ALLOWED_ROTATIONS:
            logger.warning(f"Rotation must be one of {ALLOWED_ROTATIONS}, got {value}. Using 0.")
            value = 0
        self._rotation = value

    # --- Status ---

    @property
    def video_status(self) -> ConversionStatus:
        return self._video_status

    @property
    def audio_status(self) -> ConversionStatus:
        return self._audio_status

    def _try_begin(self, attr: str, status: ConversionStatus) -> bool:
        with self._status_lock:
            if getattr(self, attr).is_active:
                logger.debug(f"{self._source_name}: {attr[1:]} is {getattr(self, attr).value}, not starting again.")
                return False
            setattr(self, attr, status)
            return True

    def _set_status(self, attr: str, status: ConversionStatus):
        with self._status_lock:
            setattr(self, attr, status)

    def try_begin_video(self, status: ConversionStatus = ConversionStatus.CONVERTING) -> bool:
        """
        Moves the video status to an active `status` unless one is already active.

        Returns:
            True if the caller now owns the video operation, False if it must not start.
        """
        if not status.is_active:
            raise ValueError(f"{status} is not an active status")
        return self._try_begin("_video_status", status)

    def finish_video(self, success: bool):
        self._set_status("_video_status", ConversionStatus.SUCCESS if success else ConversionStatus.FAILED)

    def cancel_video(self):
        """Called once the running process is confirmed terminated."""
        self._set_status("_video_status", ConversionStatus.NONE)

    def try_begin_audio(self) -> bool:
        return self._try_begin("_audio_status", ConversionStatus.CONVERTING)

    def finish_audio(self, success: bool):
        self._set_status("_audio_status", ConversionStatus.SUCCESS if success else ConversionStatus.FAILED)

    def cancel_audio(self):
        self._set_status("_audio_status", ConversionStatus.NONE)

    @property
    def _source_name(self) -> str:
        return self._source_path.name if self._source_path is not None else "<no source>"

    # --- Start ---

    @property
    def start_seconds(self) -> float:
        if self._start.kind == DurationKind.FRAMES:
            return Duration.get_seconds(self._start.frames, self._source_frame_rate)
        return round(self._start.seconds, 6)

    @start_seconds.setter
    def start_seconds(self, value: float):
        end = self.end_seconds
        if 0 <= value <= end:
            self._start.seconds = value
            self.duration_seconds = end - value

    @property
    def start_frames(self) -> int:
        if self._start.kind == DurationKind.FRAMES:
            return self._start.frames
        return Duration.get_frames(self._start.seconds, self._source_frame_rate)

    @start_frames.setter
    def start_frames(self, value: int):
        end = self.end_frames
        if 0 <= value <= end:
            self._start.frames = value
            self.duration_frames = end - value

    @property
    def start_timecode(self) -> str:
        return self._start.timecode

    @start_timecode.setter
    def start_timecode(self, value: str):
        parsed = _parse_user_time(value)
        if parsed.kind == DurationKind.FRAMES:
            if parsed.frames < self.end_frames:
                self.start_frames = parsed.frames
        else:
            self.start_seconds = parsed.seconds

    # --- Duration ---

    @property
    def duration_seconds(self) -> float:
        if self._duration.kind == DurationKind.FRAMES:
            return Duration.get_seconds(self._duration.frames, self._source_frame_rate)
        return round(self._duration.seconds, 6)

    @duration_seconds.setter
    def duration_seconds(self, value: float):
        if self._source_info is None:
            return
        seconds_left = self._source_seconds - self.start_seconds
        self._duration.seconds = min(value, seconds_left)

    @property
    def duration_frames(self) -> int:
        if self._duration.kind == DurationKind.FRAMES:
            return self._duration.frames
        return Duration.get_frames(self._duration.seconds, self._source_frame_rate)

    @duration_frames.setter
    def duration_frames(self, value: int):
        if self._source_info is None:
            return
        frames_left = Duration.get_frames(self._source_seconds, self._source_frame_rate) - self.start_frames
        value = min(value, frames_left)
        if self._rescales_frames():
            value = int(round(value * self._out_frame_rate / self._source_frame_rate))
        self._duration.frames = value

    @property
    def duration_timecode(self) -> str:
        if self._video_encoder.profile.is_still:
            return "1f"
        return self._duration.timecode

    @duration_timecode.setter
    def duration_timecode(self, value: str):
        parsed = _parse_user_time(value)
        if parsed.kind == DurationKind.FRAMES:
            self.duration_frames = parsed.frames
        else:
            self.duration_seconds = parsed.seconds

    # --- End ---

    @property
    def end_seconds(self) -> float:
        return round(self.start_seconds + self.duration_seconds, 6)

    @end_seconds.setter
    def end_seconds(self, value: float):
        if self._source_info is None:
            return
        if self.start_seconds <= value <= self.start_seconds + self._source_seconds:
            self.duration_seconds = value - self.start_seconds

    @property
    def end_frames(self) -> int:
        if self._duration.kind == DurationKind.FRAMES:
            return self.start_frames + self._duration_in_source_frames()
        return self.start_frames + self.duration_frames

    @end_frames.setter
    def end_frames(self, value: int):
        if self._source_info is None:
            return
        total_frames = Duration.get_frames(self._source_seconds, self._source_frame_rate)
        if self.start_frames <= value <= self.start_frames + total_frames:
            self.duration_frames = value - self.start_frames

    @property
    def end_timecode(self) -> str:
        if self._video_encoder.profile.is_still:
            return self.start_timecode
        if self._duration.kind == DurationKind.FRAMES:
            duration_frames = self.duration_frames
            if self._rescales_frames():
                duration_frames = int(round(duration_frames * self._source_frame_rate / self._out_frame_rate))
            return Duration(frames=self.start_frames + duration_frames).timecode
        return Duration(seconds=self.start_seconds + self.duration_seconds).timecode

    @end_timecode.setter
    def end_timecode(self, value: str):
        parsed = _parse_user_time(value)
        if parsed.kind == DurationKind.FRAMES:
            self.end_frames = parsed.frames
        else:
            self.end_seconds = parsed.seconds

    # --- Preview ---

    @property
    def preview_seconds(self) -> float:
        return round(self._preview_time.seconds, 6)

    @preview_seconds.setter
    def preview_seconds(self, value: float):
        self._preview_time.seconds = round(value, 3)

    @property
    def preview_timecode(self) -> str:
        return self._preview_time.timecode

    @property
    def preview_frames(self) -> int:
        return Duration.get_frames(self._preview_time.seconds, self._source_frame_rate)

    @property
    def thumbnail_path_in(self) -> Path:
        stem = self._source_path.stem if self._source_path is not None else "noname"
        return self.thumbnail_dir / f"{stem}{PREVIEW_EXTENSION}"

    @property
    def thumbnail_path_out(self) -> Path:
        stem = self._source_path.stem if self._source_path is not None else "noname"
        return self.thumbnail_dir / f"{stem}_out{PREVIEW_EXTENSION}"

    # --- Destination paths ---

    @staticmethod
    def _avoid_collision(base: str, extension: str, now: Optional[datetime]) -> Path:
        if Path(base + extension).exists():
            now = now or datetime.now()
            base += "_" + now.strftime("%H%M%S")
        return Path(base + extension)

    def destination_video_path(self, now: Optional[datetime] = None) -> Path:
        """
        Computes where the converted video goes.

        `{dir}/{encoder}/{stem}[_{W}x{H}][_{fps}][_{bitrate}]` plus, for image
        sequences, a `/{stem}-%0Nd` frame pattern sized to the number of output
        frames. The extension follows the encoder (the source's for Copy). If a
        file already exists there, `_HHMMSS` is appended before the extension.

        Args:
            now: Clock used for the collision suffix, defaults to the current time.
        """
        if self._source_path is None:
            return Path("noname.mov")

        profile = self._video_encoder.profile
        stem = self._source_path.stem
        name = stem
        if self.resolution.is_enabled or self.crop.is_enabled or self.padding.is_enabled:
            name += f"_{self.video_final_resolution}"
        if self._is_out_frame_rate_enabled:
            name += f"_{format_number(self.out_frame_rate)}"
        if self.is_video_bitrate_enabled:
            name += f"_{self.video_bitrate}"

        out_path = self._source_path.parent / self._video_encoder.value / name
        if profile.is_sequence:
            digits = len(str(Duration.get_frames(self.duration_seconds, self.out_frame_rate)))
            out_path = out_path / f"{stem}-%0{digits}d"

        extension = profile.extension or self._source_path.suffix
        return self._avoid_collision(str(out_path), extension, now)

    def destination_audio_path(self, now: Optional[datetime] = None) -> Path:
        """
        Computes where the converted audio goes:
        `{dir}/{encoder}/{stem}[_{rate}][_{channels}]` + `.wav` (source extension for Copy).
        """
        if self._source_path is None:
            return Path("noname.wav")

        name = self._source_path.stem
        if self.is_audio_rate_enabled:
            name += f"_{self.audio_rate}"
        if self.is_channels_enabled:
            name += f"_{self.channels.value}"

        out_path = self._source_path.parent / self.audio_encoder.value / name
        extension = self.audio_encoder.extension or self._source_path.suffix
        return self._avoid_collision(str(out_path), extension, now)

    # --- Command synthesis ---

    def build_video_arguments(self, destination_path: Optional[Path] = None) -> List[str]:
        """FFmpeg arguments for the full video conversion, to `destination_video_path()` by default."""
        return command_builder.build_video_arguments(
            self._source_path,
            destination_path or self.destination_video_path(),
            start=self._start.clone(),
            duration=self._duration.clone(),
            encoder=self._video_encoder,
            resolution=self.resolution.clone() if self.resolution.is_enabled else None,
            bitrate=self._video_bitrate if self.is_video_bitrate_enabled else 0,
            in_frame_rate=self._source_frame_rate,
            out_frame_rate=self._out_frame_rate if self._is_out_frame_rate_enabled else 0.0,
            rotation=self._rotation if self.is_rotation_enabled else 0,
            rotate_metadata_only=self.rotate_metadata_only,
            crop=self.crop.clone(),
            padding=self.padding.clone(),
            slicer=self.slicer.clone(),
        )

    def build_audio_arguments(self, destination_path: Optional[Path] = None) -> List[str]:
        """
        FFmpeg arguments for the audio conversion, to `destination_audio_path()` by default.

        Raises:
            AudioChannelsException: If a 5.1 split is requested for a non-5.1 source.
        """
        return command_builder.build_audio_arguments(
            self._source_path,
            destination_path or self.destination_audio_path(),
            start=self._start.clone(),
            duration=self._duration.clone(),
            encoder=self.audio_encoder,
            audio_rate=self.audio_rate if self.is_audio_rate_enabled else 0,
            channels=self.channels if self.is_channels_enabled else None,
            split_channels=self.split_channels,
            in_channels=self._source_info.audio_channels if self._source_info is not None else None,
            in_frame_rate=self._source_frame_rate,
        )

    def build_preview_in_arguments(self) -> List[str]:
        """A single JPEG of the untouched source at the preview time, at preview resolution."""
        return command_builder.build_video_arguments(
            self._source_path,
            self.thumbnail_path_in,
            start=self._preview_time.clone(),
            duration=Duration(frames=1),
            encoder=VideoEncoder.STILL_JPG,
            resolution=self.preview_resolution.clone(),
        )

    def build_preview_out_arguments(self) -> List[str]:
        """A single JPEG at the preview time with resolution, rotation, crop, padding and slices applied."""
        return command_builder.build_video_arguments(
            self._source_path,
            self.thumbnail_path_out,
            start=self._preview_time.clone(),
            duration=Duration(frames=1),
            encoder=VideoEncoder.STILL_JPG,
            resolution=self.resolution.clone() if self.resolution.is_enabled else None,
            rotation=self._rotation if self.is_rotation_enabled else 0,
            rotate_metadata_only=self.rotate_metadata_only,
            crop=self.crop.clone(),
            padding=self.padding.clone(),
            slicer=self.slicer.clone(),
        )

    def __repr__(self) -> str:
        return (
            f"ConversionParameters({self._source_name}, valid={self.is_valid}, "
            f"video={self._video_encoder.value}:{self._video_status.value}, "
            f"audio={self.audio_encoder.value}:{self._audio_status.value})"
        )
