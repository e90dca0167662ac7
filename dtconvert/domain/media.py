import re
from pathlib import Path
from typing import Iterable, List, Optional, Union

from loguru import logger

from .duration import Duration
from .encoders import AudioChannels
from .exceptions import MalformedTimecodeException

RESOLUTION_PATTERN = re.compile(r"(\d+)x(\d+)")
CHANNEL_LAYOUT_PATTERN = re.compile(r"\d\.\d")
CHROMA_MARKERS = ("420", "422", "444")


class SourceDescription:
    """
    Everything learned about a source file from the probing tool's diagnostic output.

    An instance is produced once per probe and treated as read-only afterwards.
    Any field may be left at its zero value when the probe text does not mention
    it; that alone is never an error. Only a missing `duration` means the file
    is not usable media (see `is_valid`).

    Attributes:
        source_path (Path): The probed file.
        duration (Duration | None): Length of the media; it carries the probed
                                    frame rate so it can be read in frames.
        bitrate (int): Overall container bitrate in kb/s, from the `Duration:` line.
        has_video (bool): True when a `Video:` stream line was seen.
        video_codec (str): Codec name, lowercased (e.g. 'h264', 'hap').
        chroma_subsampling (str): Pixel format, e.g. 'yuv420p'.
        horizontal_resolution (int): Width in pixels.
        vertical_resolution (int): Height in pixels.
        frame_rate (float): Frames per second.
        video_bitrate (int): Video stream bitrate in kb/s.
        has_audio (bool): True when an `Audio:` stream line was seen.
        audio_codec (str): Codec name, lowercased (e.g. 'aac', 'pcm_s16le').
        audio_sampling_rate (int): Sample rate in Hz.
        audio_channel_layout (str): Layout tag as printed ('mono', 'stereo', '5.1').
        audio_channels (AudioChannels | None): The layout mapped to a known channel set.
        audio_bitrate (int): Audio stream bitrate in kb/s.
    """

    def __init__(self, source_path: Union[str, Path]):
        self.source_path: Path = Path(source_path)
        self.duration: Optional[Duration] = None
        self.bitrate: int = 0

        self.has_video: bool = False
        self.video_codec: str = ""
        self.chroma_subsampling: str = ""
        self.horizontal_resolution: int = 0
        self.vertical_resolution: int = 0
        self.frame_rate: float = 0.0
        self.video_bitrate: int = 0

        self.has_audio: bool = False
        self.audio_codec: str = ""
        self.audio_sampling_rate: int = 0
        self.audio_channel_layout: str = ""
        self.audio_channels: Optional[AudioChannels] = None
        self.audio_bitrate: int = 0

    @property
    def is_valid(self) -> bool:
        """A source is usable only if a positive duration was found."""
        return self.duration is not None and self.duration.seconds > 0

    def __repr__(self) -> str:
        return (
            f"SourceDescription({self.source_path.name}, duration={self.duration!r}, "
            f"video={self.video_codec or '-'} {self.horizontal_resolution}x{self.vertical_resolution}"
            f"@{self.frame_rate}, audio={self.audio_codec or '-'} {self.audio_sampling_rate}Hz "
            f"{self.audio_channel_layout or '-'})"
        )


def _first_token(segment: str) -> str:
    return segment.strip().split(" ")[0].strip()


def _codec_from_segment(segment: str) -> str:
    # "stream #0:0(und): video: h264 (high) (avc1 / 0x31637661)" -> "h264"
    return segment.split(":")[-1].split("(")[0].strip()


def _parse_duration_line(line: str, description: SourceDescription):
    segments = line.split(",")
    timecode = segments[0].split(" ")[1].strip()
    description.duration = Duration.parse_timecode(timecode)
    for segment in segments[1:]:
        if "bitrate:" in segment and "kb/s" in segment:
            description.bitrate = int(segment.split(":", 1)[1].strip().split(" ")[0])


def _parse_video_line(line: str, description: SourceDescription):
    description.has_video = True
    segments = line.split(",")
    description.video_codec = _codec_from_segment(segments[0])

    # The codec segment can hold a hex fourcc like 0x31637661, skip it for the rest.
    for segment in segments[1:]:
        pixel_format = segment.split("(")[0].strip()
        # "4200 kb/s" also contains a marker, pixel formats are a single word
        if any(marker in pixel_format for marker in CHROMA_MARKERS) and " " not in pixel_format:
            description.chroma_subsampling = pixel_format
        if "x" in segment:
            match = RESOLUTION_PATTERN.search(segment)
            if match:
                description.horizontal_resolution = int(match.group(1))
                description.vertical_resolution = int(match.group(2))
        if "fps" in segment:
            description.frame_rate = float(_first_token(segment).replace(",", "."))
        if "kb/s" in segment:
            description.video_bitrate = int(_first_token(segment))


def _parse_audio_line(line: str, description: SourceDescription):
    description.has_audio = True
    segments = line.split(",")
    description.audio_codec = _codec_from_segment(segments[0])

    for segment in segments[1:]:
        if "hz" in segment:
            description.audio_sampling_rate = int(_first_token(segment))
        if "1 channel" in segment or "mono" in segment:
            description.audio_channel_layout = "mono"
            description.audio_channels = AudioChannels.MONO
        if "2 channel" in segment or "stereo" in segment:
            description.audio_channel_layout = "stereo"
            description.audio_channels = AudioChannels.STEREO
        if "." in segment:
            match = CHANNEL_LAYOUT_PATTERN.search(segment)
            if match:
                description.audio_channel_layout = match.group(0)
                if match.group(0) == "5.1":
                    description.audio_channels = AudioChannels.CH_5_1
        if "kb/s" in segment:
            description.audio_bitrate = int(_first_token(segment))


def parse_probe_output(lines: Union[str, Iterable[str]], source_path: Union[str, Path] = "") -> SourceDescription:
    """
    Builds a SourceDescription from the human-readable diagnostic text of ffprobe.

    Each line is lowercased, stripped and classified on its own: a `Duration:`
    line, a `Video:` stream line or an `Audio:` stream line. Anything else is
    ignored. A line that cannot be parsed is logged and skipped; parsing always
    continues with the next line, so a broken line only leaves its fields unset.

    Only the first video and audio streams are meaningful to the converter; when
    a file has several, later stream lines overwrite the earlier values field by
    field, exactly as they appear.

    Args:
        lines: The probe output, either one string or an iterable of lines.
        source_path: The probed file, recorded on the result.

    Returns:
        The populated SourceDescription. Check `is_valid` before converting.
    """
    if isinstance(lines, str):
        lines = lines.splitlines()

    description = SourceDescription(source_path)
    for raw_line in lines:
        line = raw_line.lower().strip()
        if not line:
            continue
        try:
            if line.startswith("duration:"):
                _parse_duration_line(line, description)
            if "video:" in line:
                _parse_video_line(line, description)
            if "audio:" in line:
                _parse_audio_line(line, description)
        except (ValueError, IndexError, MalformedTimecodeException) as e:
            logger.debug(f"Skipping unparsable probe line {line!r}: {e}")

    if description.duration is not None:
        description.duration.frame_rate = description.frame_rate
    else:
        logger.debug(f"No duration found while probing {description.source_path}")
    return description


def parse_probe_version(lines: Union[str, Iterable[str]]) -> Optional[str]:
    """Extracts the version from the banner line, e.g. 'ffprobe version 6.1.1 Copyright ...' -> '6.1.1'."""
    if isinstance(lines, str):
        lines = lines.splitlines()
    for raw_line in lines:
        line = raw_line.lower()
        if "version" in line and ("ffprobe" in line or "ffmpeg" in line):
            tokens: List[str] = line.replace("version", "").replace("ffprobe", "").replace("ffmpeg", "").split()
            if tokens:
                return tokens[0]
    return None
