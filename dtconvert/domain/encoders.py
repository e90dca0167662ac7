"""
Encoder selections and the static lookup table describing each one.

Each `VideoEncoder` member maps to one `VideoEncoderProfile`: the codec flag
(or none for image outputs), an optional `-format` variant, the container
format flag, the output extension and its family. The enum values are the
names used for output directories, so they are part of the file naming
contract.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from ..config.video import H264_OPTIONS, HAP_RESOLUTION_MULTIPLE


class EncoderFamily(Enum):
    HAP = "hap"
    H264 = "h264"
    STILL = "still"
    SEQUENCE = "sequence"
    COPY = "copy"


class VideoEncoder(Enum):
    HAP = "HAP"
    HAP_ALPHA = "HAP_Alpha"
    HAP_Q = "HAP_Q"
    H264 = "H264"
    STILL_PNG = "Still_PNG"
    STILL_JPG = "Still_JPG"
    PNG_SEQUENCE = "PNG_Sequence"
    JPG_SEQUENCE = "JPG_Sequence"
    COPY = "Copy"

    @classmethod
    def from_name(cls, name: str) -> "VideoEncoder":
        """Looks up a member by value or member name, case-insensitively."""
        wanted = name.strip().lower()
        for member in cls:
            if wanted in (member.value.lower(), member.name.lower()):
                return member
        raise ValueError(f"Unknown video encoder: {name!r}")

    @property
    def profile(self) -> "VideoEncoderProfile":
        return VIDEO_ENCODER_PROFILES[self]


@dataclass(frozen=True)
class VideoEncoderProfile:
    family: EncoderFamily
    extension: Optional[str]  # None keeps the source extension
    codec: Optional[str] = None
    format_variant: Optional[str] = None
    container_format: Optional[str] = None
    options: Tuple[str, ...] = ()
    resolution_multiple: int = 0

    @property
    def is_still(self) -> bool:
        return self.family == EncoderFamily.STILL

    @property
    def is_sequence(self) -> bool:
        return self.family == EncoderFamily.SEQUENCE

    @property
    def is_image(self) -> bool:
        return self.family in (EncoderFamily.STILL, EncoderFamily.SEQUENCE)

    def codec_arguments(self) -> list:
        """Returns the codec part of the output arguments, e.g. `-c:v hap -format hap_q`."""
        args = []
        if self.codec:
            args.extend(["-c:v", self.codec])
        if self.format_variant:
            args.extend(["-format", self.format_variant])
        args.extend(self.options)
        if self.container_format:
            args.extend(["-f", self.container_format])
        return args


VIDEO_ENCODER_PROFILES: Dict[VideoEncoder, VideoEncoderProfile] = {
    VideoEncoder.HAP: VideoEncoderProfile(
        EncoderFamily.HAP, ".mov", codec="hap", resolution_multiple=HAP_RESOLUTION_MULTIPLE
    ),
    VideoEncoder.HAP_ALPHA: VideoEncoderProfile(
        EncoderFamily.HAP, ".mov", codec="hap", format_variant="hap_alpha",
        resolution_multiple=HAP_RESOLUTION_MULTIPLE,
    ),
    VideoEncoder.HAP_Q: VideoEncoderProfile(
        EncoderFamily.HAP, ".mov", codec="hap", format_variant="hap_q",
        resolution_multiple=HAP_RESOLUTION_MULTIPLE,
    ),
    VideoEncoder.H264: VideoEncoderProfile(EncoderFamily.H264, ".mp4", codec="libx264", options=H264_OPTIONS),
    VideoEncoder.STILL_PNG: VideoEncoderProfile(EncoderFamily.STILL, ".png", container_format="image2"),
    VideoEncoder.STILL_JPG: VideoEncoderProfile(EncoderFamily.STILL, ".jpg", container_format="image2"),
    VideoEncoder.PNG_SEQUENCE: VideoEncoderProfile(EncoderFamily.SEQUENCE, ".png", container_format="image2"),
    VideoEncoder.JPG_SEQUENCE: VideoEncoderProfile(EncoderFamily.SEQUENCE, ".jpg", container_format="image2"),
    VideoEncoder.COPY: VideoEncoderProfile(EncoderFamily.COPY, None, codec="copy"),
}


class AudioEncoder(Enum):
    WAV_16 = "WAV_16"
    WAV_24 = "WAV_24"
    WAV_32 = "WAV_32"
    COPY = "Copy"

    @classmethod
    def from_name(cls, name: str) -> "AudioEncoder":
        wanted = name.strip().lower()
        for member in cls:
            if wanted in (member.value.lower(), member.name.lower()):
                return member
        raise ValueError(f"Unknown audio encoder: {name!r}")

    @property
    def codec(self) -> str:
        return AUDIO_CODECS[self]

    @property
    def extension(self) -> Optional[str]:
        """`.wav` for PCM encoders, None (keep the source extension) for Copy."""
        return None if self == AudioEncoder.COPY else ".wav"


AUDIO_CODECS: Dict[AudioEncoder, str] = {
    AudioEncoder.WAV_16: "pcm_s16le",
    AudioEncoder.WAV_24: "pcm_s24le",
    AudioEncoder.WAV_32: "pcm_s32le",
    AudioEncoder.COPY: "copy",
}


class AudioChannels(Enum):
    MONO = "Mono"
    STEREO = "Stereo"
    CH_5_1 = "ch_5_1"

    @classmethod
    def from_name(cls, name: str) -> "AudioChannels":
        wanted = name.strip().lower().replace(".", "_")
        if wanted == "5_1":
            return cls.CH_5_1
        for member in cls:
            if wanted in (member.value.lower(), member.name.lower()):
                return member
        raise ValueError(f"Unknown audio channel layout: {name!r}")

    @property
    def count(self) -> int:
        return {AudioChannels.MONO: 1, AudioChannels.STEREO: 2, AudioChannels.CH_5_1: 6}[self]
