"""
Builds FFmpeg argument lists for video, image and audio conversions.

Everything here is a pure function of its inputs: no process is started and no
file is touched, so the builders are safe to call from any number of threads.
The returned lists hold the arguments after the executable; `join_command`
turns one into a printable command line.

Argument order matters to FFmpeg and is kept stable:

    -hide_banner [-ss] -an -sn -dn -i SRC [-filter_complex GRAPH]
        [-map LABEL] OUTPUT_ARGS DEST ... -y

With tiled output the `-map LABEL OUTPUT_ARGS DEST` group repeats once per tile.
"""

from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from loguru import logger

from ..config.audio import CHANNELS_5_1, STEREO_TO_5_1_MAP
from ..config.common import COMMENT_ENCODED
from ..domain.duration import Duration, DurationKind
from ..domain.encoders import AudioChannels, AudioEncoder, EncoderFamily, VideoEncoder
from ..domain.exceptions import AudioChannelsException
from ..domain.geometry import Crop, Padding, Resolution, Slicer
from ..utils.format_utils import format_number

# Visual rotation (clockwise degrees) -> transpose filters
ROTATION_FILTERS = {
    90: "transpose=1",
    180: "transpose=1,transpose=1",
    270: "transpose=2",
}


class FilterChain:
    """
    An ordered filter graph whose stages are threaded through named connectors.

    Each stage reads some connectors and writes others. By default a stage reads
    the outputs of the previous stage (the first one reads `source_label`), so a
    linear chain renders as:

        [0:v] crop=... [cropped]; [cropped] pad=... [padded]

    A stage can also name its inputs explicitly, which is how the per-tile crops
    each consume one output of a split.
    """

    def __init__(self, source_label: str = "0:v"):
        self._stages: List[Tuple[List[str], str, List[str]]] = []
        self._last_outputs: List[str] = [source_label]

    def add(self, expression: str, outputs: Sequence[str], inputs: Optional[Sequence[str]] = None) -> "FilterChain":
        stage_inputs = list(inputs) if inputs is not None else list(self._last_outputs)
        self._stages.append((stage_inputs, expression, list(outputs)))
        self._last_outputs = list(outputs)
        return self

    @property
    def last_outputs(self) -> List[str]:
        return list(self._last_outputs)

    def __len__(self) -> int:
        return len(self._stages)

    @staticmethod
    def _labels(names: Sequence[str]) -> str:
        return "".join(f"[{name}]" for name in names)

    def render(self) -> str:
        return "; ".join(
            f"{self._labels(inputs)} {expression} {self._labels(outputs)}"
            for inputs, expression, outputs in self._stages
        )


def _seconds_of(value: Duration, frame_rate: float) -> float:
    """Reads a Duration in seconds, converting frame counts with the given rate."""
    if value.kind == DurationKind.FRAMES:
        return Duration.get_seconds(value.frames, frame_rate)
    return value.seconds


def _input_arguments(source_path: Union[str, Path], start_seconds: float, skip_streams: Sequence[str]) -> List[str]:
    args = ["-hide_banner"]
    if start_seconds > 0:
        args.extend(["-ss", f"{format_number(round(start_seconds, 2))}s"])
    args.extend(skip_streams)
    args.extend(["-i", str(source_path)])
    return args


def tile_labels(slicer: Slicer) -> List[Tuple[int, int, str]]:
    """Returns (row, col, 'r{row}c{col}') for every tile, row-major, 1-based."""
    return [
        (row, col, f"r{row}c{col}")
        for row in range(1, slicer.vertical_number + 1)
        for col in range(1, slicer.horizontal_number + 1)
    ]


def tile_crop_expression(slicer: Slicer, row: int, col: int) -> str:
    """
    Returns the `crop=w:h:x:y` filter for one tile.

    The sizes are left as FFmpeg expressions of `iw`/`ih`, which only the
    running FFmpeg knows. Adjacent tiles overlap by the configured pixels.
    """
    cols, rows = slicer.horizontal_number, slicer.vertical_number
    h_overlap, v_overlap = slicer.horizontal_overlap, slicer.vertical_overlap
    w = f"(iw+{h_overlap}*{cols - 1})/{cols}"
    h = f"(ih+{v_overlap}*{rows - 1})/{rows}"
    x = f"{w}*{col - 1}-({h_overlap}*{col - 1})"
    y = f"{h}*{row - 1}-({v_overlap}*{row - 1})"
    return f"crop={w}:{h}:{x}:{y}"


def tile_resolution(resolution: Resolution, slicer: Slicer) -> Resolution:
    """Evaluates the tile size for a full output `resolution`, snapped to its multiple."""
    cols, rows = slicer.horizontal_number, slicer.vertical_number
    width = (resolution.horizontal + slicer.horizontal_overlap * (cols - 1)) // cols
    height = (resolution.vertical + slicer.vertical_overlap * (rows - 1)) // rows
    return Resolution(width, height, resolution.multiple, resolution.is_enabled)


def add_rounding(chain: FilterChain, multiple: int, suffix: str, output: str):
    """Rounds the height, then the width, of the current output to `multiple`, keeping the aspect ratio."""
    chain.add(f"scale=0:-{multiple}", [f"scaledh{suffix}"])
    chain.add(f"scale=-{multiple}:0", [output])


def build_video_arguments(
    source_path: Union[str, Path],
    destination_path: Union[str, Path],
    start: Optional[Duration] = None,
    duration: Optional[Duration] = None,
    encoder: VideoEncoder = VideoEncoder.HAP,
    resolution: Optional[Resolution] = None,
    bitrate: int = 0,
    in_frame_rate: float = 0.0,
    out_frame_rate: float = 0.0,
    rotation: int = 0,
    rotate_metadata_only: bool = False,
    crop: Optional[Crop] = None,
    padding: Optional[Padding] = None,
    slicer: Optional[Slicer] = None,
) -> List[str]:
    """
    Synthesizes the FFmpeg arguments converting the video stream of one source.

    Args:
        source_path: The input file.
        destination_path: The output file. With tiling, each tile's file name is
                          derived from it via `Slicer.get_slice_name`.
        start: Where to start reading. Frame counts are converted with `in_frame_rate`.
        duration: How much to convert. Time kinds emit `-t`, the frame kind emits
                  `-frames:v`. Still-image encoders always write exactly one frame.
        encoder: The target encoder. If it needs a size multiple (HAP) and no
                 `resolution` is given, the graph rounds every output to it.
        resolution: Output size, emitted as `-s WxH` when both sides are positive.
                    With tiling this is the size of the whole mosaic; each tile
                    gets its share.
        bitrate: Constant bitrate in kb/s, 0 to leave it to the encoder.
        in_frame_rate: Frame rate of the source.
        out_frame_rate: Output frame rate, 0 to keep the source rate.
        rotation: Clockwise rotation, one of 0, 90, 180 or 270.
        rotate_metadata_only: Write a rotation tag instead of transposing pixels.
        crop: Applied when given and enabled.
        padding: Applied when given and enabled.
        slicer: Splits the output into tiles when enabled with more than one tile.

    Returns:
        The argument list, without the executable, always ending with `-y`.
    """
    start = start.clone() if start is not None else Duration()
    duration = duration.clone() if duration is not None else Duration()
    profile = encoder.profile
    is_copy = profile.family == EncoderFamily.COPY

    args_in = _input_arguments(source_path, _seconds_of(start, in_frame_rate), ("-an", "-sn", "-dn"))

    if profile.is_still:
        duration = Duration(frames=1, frame_rate=in_frame_rate)

    # --- Output arguments, shared by every output file ---
    args_out: List[str] = []
    if duration.kind != DurationKind.FRAMES and duration.seconds > 0:
        args_out.extend(["-t", f"{format_number(duration.seconds)}s"])

    args_out.extend(profile.codec_arguments())
    if profile.codec and not is_copy:
        args_out.extend(["-bf", "0"])
        if out_frame_rate > 0:
            args_out.extend(["-g", str(int(round(out_frame_rate)))])

    tiling = slicer is not None and slicer.is_tiling
    has_size = resolution is not None and resolution.horizontal > 0 and resolution.vertical > 0
    # without -s, encoders needing a size multiple get each output rounded by the graph
    round_to = profile.resolution_multiple if not is_copy and not has_size else 0
    if is_copy and (resolution is not None or bitrate or out_frame_rate):
        logger.debug("Stream copy ignores resolution, bitrate and frame rate settings.")
    if not is_copy:
        if has_size:
            out_resolution = tile_resolution(resolution, slicer) if tiling else resolution
            args_out.extend(["-s", str(out_resolution)])
        if bitrate > 0:
            args_out.extend(["-b:v", f"{bitrate}k", "-minrate", f"{bitrate}k", "-maxrate", f"{bitrate}k"])
        if out_frame_rate > 0:
            args_out.extend(["-r", format_number(out_frame_rate)])

    if duration.kind == DurationKind.FRAMES and duration.frames > 0:
        args_out.extend(["-frames:v", str(duration.frames)])

    if rotation and rotation not in ROTATION_FILTERS:
        logger.warning(f"Unsupported rotation {rotation}, only 90, 180 and 270 are allowed. Ignoring it.")
        rotation = 0
    if rotation and rotate_metadata_only:
        args_out.extend(["-metadata:s:v:0", f"rotate=-{rotation}"])
    if profile.codec:
        args_out.extend(["-metadata", f"comment={COMMENT_ENCODED}"])

    # --- Filter graph: crop -> pad -> rotate -> [round | split -> per-tile crop -> round] ---
    chain = FilterChain("0:v")
    if not is_copy:
        if crop is not None and crop.is_enabled:
            chain.add(
                f"crop=iw-{crop.left}-{crop.right}:ih-{crop.top}-{crop.bottom}:{crop.x}:{crop.y}",
                ["cropped"],
            )
        if padding is not None and padding.is_enabled:
            chain.add(
                f"pad=iw+{padding.left}+{padding.right}:ih+{padding.top}+{padding.bottom}:"
                f"{padding.left}:{padding.top}",
                ["padded"],
            )
        if rotation and not rotate_metadata_only:
            chain.add(ROTATION_FILTERS[rotation], ["rotated"])
    elif tiling:
        logger.warning("Tiled output needs re-encoding, ignoring slices for stream copy.")
        tiling = False

    args = list(args_in)
    if tiling:
        tiles = tile_labels(slicer)
        chain.add(f"split={len(tiles)}", [f"split_{label}" for _, _, label in tiles])
        for row, col, label in tiles:
            if round_to:
                chain.add(tile_crop_expression(slicer, row, col), [f"cropped_{label}"], inputs=[f"split_{label}"])
                add_rounding(chain, round_to, f"_{label}", f"out_{label}")
            else:
                chain.add(tile_crop_expression(slicer, row, col), [f"out_{label}"], inputs=[f"split_{label}"])

        args.extend(["-filter_complex", chain.render()])
        for row, col, label in tiles:
            args.extend(["-map", f"[out_{label}]"])
            args.extend(args_out)
            args.append(Slicer.get_slice_name(destination_path, row, col))
    elif round_to or len(chain):
        if round_to:
            add_rounding(chain, round_to, "", "rounded")
        args.extend(["-filter_complex", chain.render(), "-map", f"[{chain.last_outputs[0]}]"])
        args.extend(args_out)
        args.append(str(destination_path))
    else:
        args.extend(args_out)
        args.append(str(destination_path))

    args.append("-y")
    return args


def channel_path(destination_path: Union[str, Path], channel: str) -> str:
    """`dir/clip.wav` -> `dir/clip_FL.wav`"""
    destination = Path(destination_path)
    return str(destination.with_name(f"{destination.stem}_{channel}{destination.suffix}"))


def build_audio_arguments(
    source_path: Union[str, Path],
    destination_path: Union[str, Path],
    start: Optional[Duration] = None,
    duration: Optional[Duration] = None,
    encoder: AudioEncoder = AudioEncoder.WAV_16,
    audio_rate: int = 0,
    channels: Optional[AudioChannels] = None,
    split_channels: bool = False,
    in_channels: Optional[AudioChannels] = None,
    in_frame_rate: float = 0.0,
) -> List[str]:
    """
    Synthesizes the FFmpeg arguments converting the audio stream of one source.

    `channels` is None to keep the source layout. Otherwise the output is mixed
    to that layout, or with `split_channels` written as one file per channel
    named by `channel_path` (`_L`/`_R` for stereo, `_FL`... for 5.1).

    Raises:
        AudioChannelsException: If a 5.1 split is requested for a source that is not 5.1.
    """
    start = start.clone() if start is not None else Duration()
    duration = duration.clone() if duration is not None else Duration()

    args_in = _input_arguments(source_path, _seconds_of(start, in_frame_rate), ("-vn", "-sn", "-dn"))

    args_out: List[str] = []
    duration_seconds = _seconds_of(duration, in_frame_rate)
    if duration_seconds > 0:
        args_out.extend(["-t", f"{format_number(duration_seconds)}s"])
    args_out.extend(["-metadata", f"comment={COMMENT_ENCODED}"])
    args_out.extend(["-c:a", encoder.codec])
    if audio_rate > 0:
        args_out.extend(["-ar", str(audio_rate)])

    chain = FilterChain("0:a")
    split_outputs: List[str] = []

    if channels == AudioChannels.MONO:
        if split_channels:
            chain.add("channelsplit=channel_layout=stereo:channels=FL", ["L"])
            split_outputs = ["L"]
        else:
            args_out.extend(["-ac", "1"])
    elif channels == AudioChannels.STEREO:
        if split_channels:
            chain.add("channelsplit=channel_layout=stereo", ["L", "R"])
            split_outputs = ["L", "R"]
        else:
            args_out.extend(["-ac", "2"])
    elif channels == AudioChannels.CH_5_1:
        if split_channels:
            if in_channels != AudioChannels.CH_5_1:
                source_layout = in_channels.value if in_channels is not None else "unknown"
                raise AudioChannelsException(f"Cannot split a {source_layout} source into 6 channels")
            chain.add("channelsplit=channel_layout=5.1", CHANNELS_5_1)
            split_outputs = list(CHANNELS_5_1)
        elif in_channels == AudioChannels.MONO:
            chain.add(f"asplit={len(CHANNELS_5_1)}", CHANNELS_5_1)
            chain.add(f"join=inputs={len(CHANNELS_5_1)}:channel_layout=5.1", ["joined"])
        elif in_channels == AudioChannels.STEREO:
            chain.add("channelsplit=channel_layout=stereo", ["L", "R"])
            chain.add(f"join=inputs=2:channel_layout=5.1:map={STEREO_TO_5_1_MAP}", ["joined"])
        elif in_channels is None:
            args_out.extend(["-ac", "6"])

    args = list(args_in)
    if split_outputs:
        args.extend(["-filter_complex", chain.render()])
        for channel in split_outputs:
            args.extend(["-map", f"[{channel}]"])
            args.extend(args_out)
            args.append(channel_path(destination_path, channel))
    elif len(chain):
        args.extend(["-filter_complex", chain.render(), "-map", f"[{chain.last_outputs[0]}]"])
        args.extend(args_out)
        args.append(str(destination_path))
    else:
        args.extend(args_out)
        args.append(str(destination_path))

    args.append("-y")
    return args
