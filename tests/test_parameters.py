from datetime import datetime
from pathlib import Path

import pytest

from dtconvert.domain.encoders import AudioChannels, VideoEncoder
from dtconvert.domain.geometry import Resolution
from dtconvert.domain.parameters import ConversionParameters, ConversionStatus

from .conftest import INVALID_PROBE_TEXT, PROBE_TEXT

NOW = datetime(2024, 1, 1, 12, 34, 56)
SHORT_PROBE_TEXT = PROBE_TEXT.replace("Duration: 00:01:00.00", "Duration: 00:00:20.00")


def test_probe_results_seed_settings(make_params):
    params = make_params()
    assert params.is_valid
    assert params.is_conversion_enabled
    assert params.is_video_enabled
    assert params.is_audio_enabled
    assert params.duration_seconds == pytest.approx(60)
    assert params.out_frame_rate == 25
    assert params.video_bitrate == 4800
    assert str(params.video_final_resolution) == "1920x1080"


def test_invalid_source_disables_conversion(make_params):
    params = make_params(INVALID_PROBE_TEXT)
    assert not params.is_valid
    assert not params.is_conversion_enabled
    params.is_conversion_enabled = True
    assert not params.is_conversion_enabled


def test_paste_keeps_source_and_validity(make_params, tmp_path):
    valid = make_params()
    valid.video_encoder = VideoEncoder.H264
    valid.crop.left = 16
    valid.crop.is_enabled = True
    valid.is_rotation_enabled = True
    valid.rotation = 90

    other_path = tmp_path / "broken.mov"
    invalid = make_params(INVALID_PROBE_TEXT, other_path)
    invalid_info = invalid.source_info
    invalid.paste_parameters(valid)

    assert invalid.source_path == other_path
    assert invalid.source_info is invalid_info
    assert not invalid.is_valid
    assert not invalid.is_conversion_enabled
    assert invalid.video_encoder == VideoEncoder.H264
    assert invalid.rotation == 90

    valid.crop.left = 100
    assert invalid.crop.left == 16


def test_paste_clamps_time_range_to_target_source(make_params, tmp_path):
    long_params = make_params()
    long_params.start_seconds = 10
    assert long_params.duration_seconds == pytest.approx(50)

    short_params = make_params(SHORT_PROBE_TEXT, tmp_path / "short.mov")
    short_params.paste_parameters(long_params)

    assert short_params.start_seconds == pytest.approx(10)
    assert short_params.duration_seconds == pytest.approx(10)
    assert short_params.end_seconds == pytest.approx(20)


def test_paste_keeps_frame_durations(make_params, tmp_path):
    origin = make_params()
    origin.duration_timecode = "250f"

    target = make_params(path=tmp_path / "other.mov")
    target.paste_parameters(origin)

    assert target.duration_timecode == "250f"
    assert target.duration_frames == 250
    assert target.duration_seconds == pytest.approx(10)


def test_hap_sets_resolution_multiple(make_params):
    params = make_params()
    params.video_encoder = VideoEncoder.HAP
    assert params.resolution.multiple == 4
    params.resolution.horizontal = 1001
    assert params.resolution.horizontal == 1000


def test_final_resolution_applies_crop_and_padding(make_params):
    params = make_params()
    params.crop.left = 10
    params.crop.right = 10
    params.crop.is_enabled = True
    params.padding.top = 20
    params.padding.is_enabled = True
    assert str(params.video_final_resolution) == "1900x1100"

    params.resolution = Resolution(1280, 720, is_enabled=True)
    assert str(params.video_final_resolution) == "1280x720"


def test_effective_bitrate_and_frame_rate(make_params):
    params = make_params()
    params.video_bitrate = 2000
    assert params.video_bitrate == 4800
    params.is_video_bitrate_enabled = True
    assert params.video_bitrate == 2000

    params.out_frame_rate = 29.971
    assert params.out_frame_rate == 25
    params.is_out_frame_rate_enabled = True
    assert params.out_frame_rate == 29.97


@pytest.mark.parametrize("value, expected", [(90, 90), (450, 90), (45, 0), (-90, 270)])
def test_rotation_validation(make_params, value, expected):
    params = make_params()
    params.rotation = value
    assert params.rotation == expected


def test_status_guard(make_params):
    params = make_params()
    assert params.try_begin_video()
    assert not params.try_begin_video(ConversionStatus.CREATING_PREVIEW_OUT)
    assert params.try_begin_audio()
    params.finish_video(True)
    assert params.video_status == ConversionStatus.SUCCESS
    assert params.try_begin_video()
    params.cancel_video()
    assert params.video_status == ConversionStatus.NONE
    params.finish_audio(False)
    assert params.audio_status == ConversionStatus.FAILED


def test_begin_requires_active_status(make_params):
    with pytest.raises(ValueError):
        make_params().try_begin_video(ConversionStatus.SUCCESS)


def test_time_range_editing(make_params):
    params = make_params()
    params.start_seconds = 10
    assert params.duration_seconds == pytest.approx(50)
    assert params.end_seconds == pytest.approx(60)

    params.start_seconds = 100
    assert params.start_seconds == pytest.approx(10)

    params.duration_seconds = 200
    assert params.duration_seconds == pytest.approx(50)

    params.end_seconds = 40
    assert params.duration_seconds == pytest.approx(30)

    params.start_timecode = "00:20"
    assert params.start_seconds == pytest.approx(20)
    assert params.end_seconds == pytest.approx(40)
    assert params.end_timecode == "00:40"


def test_moving_start_earlier_keeps_end(make_params):
    params = make_params()
    params.start_seconds = 40
    assert params.end_seconds == pytest.approx(60)

    params.start_seconds = 30
    assert params.start_seconds == pytest.approx(30)
    assert params.duration_seconds == pytest.approx(30)
    assert params.end_seconds == pytest.approx(60)


def test_moving_start_frames_earlier_keeps_end(make_params):
    params = make_params()
    params.duration_timecode = "1500f"
    params.start_frames = 1000
    assert params.end_frames == 1500

    params.start_frames = 750
    assert params.duration_frames == 750
    assert params.end_frames == 1500


def test_duration_in_frames(make_params):
    params = make_params()
    params.duration_timecode = "250f"
    assert params.duration_frames == 250
    assert params.duration_seconds == pytest.approx(10)
    assert params.duration_timecode == "250f"

    params.duration_frames = 10_000
    assert params.duration_frames == 1500


def test_duration_frames_follow_output_frame_rate(make_params):
    params = make_params()
    params.duration_frames = 250
    params.out_frame_rate = 50
    params.is_out_frame_rate_enabled = True
    assert params.duration_frames == 500


def test_still_duration_is_one_frame(make_params):
    params = make_params()
    params.start_seconds = 5
    params.video_encoder = VideoEncoder.STILL_PNG
    assert params.duration_timecode == "1f"
    assert params.end_timecode == params.start_timecode


def test_time_setters_need_a_probe(source_file):
    params = ConversionParameters(source_file)
    params.duration_seconds = 10
    assert params.duration_seconds == 0


def test_destination_video_path(make_params, source_file):
    params = make_params()
    assert params.destination_video_path() == source_file.parent / "HAP" / "clip.mov"

    params.resolution = Resolution(1280, 720, 4, True)
    params.is_out_frame_rate_enabled = True
    params.out_frame_rate = 29.97
    params.is_video_bitrate_enabled = True
    params.video_bitrate = 3000
    assert params.destination_video_path() == source_file.parent / "HAP" / "clip_1280x720_29.97_3000.mov"


def test_destination_collision_suffix(make_params, source_file):
    params = make_params()
    existing = source_file.parent / "HAP" / "clip.mov"
    existing.parent.mkdir()
    existing.touch()
    assert params.destination_video_path(NOW) == source_file.parent / "HAP" / "clip_123456.mov"


def test_destination_sequence_pattern(make_params, source_file):
    params = make_params()
    params.video_encoder = VideoEncoder.PNG_SEQUENCE
    # 60 s at 25 fps -> 1500 frames -> 4 digits
    assert params.destination_video_path() == source_file.parent / "PNG_Sequence" / "clip" / "clip-%04d.png"


def test_destination_copy_keeps_extension(make_params, source_file):
    params = make_params()
    params.video_encoder = VideoEncoder.COPY
    assert params.destination_video_path() == source_file.parent / "Copy" / "clip.mov"


def test_destination_without_source():
    assert ConversionParameters().destination_video_path() == Path("noname.mov")


def test_destination_audio_path(make_params, source_file):
    params = make_params()
    assert params.destination_audio_path() == source_file.parent / "WAV_16" / "clip.wav"
    params.is_audio_rate_enabled = True
    params.audio_rate = 44100
    params.is_channels_enabled = True
    params.channels = AudioChannels.MONO
    assert params.destination_audio_path() == source_file.parent / "WAV_16" / "clip_44100_Mono.wav"


def test_build_video_arguments(make_params, source_file):
    params = make_params()
    params.start_seconds = 10
    args = params.build_video_arguments()
    assert args[args.index("-i") + 1] == str(source_file)
    assert args[args.index("-ss") + 1] == "10s"
    assert args[args.index("-t") + 1] == "50s"
    assert "-s" not in args
    assert "-b:v" not in args
    assert args[-2:] == [str(source_file.parent / "HAP" / "clip.mov"), "-y"]


def test_build_video_arguments_passes_enabled_settings(make_params):
    params = make_params()
    params.resolution = Resolution(1280, 720, 4, True)
    params.is_video_bitrate_enabled = True
    params.video_bitrate = 3000
    params.is_rotation_enabled = True
    params.rotation = 90
    args = params.build_video_arguments()
    assert args[args.index("-s") + 1] == "1280x720"
    assert args[args.index("-b:v") + 1] == "3000k"
    assert "transpose=1" in args[args.index("-filter_complex") + 1]


def test_build_audio_arguments(make_params):
    params = make_params()
    params.is_channels_enabled = True
    params.channels = AudioChannels.STEREO
    params.split_channels = True
    args = params.build_audio_arguments()
    assert args.count("-map") == 2
    assert args[args.index("-t") + 1] == "60s"


def test_preview_arguments(make_params):
    params = make_params()
    params.preview_seconds = 5
    preview_in = params.build_preview_in_arguments()
    assert preview_in[preview_in.index("-ss") + 1] == "5s"
    assert preview_in[preview_in.index("-s") + 1] == "640x360"
    assert preview_in[preview_in.index("-frames:v") + 1] == "1"
    assert preview_in[-2] == str(params.thumbnail_path_in)

    params.crop.top = 100
    params.crop.is_enabled = True
    preview_out = params.build_preview_out_arguments()
    assert "crop=iw-0-0:ih-100-0:0:0" in preview_out[preview_out.index("-filter_complex") + 1]
    assert preview_out[-2] == str(params.thumbnail_path_out)
    assert params.thumbnail_path_out.name == "clip_out.jpg"


def test_reset_to_defaults(make_params):
    params = make_params()
    params.video_encoder = VideoEncoder.H264
    params.crop.is_enabled = True
    params.reset_to_defaults()
    assert params.video_encoder == VideoEncoder.HAP
    assert not params.crop.is_enabled
    assert params.is_valid
