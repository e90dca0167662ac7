import pytest

from dtconvert.cli import get_args
from dtconvert.domain import parameters
from dtconvert.domain.encoders import AudioChannels, VideoEncoder
from dtconvert.domain.media import parse_probe_output
from dtconvert.domain.parameters import ConversionParameters
from dtconvert.pipeline.batch_pipeline import BatchPipeline, apply_args

from .conftest import INVALID_PROBE_TEXT, PROBE_TEXT


@pytest.fixture
def fake_probe(monkeypatch):
    """Answers probes from canned text: files named 'broken*' are invalid."""

    def _probe(path, timeout_ms=1000, ffprobe_path=None):
        text = INVALID_PROBE_TEXT if path.name.startswith("broken") else PROBE_TEXT
        return parse_probe_output(text, path)

    monkeypatch.setattr(parameters, "probe_source", _probe)


class FakeService:
    def __init__(self):
        self.converted = []

    def create_preview_in(self, params):
        return params.thumbnail_path_in

    def create_preview_out(self, params):
        return params.thumbnail_path_out

    def convert(self, params):
        self.converted.append(params)
        return [params.destination_video_path()]


def test_get_args_parses_geometry(source_file):
    args = get_args([
        str(source_file), "--resolution", "1280x720", "--crop", "1,2,3,4", "--pad", "0,10,0,10",
        "--slices", "2x3", "--overlap", "16,8", "--rotate", "90", "--channels", "5.1",
    ])
    assert args.files == [source_file.resolve()]
    assert args.resolution == (1280, 720)
    assert args.crop == (1, 2, 3, 4)
    assert args.pad == (0, 10, 0, 10)
    assert args.slices == (2, 3)
    assert args.overlap == (16, 8)
    assert args.rotate == 90


@pytest.mark.parametrize(
    "argv",
    [
        ["clip.mov", "--no-video", "--no-audio"],
        ["clip.mov", "--overlap", "4,4"],
        ["clip.mov", "--resolution", "1280"],
        ["clip.mov", "--crop", "1,2,x,4"],
        ["clip.mov", "--encoder", "VP9"],
    ],
)
def test_get_args_rejects_bad_input(argv):
    with pytest.raises(SystemExit):
        get_args(argv)


def test_apply_args(make_params, source_file):
    args = get_args([
        str(source_file), "--encoder", "H264", "--resolution", "1280x720", "--bitrate", "3000",
        "--framerate", "50", "--start", "00:10", "--duration", "20s", "--crop", "8,0,8,0",
        "--slices", "1x2", "--overlap", "32,0", "--audio-rate", "44100", "--channels", "Mono",
        "--split-channels", "--no-audio",
    ])
    params = make_params()
    apply_args(params, args)

    assert params.video_encoder == VideoEncoder.H264
    assert str(params.video_final_resolution) == "1280x720"
    assert params.video_bitrate == 3000
    assert params.out_frame_rate == 50
    assert params.start_seconds == pytest.approx(10)
    assert params.duration_seconds == pytest.approx(20)
    assert params.crop.is_enabled and params.crop.left == 8
    assert params.slicer.is_tiling
    assert (params.slicer.vertical_number, params.slicer.horizontal_number) == (1, 2)
    assert params.slicer.horizontal_overlap == 32
    assert params.audio_rate == 44100
    assert params.channels == AudioChannels.MONO
    assert params.split_channels
    assert params.is_video_enabled
    assert not params.is_audio_enabled


def test_dry_run_prints_commands(fake_probe, source_file, capsys):
    args = get_args([str(source_file), "--dry-run", "--preview"])
    pipeline = BatchPipeline(args.files, args=args)

    results = pipeline.run()

    assert results == {source_file.resolve(): []}
    assert pipeline.failed == []
    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 4
    assert all(line.startswith("ffmpeg -hide_banner") for line in lines)
    assert "hap" in lines[2]
    assert "pcm_s16le" in lines[3]


def test_run_converts_and_collects_failures(fake_probe, tmp_path):
    good = tmp_path / "clip.mov"
    broken = tmp_path / "broken.mov"
    for path in (good, broken):
        path.touch()
    args = get_args([str(good), str(broken), "--processes", "2"])
    service = FakeService()

    results = BatchPipeline(args.files, args=args, service=service).run()

    assert list(results) == [good.resolve()]
    assert results[good.resolve()] == [good.resolve().parent / "HAP" / "clip.mov"]
    assert len(service.converted) == 1
    assert isinstance(service.converted[0], ConversionParameters)


def test_unexpected_errors_do_not_stop_the_batch(fake_probe, tmp_path):
    first = tmp_path / "a.mov"
    second = tmp_path / "b.mov"
    for path in (first, second):
        path.touch()

    class ExplodingService(FakeService):
        def convert(self, params):
            if params.source_path.name == "a.mov":
                raise RuntimeError("disk on fire")
            return super().convert(params)

    args = get_args([str(first), str(second)])
    pipeline = BatchPipeline(args.files, args=args, service=ExplodingService())
    pipeline.run()

    assert pipeline.failed == [first.resolve()]
    assert second.resolve() in pipeline.results


def test_empty_batch():
    args = get_args(["nothing.mov", "--dry-run"])
    assert BatchPipeline([], args=args).run() == {}
