import subprocess

import pytest

from dtconvert.domain.media import parse_probe_output
from dtconvert.domain.parameters import ConversionParameters

PROBE_TEXT = """\
Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'clip.mov':
  Duration: 00:01:00.00, start: 0.000000, bitrate: 5000 kb/s
    Stream #0:0(und): Video: h264 (High) (avc1 / 0x31637661), yuv420p(tv, bt709), 1920x1080, 4800 kb/s, 25 fps, 25 tbr, 12800 tbn (default)
    Stream #0:1(und): Audio: pcm_s16le (sowt / 0x74776F73), 48000 Hz, stereo, s16, 1536 kb/s (default)
"""

INVALID_PROBE_TEXT = "clip.txt: Invalid data found when processing input\n"


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / "clip.mov"
    path.write_bytes(b"\0" * 1024)
    return path


@pytest.fixture
def make_params(source_file):
    """Builds a ConversionParameters for `source_file` from canned probe text, without running ffprobe."""

    def _make(probe_text=PROBE_TEXT, path=None):
        path = path or source_file
        params = ConversionParameters(path)
        params.thumbnail_dir = path.parent / "thumbnails"
        params.apply_source_description(parse_probe_output(probe_text, path))
        return params

    return _make


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=["ffmpeg"], returncode=returncode, stdout=stdout, stderr=stderr)
