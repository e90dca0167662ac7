from pathlib import Path

import pytest

from dtconvert.domain.geometry import Crop, Padding, Resolution, Slicer


@pytest.mark.parametrize(
    "value, multiple, expected",
    [
        (1001, 8, 1000),
        (1004, 8, 1008),
        (1920, 8, 1920),
        (1919, 4, 1920),
        (1081, 0, 1081),
    ],
)
def test_adjust_multiple(value, multiple, expected):
    assert Resolution.adjust_multiple(value, multiple) == expected


def test_resolution_snaps_on_assignment():
    resolution = Resolution(multiple=8)
    resolution.horizontal = 1001
    resolution.vertical = 1083
    assert resolution.horizontal % 8 == 0
    assert resolution.vertical % 8 == 0
    assert str(resolution) == "1000x1080"


def test_aspect_ratio():
    assert Resolution(1920, 1080).aspect_ratio() == pytest.approx(16 / 9)
    assert Resolution(1920, 1080).aspect_ratio(9) == pytest.approx(16)
    assert Resolution(1920, 0).aspect_ratio() == -1


def test_resolution_clone_is_independent():
    original = Resolution(640, 360, 4, True)
    copy = original.clone()
    copy.horizontal = 1280
    assert original.horizontal == 640
    assert copy.multiple == 4
    assert copy.is_enabled


def test_crop_and_padding_output_size():
    crop = Crop(10, 20, 30, 40)
    assert crop.out_width(1920) == 1880
    assert crop.out_height(1080) == 1020
    assert (crop.x, crop.y) == (10, 20)

    padding = Padding(10, 20, 30, 40)
    assert padding.out_width(1920) == 1960
    assert padding.out_height(1080) == 1140


def test_negative_insets_clamp_to_zero():
    crop = Crop(left=-5)
    assert crop.left == 0
    padding = Padding()
    padding.bottom = -1
    assert padding.bottom == 0


def test_slicer_clamps_counts_and_overlaps():
    slicer = Slicer(horizontal_number=0, vertical_number=-2, horizontal_overlap=-10)
    assert slicer.horizontal_number == 1
    assert slicer.vertical_number == 1
    assert slicer.horizontal_overlap == 0


def test_slicer_is_tiling():
    assert not Slicer(2, 2).is_tiling
    assert not Slicer(1, 1, is_enabled=True).is_tiling
    assert Slicer(2, 1, is_enabled=True).is_tiling
    assert Slicer(3, 2, is_enabled=True).tile_count == 6


def test_slice_size():
    slicer = Slicer(horizontal_number=2, vertical_number=2, horizontal_overlap=20, vertical_overlap=10)
    assert slicer.get_slice_width(1920) == 970
    assert slicer.get_slice_height(1080) == 545


def test_slice_name():
    name = Slicer.get_slice_name(Path("out") / "clip.mov", 1, 2)
    assert name == str(Path("out") / "clip_r1c2.mov")


def test_clone_copies_every_field():
    slicer = Slicer(3, 2, 16, 8, True)
    copy = slicer.clone()
    assert (copy.horizontal_number, copy.vertical_number) == (3, 2)
    assert (copy.horizontal_overlap, copy.vertical_overlap) == (16, 8)
    assert copy.is_enabled
    crop = Crop(1, 2, 3, 4, True).clone()
    assert isinstance(crop, Crop)
    assert (crop.left, crop.top, crop.right, crop.bottom, crop.is_enabled) == (1, 2, 3, 4, True)
