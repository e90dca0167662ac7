"""
Geometry parameters applied to the video picture: resolution, crop, padding and
tiled slicing.

Every class here is a small mutable value holder owned by one
`ConversionParameters`. Invalid assignments are absorbed: negative insets and
overlaps become 0 and tile counts below 1 become 1, each with a logged warning.
"""

import math
from pathlib import Path
from typing import Union

from loguru import logger


def _non_negative(name: str, value: int) -> int:
    value = int(value)
    if value < 0:
        logger.warning(f"{name} cannot be negative ({value}), using 0.")
        return 0
    return value


class Resolution:
    """
    A horizontal x vertical pixel size, snapped to a multiple on assignment.

    When `multiple` is not 0, every value written to `horizontal` or `vertical`
    is replaced by the nearest multiple of `multiple` (ties round up), so both
    dimensions always stay divisible by it. Changing `multiple` does not re-snap
    values already stored.
    """

    def __init__(self, horizontal: int = 0, vertical: int = 0, multiple: int = 0, is_enabled: bool = False):
        self.is_enabled = is_enabled
        self.multiple = multiple
        self._horizontal = 0
        self._vertical = 0
        self.horizontal = horizontal
        self.vertical = vertical

    @property
    def horizontal(self) -> int:
        return self._horizontal

    @horizontal.setter
    def horizontal(self, value: int):
        self._horizontal = self.adjust_multiple(value, self.multiple)

    @property
    def vertical(self) -> int:
        return self._vertical

    @vertical.setter
    def vertical(self, value: int):
        self._vertical = self.adjust_multiple(value, self.multiple)

    @staticmethod
    def adjust_multiple(value: int, multiple: int) -> int:
        """Returns the multiple of `multiple` nearest to `value` (unchanged if multiple is 0)."""
        value = int(value)
        if multiple == 0 or value % multiple == 0:
            return value
        return int(math.floor(value / multiple + 0.5)) * multiple

    def aspect_ratio(self, denominator: int = 0) -> float:
        """
        Returns horizontal / vertical (like 1.777), or -1 when vertical is 0.

        With a positive `denominator` the ratio is scaled to it, so that
        `aspect_ratio(9)` of 1920x1080 gives 16. In that form 0 is returned
        when vertical or denominator is not positive.
        """
        if denominator:
            if self._vertical > 0 and denominator > 0:
                return self._horizontal / self._vertical * denominator
            return 0
        if self._vertical > 0:
            return self._horizontal / self._vertical
        return -1

    def clone(self) -> "Resolution":
        return Resolution(self._horizontal, self._vertical, self.multiple, self.is_enabled)

    def __str__(self) -> str:
        return f"{self._horizontal}x{self._vertical}"

    def __repr__(self) -> str:
        return f"Resolution({self._horizontal}x{self._vertical}, multiple={self.multiple}, enabled={self.is_enabled})"


class _Insets:
    """Four non-negative edge values shared by Crop and Padding."""

    def __init__(self, left: int = 0, top: int = 0, right: int = 0, bottom: int = 0, is_enabled: bool = False):
        self.is_enabled = is_enabled
        self.left = left
        self.top = top
        self.right = right
        self.bottom = bottom

    @property
    def left(self) -> int:
        return self._left

    @left.setter
    def left(self, value: int):
        self._left = _non_negative("left", value)

    @property
    def top(self) -> int:
        return self._top

    @top.setter
    def top(self, value: int):
        self._top = _non_negative("top", value)

    @property
    def right(self) -> int:
        return self._right

    @right.setter
    def right(self, value: int):
        self._right = _non_negative("right", value)

    @property
    def bottom(self) -> int:
        return self._bottom

    @bottom.setter
    def bottom(self, value: int):
        self._bottom = _non_negative("bottom", value)

    @property
    def x(self) -> int:
        return self._left

    @property
    def y(self) -> int:
        return self._top

    def clone(self):
        return type(self)(self._left, self._top, self._right, self._bottom, self.is_enabled)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(left={self._left}, top={self._top}, right={self._right}, "
            f"bottom={self._bottom}, enabled={self.is_enabled})"
        )


class Crop(_Insets):
    """Pixels removed from each edge of the source picture."""

    def out_width(self, in_width: int) -> int:
        return in_width - self.left - self.right

    def out_height(self, in_height: int) -> int:
        return in_height - self.top - self.bottom


class Padding(_Insets):
    """Pixels added to each edge of the picture."""

    def out_width(self, in_width: int) -> int:
        """Calculates padded video width from the original width."""
        return in_width + self.left + self.right

    def out_height(self, in_height: int) -> int:
        """Calculates padded video height from the original height."""
        return in_height + self.top + self.bottom


class Slicer:
    """
    Splits the output picture into a grid of `vertical_number` rows and
    `horizontal_number` columns of tiles. Adjacent tiles share
    `horizontal_overlap` / `vertical_overlap` pixels.
    """

    def __init__(
        self,
        horizontal_number: int = 1,
        vertical_number: int = 1,
        horizontal_overlap: int = 0,
        vertical_overlap: int = 0,
        is_enabled: bool = False,
    ):
        self.is_enabled = is_enabled
        self.horizontal_number = horizontal_number
        self.vertical_number = vertical_number
        self.horizontal_overlap = horizontal_overlap
        self.vertical_overlap = vertical_overlap

    @property
    def horizontal_number(self) -> int:
        return self._horizontal_number

    @horizontal_number.setter
    def horizontal_number(self, value: int):
        self._horizontal_number = self._at_least_one("horizontal_number", value)

    @property
    def vertical_number(self) -> int:
        return self._vertical_number

    @vertical_number.setter
    def vertical_number(self, value: int):
        self._vertical_number = self._at_least_one("vertical_number", value)

    @property
    def horizontal_overlap(self) -> int:
        return self._horizontal_overlap

    @horizontal_overlap.setter
    def horizontal_overlap(self, value: int):
        self._horizontal_overlap = _non_negative("horizontal_overlap", value)

    @property
    def vertical_overlap(self) -> int:
        return self._vertical_overlap

    @vertical_overlap.setter
    def vertical_overlap(self, value: int):
        self._vertical_overlap = _non_negative("vertical_overlap", value)

    @staticmethod
    def _at_least_one(name: str, value: int) -> int:
        value = int(value)
        if value < 1:
            logger.warning(f"{name} must be at least 1 ({value}), using 1.")
            return 1
        return value

    @property
    def is_tiling(self) -> bool:
        """True when enabled and the grid has more than one tile."""
        return self.is_enabled and (self._horizontal_number > 1 or self._vertical_number > 1)

    @property
    def tile_count(self) -> int:
        return self._horizontal_number * self._vertical_number

    def get_slice_width(self, horizontal_resolution: int) -> int:
        return horizontal_resolution // self._horizontal_number + self._horizontal_overlap // 2

    def get_slice_height(self, vertical_resolution: int) -> int:
        return vertical_resolution // self._vertical_number + self._vertical_overlap // 2

    @staticmethod
    def get_slice_name(original_name: Union[str, Path], row: int, col: int) -> str:
        """
        Generates the path of the tile at 1-based `row`, `col` for `original_name`.

        Every consumer that locates an r x c output must go through this method:
        `dir/clip.mov` becomes `dir/clip_r1c2.mov`.
        """
        original = Path(original_name)
        return str(original.with_name(f"{original.stem}_r{row}c{col}{original.suffix}"))

    def clone(self) -> "Slicer":
        return Slicer(
            self._horizontal_number,
            self._vertical_number,
            self._horizontal_overlap,
            self._vertical_overlap,
            self.is_enabled,
        )

    def __repr__(self) -> str:
        return (
            f"Slicer({self._vertical_number}x{self._horizontal_number}, "
            f"overlap={self._horizontal_overlap},{self._vertical_overlap}, enabled={self.is_enabled})"
        )
