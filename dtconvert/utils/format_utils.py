"""
String formatting helpers.

`format_number` is used for every number placed into an FFmpeg argument, so the
output never depends on the locale and carries no float noise. The other two
make elapsed times and file sizes readable in logs and the success log.
"""

from datetime import timedelta
from typing import Union

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB", "PB")


def format_number(value: Union[int, float], decimals: int = 6) -> str:
    """
    Formats a number with a '.' decimal separator and no trailing zeros.

    `12.5` stays `"12.5"`, `30.0` becomes `"30"` and `0.30000000000000004`
    is cut to `"0.3"` (at most `decimals` places).
    """
    if isinstance(value, int):
        return str(value)
    text = f"{value:.{decimals}f}".rstrip("0").rstrip(".")
    if text in ("", "-0"):
        return "0"
    return text


def format_timedelta(elapsed: timedelta) -> str:
    """`timedelta(seconds=7261)` -> `"02:01:01"`; anything that is not a timedelta reads as zero."""
    if not isinstance(elapsed, timedelta):
        return "00:00:00"
    minutes, seconds = divmod(int(elapsed.total_seconds()), 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def formatted_size(size_bytes: int) -> str:
    """
    A byte count in the largest unit that keeps it below 1024.

    Bytes are shown as an integer, larger units with two decimals unless they
    are whole: 1536 -> "1.50 KB", 2097152 -> "2 MB".
    """
    size = float(max(size_bytes, 0))
    unit_index = 0
    while size >= 1024 and unit_index < len(SIZE_UNITS) - 1:
        size /= 1024
        unit_index += 1
    unit = SIZE_UNITS[unit_index]
    if unit_index == 0:
        return f"{int(size)} {unit}"
    if size.is_integer():
        return f"{int(size)} {unit}"
    return f"{size:.2f} {unit}"
