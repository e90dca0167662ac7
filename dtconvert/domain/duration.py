"""
Defines the `Duration` value used for start times, clip lengths and preview times.

A `Duration` can be written and read as seconds, milliseconds, microseconds, a
frame count or a timecode string. Internally it keeps either hour/minute/second/
millisecond/microsecond integer components or a raw frame count; `kind` records
which representation was written last and is therefore authoritative. Reading any
other unit converts through `frame_rate`.

Arithmetic and comparison are explicit methods (`add`, `subtract`, `multiply`,
`divide`, `compare`) that return new values. They are always evaluated in the
unit of the left operand (`self`): frames if `self.kind` is `FRAMES`, seconds
otherwise, and the result carries `self.frame_rate`.
"""

import math
from enum import Enum
from typing import Optional, Union

from loguru import logger

from .exceptions import MalformedTimecodeException


class DurationKind(Enum):
    """Which representation of a `Duration` was written last."""

    SECONDS = "Seconds"
    MILLISECONDS = "MilliSeconds"
    MICROSECONDS = "MicroSeconds"
    FRAMES = "Frames"
    TIMECODE = "Timecode"


class Duration:
    """
    A time span expressed interchangeably in time units or frames.

    Timecode format: `[HH:]MM:SS[.mmmuuu]`. On read the hour segment is omitted
    when zero, milliseconds are included only when non-zero and microseconds only
    when milliseconds were included. A frame-kind duration reads as `"<n>f"`.

    On write a trailing `f` means a frame count and a trailing `s` means whole
    seconds. Any other value is parsed as colon/dot segments. A malformed value
    written through the `timecode` property silently resets every time component
    to zero; use `Duration.parse_timecode` to get an exception instead.

    Attributes:
        frame_rate (float): Frames per second used when converting between frames
                            and time. Conversions yield 0 when it is not positive.
    """

    def __init__(
        self,
        seconds: Optional[float] = None,
        frames: Optional[int] = None,
        frame_rate: float = 0.0,
    ):
        self._hours = 0
        self._minutes = 0
        self._seconds = 0
        self._milliseconds = 0
        self._microseconds = 0
        self._frames = 0
        self._kind = DurationKind.SECONDS
        self.frame_rate: float = frame_rate

        if frames is not None:
            self.frames = frames
        elif seconds is not None:
            self.seconds = seconds

    # --- Static conversions ---

    @staticmethod
    def get_seconds(frames: int, fps: float) -> float:
        """Converts a frame count to seconds, 0 if `fps` is not positive."""
        if fps > 0:
            return frames / fps
        return 0.0

    @staticmethod
    def get_frames(seconds: float, fps: float) -> int:
        """Converts seconds to the nearest whole frame count, 0 if `fps` is not positive."""
        if fps > 0:
            return int(round(seconds * fps))
        return 0

    # --- Representations ---

    @property
    def kind(self) -> DurationKind:
        return self._kind

    @property
    def frames(self) -> int:
        if self._kind == DurationKind.FRAMES:
            return self._frames
        return self.get_frames(self.seconds, self.frame_rate)

    @frames.setter
    def frames(self, value: int):
        self._frames = int(value)
        self._kind = DurationKind.FRAMES

    @property
    def seconds(self) -> float:
        if self._kind == DurationKind.FRAMES:
            return self.get_seconds(self._frames, self.frame_rate)
        return (
            self._seconds
            + self._minutes * 60
            + self._hours * 3600
            + self._milliseconds / 1000.0
            + self._microseconds / 1000.0 / 1000.0
        )

    @seconds.setter
    def seconds(self, value: float):
        self._set_components_from_seconds(float(value))
        self._kind = DurationKind.SECONDS

    @property
    def milliseconds(self) -> float:
        return self.seconds * 1000

    @milliseconds.setter
    def milliseconds(self, value: float):
        self._set_components_from_seconds(value / 1000.0)
        self._kind = DurationKind.MILLISECONDS

    @property
    def microseconds(self) -> float:
        return self.seconds * 1000 * 1000

    @microseconds.setter
    def microseconds(self, value: float):
        self._set_components_from_seconds(value / 1000.0 / 1000.0)
        self._kind = DurationKind.MICROSECONDS

    @property
    def minutes(self) -> float:
        return self.seconds / 60

    @minutes.setter
    def minutes(self, value: float):
        self.seconds = value * 60

    @property
    def hours(self) -> float:
        return self.seconds / 60 / 60

    @hours.setter
    def hours(self, value: float):
        self.seconds = value * 60 * 60

    @property
    def timecode(self) -> str:
        if self._kind == DurationKind.FRAMES:
            return f"{self.frames}f"

        out_time = ""
        if self._hours > 0:
            out_time = f"{self._hours:02d}:"
        out_time += f"{self._minutes:02d}:{self._seconds:02d}"
        if self._milliseconds > 0:
            out_time += f".{self._milliseconds:03d}"
            if self._microseconds > 0:
                out_time += f"{self._microseconds:03d}"
        return out_time

    @timecode.setter
    def timecode(self, value: str):
        try:
            self._apply_timecode(value)
        except MalformedTimecodeException as e:
            logger.debug(f"Ignoring malformed timecode {value!r}: {e}")
            self._hours = self._minutes = self._seconds = 0
            self._milliseconds = self._microseconds = 0

    @classmethod
    def parse_timecode(cls, value: str, frame_rate: float = 0.0) -> "Duration":
        """
        Builds a new Duration from a timecode string.

        Unlike assigning to the `timecode` property, this raises on bad input.

        Raises:
            MalformedTimecodeException: If `value` is not a valid timecode.
        """
        duration = cls(frame_rate=frame_rate)
        duration._apply_timecode(value)
        return duration

    def _apply_timecode(self, value: str):
        if value is None:
            raise MalformedTimecodeException("timecode is None")
        text = value.strip()
        if not text:
            raise MalformedTimecodeException("timecode is empty")

        if text.endswith("f"):
            self.frames = self._parse_int(text[:-1], value)
            return
        if text.endswith("s"):
            self.seconds = self._parse_int(text[:-1], value)
            return

        # 10:50:36.123456
        main_part, dot, fraction = text.partition(".")
        milliseconds = microseconds = 0
        if dot:
            if not fraction.isdigit():
                raise MalformedTimecodeException(f"invalid fractional part in {value!r}")
            fraction = fraction[:6].ljust(6, "0")
            milliseconds, microseconds = divmod(int(fraction), 1000)

        segments = main_part.split(":")
        if len(segments) > 3:
            raise MalformedTimecodeException(f"too many segments in {value!r}")
        numbers = [self._parse_int(segment, value) for segment in segments]
        hours, minutes, seconds = [0] * (3 - len(numbers)) + numbers

        self._hours = hours
        self._minutes = minutes
        self._seconds = seconds
        self._milliseconds = milliseconds
        self._microseconds = microseconds
        self._kind = DurationKind.TIMECODE

    @staticmethod
    def _parse_int(segment: str, original: str) -> int:
        try:
            return int(segment)
        except ValueError as e:
            raise MalformedTimecodeException(f"invalid number {segment!r} in {original!r}") from e

    def _set_components_from_seconds(self, value: float):
        seconds = value
        minutes = 0.0
        hours = 0.0
        if seconds >= 60:
            minutes = seconds / 60
            seconds -= 60 * math.trunc(minutes)
            if minutes >= 60:
                hours = minutes / 60
                minutes -= 60 * math.trunc(hours)

        self._hours = math.trunc(hours)
        self._minutes = math.trunc(minutes)
        self._seconds = math.trunc(seconds)

        # 10.51 - 10 = 0.50999999999999979
        milliseconds = round((seconds - math.trunc(seconds)) * 1000, 3)
        self._milliseconds = math.trunc(milliseconds)
        self._microseconds = int(round((milliseconds - math.trunc(milliseconds)) * 1000))

    # --- Copies and arithmetic ---

    def clone(self) -> "Duration":
        """Returns an independent copy, safe to hand to command synthesis."""
        copy = Duration(frame_rate=self.frame_rate)
        copy._hours = self._hours
        copy._minutes = self._minutes
        copy._seconds = self._seconds
        copy._milliseconds = self._milliseconds
        copy._microseconds = self._microseconds
        copy._frames = self._frames
        copy._kind = self._kind
        return copy

    def _uses_frames(self) -> bool:
        return self._kind == DurationKind.FRAMES

    def _new(self, value: Union[int, float]) -> "Duration":
        if self._uses_frames():
            return Duration(frames=int(round(value)), frame_rate=self.frame_rate)
        return Duration(seconds=value, frame_rate=self.frame_rate)

    def add(self, other: "Duration") -> "Duration":
        if self._uses_frames():
            return self._new(self.frames + other.frames)
        return self._new(self.seconds + other.seconds)

    def subtract(self, other: "Duration") -> "Duration":
        if self._uses_frames():
            return self._new(self.frames - other.frames)
        return self._new(self.seconds - other.seconds)

    def multiply(self, factor: float) -> "Duration":
        if self._uses_frames():
            return self._new(self.frames * factor)
        return self._new(self.seconds * factor)

    def divide(self, divisor: Union["Duration", float]) -> "Duration":
        """
        Divides by a number or by another Duration (read in this value's unit).

        A zero divisor yields a zero Duration instead of raising.
        """
        if isinstance(divisor, Duration):
            divisor = divisor.frames if self._uses_frames() else divisor.seconds
        if divisor == 0:
            return self._new(0)
        if self._uses_frames():
            return self._new(self.frames / divisor)
        return self._new(self.seconds / divisor)

    def compare(self, other: "Duration") -> int:
        """Returns -1, 0 or 1 comparing self to other in self's unit."""
        if self._uses_frames():
            left, right = self.frames, other.frames
        else:
            left, right = self.seconds, other.seconds
        if left < right:
            return -1
        if left > right:
            return 1
        return 0

    def equals(self, other: Optional["Duration"]) -> bool:
        if other is None:
            return False
        return self.compare(other) == 0

    def __repr__(self) -> str:
        return f"Duration({self.timecode!r}, kind={self._kind.name}, frame_rate={self.frame_rate})"
