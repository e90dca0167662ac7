"""
Defines custom exception types for the DT Convert application.

These exceptions allow for more specific and expressive error handling throughout
the conversion workflow. Instead of catching a generic `Exception`, callers can
catch specific exceptions like `ProbeException` or `ConversionException` and react
accordingly.

Note that most problems found while reading probe output or editing parameters
are not exceptions at all: a line that cannot be parsed is skipped, and a source
without a duration is reported through `ConversionParameters.is_valid`.

All custom exceptions inherit from the base `DTConvertException`.
"""


class DTConvertException(Exception):
    """Base class for all custom exceptions in the DT Convert application."""

    pass


# --- Probe / Source Specific Exceptions ---
class ProbeException(DTConvertException):
    """
    Raised when the probing tool could not be run against a source file.

    This covers a missing ffprobe executable, an OS error while spawning it or a
    timeout. It is never raised because of a single unparsable output line.
    """

    pass


class InvalidSourceException(DTConvertException):
    """
    Raised when an operation requires a valid source but the probe found no duration.

    `ConversionParameters` only reports invalidity through its `is_valid` flag;
    services that cannot proceed without a valid source raise this exception.
    """

    pass


class MalformedTimecodeException(DTConvertException):
    """
    Raised by `Duration.parse_timecode` when a timecode string cannot be parsed.

    The `Duration.timecode` property setter catches it and zeroes the time
    components instead of propagating.
    """

    pass


# --- Conversion Specific Exceptions ---
class ConversionException(DTConvertException):
    """
    Raised when an external conversion process exits with a non-zero return code.

    Attributes:
        return_code: The exit code of the failed process (-1 if it never started).
        stderr: The captured standard error output, if any.
    """

    def __init__(self, message: str, return_code: int = -1, stderr: str = ""):
        super().__init__(message)
        self.return_code = return_code
        self.stderr = stderr


class AudioChannelsException(DTConvertException):
    """Raised when a channel split is requested that the source layout cannot provide."""

    pass
