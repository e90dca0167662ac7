"""
Runs ffprobe against a source file and parses its diagnostic output.

ffprobe prints its human-readable stream summary on stderr; that text is fed
to `parse_probe_output`. A file ffprobe cannot read is not an error here: it
simply yields a description without a duration, which callers see as invalid.
Only failing to run ffprobe at all raises `ProbeException`.
"""

from pathlib import Path
from typing import Optional, Union

from loguru import logger

from ..config.common import DEFAULT_PROBE_TIMEOUT_MS
from ..domain.exceptions import ProbeException
from ..domain.media import SourceDescription, parse_probe_output
from ..utils.ffmpeg_utils import run_cmd
from ..utils.module_updater import Modules


def probe_source(
    source_path: Union[str, Path],
    timeout_ms: int = DEFAULT_PROBE_TIMEOUT_MS,
    ffprobe_path: Optional[str] = None,
) -> SourceDescription:
    """
    Probes one file.

    Args:
        source_path: The file to inspect.
        timeout_ms: Upper bound for waiting on ffprobe. Non-positive values use
                    the default of 1000 ms.
        ffprobe_path: The ffprobe executable. Resolved through `Modules` when None.

    Returns:
        The parsed SourceDescription.

    Raises:
        ProbeException: If ffprobe could not be started or did not finish in time.
    """
    if timeout_ms <= 0:
        timeout_ms = DEFAULT_PROBE_TIMEOUT_MS
    source_path = Path(source_path)
    ffprobe = ffprobe_path or Modules.get_ffprobe_path()

    result = run_cmd(
        [ffprobe, "-hide_banner", str(source_path)],
        source_path=source_path,
        show_cmd=True,
        timeout=timeout_ms / 1000,
    )
    if result is None:
        raise ProbeException(f"Could not probe '{source_path}' with '{ffprobe}'.")

    description = parse_probe_output(result.stderr or "", source_path)
    if description.is_valid:
        logger.debug(f"Probed {source_path.name}: {description}")
    else:
        logger.warning(f"'{source_path.name}' has no duration, it is not a valid media file.")
    return description
