"""
Main entry point for the DT Convert application.

This script initializes logging, parses command-line arguments, checks that
FFmpeg is available and runs the batch conversion pipeline over the given files.
"""

import sys

from loguru import logger

from dtconvert.cli import get_args
from dtconvert.config.common import LOGGER_FORMAT
from dtconvert.pipeline.batch_pipeline import BatchPipeline
from dtconvert.utils.module_updater import Modules


# Configure the logger for initial setup.
# The level is overridden once the arguments are parsed.
logger.remove()
logger.add(sys.stderr, level="INFO", format=LOGGER_FORMAT)


def main() -> int:
    """
    Main function to start the conversion process.

    Returns:
        The process exit code: 0 when every file succeeded, 1 otherwise.
    """
    args = get_args()

    logger.remove()
    logger.add(sys.stderr, level=args.log_level, format=LOGGER_FORMAT)
    logger.debug(f"Parsed arguments: {args}")

    if not args.dry_run and not Modules.verify_ffmpeg():
        logger.error("FFmpeg is not available, aborting.")
        return 1

    pipeline = BatchPipeline(args.files, args=args)
    pipeline.run()

    if pipeline.failed:
        logger.warning(f"{len(pipeline.failed)} file(s) failed: {', '.join(p.name for p in pipeline.failed)}")
        return 1
    logger.success("DT Convert process finished.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
