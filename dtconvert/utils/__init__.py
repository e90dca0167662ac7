"""
Utilities Package for DT Convert.

Modules:
    - ffmpeg_utils.py: Runs external commands and formats them for display.
    - format_utils.py: Number, timedelta and file size formatting.
    - module_updater.py: Locates and verifies the FFmpeg and ffprobe executables.
"""
