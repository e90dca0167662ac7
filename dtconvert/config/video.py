"""
Configuration settings related to video conversion.

This module defines the default video encoder, preview settings, encoder-specific
options and resolution constraints.
"""
from pathlib import Path

# --- General Video Settings ---
DEFAULT_VIDEO_ENCODER = "HAP"

# HAP textures are compressed in 4x4 blocks, so both dimensions must be multiples of 4.
HAP_RESOLUTION_MULTIPLE = 4

# Options appended after the H264 codec flag.
H264_OPTIONS = ("-preset", "medium", "-tune", "fastdecode")

# --- Preview Settings ---
PREVIEW_HORIZONTAL_RESOLUTION = 640
PREVIEW_VERTICAL_RESOLUTION = 360
PREVIEW_EXTENSION = ".jpg"

# Thumbnails (input/output previews) are written here, relative to the working directory.
THUMBNAIL_DIR = Path("thumbnails").resolve()

# --- Rotation ---
ALLOWED_ROTATIONS = (0, 90, 180, 270)
