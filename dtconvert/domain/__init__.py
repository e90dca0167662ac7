"""
This package contains the core domain models of DT Convert.

The domain layer models time values, frame geometry, encoders and the per-file
conversion settings. It has no knowledge of how external tools are run; the
only place it reaches outwards is `ConversionParameters.probe_source`, which
delegates to the probe service.

Modules:
    exceptions.py: The exception hierarchy rooted at `DTConvertException`.
    duration.py: `Duration`, a time value in seconds, frames or timecode.
    geometry.py: `Resolution`, `Crop`, `Padding` and `Slicer`.
    encoders.py: Video/audio encoder enums and the encoder lookup table.
    media.py: `SourceDescription` and the ffprobe text parser.
    parameters.py: `ConversionParameters`, the per-file aggregate, and its
                   `ConversionStatus` state machine.
"""
