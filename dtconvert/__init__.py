"""
DT Convert: media probing and FFmpeg command synthesis.

The package is split into layers:
    config/    module-level constants and the optional `config.user.yaml`.
    domain/    durations, geometry, encoders, probe parsing and the
               `ConversionParameters` aggregate.
    services/  command synthesis and the collaborators that run ffprobe/FFmpeg.
    pipeline/  concurrent batch processing of many files.
    utils/     subprocess, formatting and executable lookup helpers.
"""
