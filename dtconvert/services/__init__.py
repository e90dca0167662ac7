"""
Services Package for DT Convert.

- **Command builder:** turns settings into FFmpeg argument lists. Pure, no I/O.
- **Probe service:** runs ffprobe and parses its output.
- **Conversion service (`ConversionService`):** runs synthesized commands for one
  `ConversionParameters` and drives its status.
- **Logging service (`SuccessLog`, `ErrorLog`):** YAML success records and
  plain-text error records, separate from the console logging.
"""
