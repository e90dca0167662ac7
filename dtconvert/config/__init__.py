"""
Configuration Package for DT Convert.

This package centralizes all the static configuration settings for the application.
By separating configuration from the application logic, it becomes easier to manage
and modify parameters without changing the core code.

This package includes settings for:
- Common application settings like logging formats, error directories and probe timeouts.
- User-overridable paths for external tools like FFmpeg.
- Video defaults (encoder, preview resolution, HAP resolution multiple).
- Audio defaults (encoder, sample rate, channel naming).
"""
