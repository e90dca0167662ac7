"""
This package contains the batch pipeline of DT Convert.

The pipeline probes each given file, applies the command-line settings and
converts the files concurrently, one worker per file.
"""
