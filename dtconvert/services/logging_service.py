"""
File-based records of conversion outcomes, kept next to the console log.

`ErrorLog` appends plain-text blocks that are enough to rerun a failed FFmpeg
command by hand. `SuccessLog` keeps a YAML list with one mapping per finished
conversion, so results can be read back by scripts.
"""

import random
import string
import threading
from datetime import date
from pathlib import Path
from typing import Dict, List

import yaml
from loguru import logger

from ..config.common import DEFAULT_SUCCESS_LOG_YAML, SUCCESS_LOG_RANDOM_LENGTH

ERROR_BLOCK_SEPARATOR = "=" * 50


class Log:
    """
    Common base: owns `log_dir` (created on construction) and `log_file_path`.

    `location` may name a directory or a file; for a file (anything with a
    suffix that is not an existing directory) its parent becomes `log_dir`.
    """

    linesep_marker = ERROR_BLOCK_SEPARATOR

    def __init__(self, location: Path, filename: str):
        location = Path(location)
        is_file_like = location.suffix and not location.is_dir()
        self.log_dir = (location.parent if is_file_like else location).resolve()
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_file_path = self.log_dir / filename

    @staticmethod
    def generate_random_string(length: int = SUCCESS_LOG_RANDOM_LENGTH) -> str:
        alphabet = string.ascii_uppercase + string.digits
        return "".join(random.choice(alphabet) for _ in range(length))


class ErrorLog(Log):
    """Appends one separator-terminated block per failure to `error.txt`."""

    def __init__(self, error_dir: Path, filename: str = "error.txt"):
        super().__init__(error_dir, filename)

    def write(self, *lines: str):
        if not lines:
            return
        block = "\n".join(lines) + f"\n{self.linesep_marker}\n"
        try:
            with self.log_file_path.open("a", encoding="utf-8") as error_file:
                error_file.write(block)
        except OSError as e:
            # keep the record on the console at least
            logger.error(f"Cannot append to {self.log_file_path} ({e}), dropping to console:\n{block}")


class SuccessLog(Log):
    """
    A YAML list of finished conversions.

    Entries get a 1-based `index` continuing from the highest one already in the
    file. The file is re-read on every write, and writes from concurrent
    workers are serialized by a lock shared across instances.
    """

    _write_lock = threading.Lock()

    def __init__(self, success_log_dir: Path, use_dated_filename: bool = False):
        """
        Args:
            success_log_dir: Where the YAML file lives.
            use_dated_filename: Write to a fresh `log_YYYYMMDD_<random>.yaml` instead of
                                the shared `success_log.yaml`.
        """
        if use_dated_filename:
            filename = f"log_{date.today():%Y%m%d}_{self.generate_random_string()}.yaml"
        else:
            filename = DEFAULT_SUCCESS_LOG_YAML
        super().__init__(success_log_dir, filename)

    def read_entries(self) -> List[Dict]:
        """Existing entries, or an empty list if the file is missing or not a YAML list."""
        if not self.log_file_path.is_file():
            return []
        try:
            loaded = yaml.safe_load(self.log_file_path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as e:
            logger.error(f"Unreadable success log {self.log_file_path}, starting over: {e}")
            return []
        if loaded is None:
            return []
        if not isinstance(loaded, list):
            logger.warning(f"{self.log_file_path} does not hold a list, starting over.")
            return []
        return loaded

    def write(self, entry: Dict):
        with self._write_lock:
            entries = self.read_entries()
            last_index = max((e.get("index", 0) for e in entries if isinstance(e, dict)), default=0)
            entries.append({**entry, "index": last_index + 1})
            try:
                with self.log_file_path.open("w", encoding="utf-8") as yaml_file:
                    yaml.dump(
                        entries,
                        yaml_file,
                        default_flow_style=False,
                        sort_keys=False,
                        allow_unicode=True,
                        indent=4,
                        width=220,
                    )
            except OSError as e:
                logger.error(f"Cannot write success log {self.log_file_path}: {e}")
