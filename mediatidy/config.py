"""
config.py - Run configuration

Options come from the command line and, optionally, a JSON file:

    {
        "ignored": [".picasa.ini", "Thumbs.db"],
        "explicitDates": {
            "scan.+\\.jpg": "2010-11-21",
            "whatsapp.+": "FILE_DATE"
        },
        "bufferSize": 4194304,
        "fast": true
    }

"explicitDates" may also be a list of [pattern, date] pairs. Either way the
rules keep their order and the first matching one wins.
"""

import json
from pathlib import Path

from mediatidy.compare import DEFAULT_BUFFER_SIZE, round_buffer_size
from mediatidy.dates import ExplicitDateRules


class Configuration:
    """
    Recognized options.

    Attributes:
        delete (bool): Allow deleting files and directories
        move (bool): Allow moving files
        copy (bool): Allow copying files
        fast (bool): Use sampled comparison for large files
        buffer_size (int): Comparison buffer size in bytes, whole KiB
        ignored (set): File names treated as disposable when pruning
        explicit_dates (list): Ordered (pattern, date) pairs
    """

    def __init__(self, delete=False, move=False, copy=False, fast=False,
                 buffer_size=DEFAULT_BUFFER_SIZE, ignored=None, explicit_dates=None):
        self.delete = delete
        self.move = move
        self.copy = copy
        self.fast = fast
        self.buffer_size = round_buffer_size(buffer_size)
        self.ignored = set(ignored or [])
        self.explicit_dates = list(explicit_dates or [])

    def load(self, path: Path):
        """
        Merge options from a JSON file.

        Raises:
            ValueError: If the file is not valid JSON or has the wrong shape
            OSError: If the file cannot be read
        """
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid configuration file {path}: {e}")

        if not isinstance(data, dict):
            raise ValueError(f"Invalid configuration file {path}: expected a JSON object")

        ignored = data.get("ignored", [])
        if not isinstance(ignored, list) or not all(isinstance(name, str) for name in ignored):
            raise ValueError("'ignored' must be a list of file names")
        self.ignored.update(ignored)

        dates = data.get("explicitDates", {})
        if isinstance(dates, dict):
            self.explicit_dates.extend(dates.items())
        elif isinstance(dates, list):
            for entry in dates:
                if not isinstance(entry, (list, tuple)) or len(entry) != 2:
                    raise ValueError(f"Invalid explicit date entry: {entry!r}")
                self.explicit_dates.append((entry[0], entry[1]))
        else:
            raise ValueError("'explicitDates' must be an object or a list of pairs")

        if "bufferSize" in data:
            try:
                self.buffer_size = round_buffer_size(int(data["bufferSize"]))
            except (TypeError, ValueError):
                raise ValueError(f"'bufferSize' must be a number of bytes, got {data['bufferSize']!r}")
        if "fast" in data:
            self.fast = bool(data["fast"])

        return self

    def validate(self):
        """
        Check option combinations and build the explicit date rules.

        Returns:
            ExplicitDateRules: Compiled rules, in configuration order

        Raises:
            ValueError: Move and copy both enabled, or a malformed rule
        """
        if self.move and self.copy:
            raise ValueError("Move and copy cannot be enabled together")
        return ExplicitDateRules(self.explicit_dates)

    @property
    def dry_run(self) -> bool:
        return not (self.delete or self.move or self.copy)

    def __repr__(self):
        return (
            f"Configuration(delete={self.delete}, move={self.move}, copy={self.copy}, "
            f"fast={self.fast}, buffer_size={self.buffer_size}, ignored={sorted(self.ignored)}, "
            f"explicit_dates={self.explicit_dates})"
        )
