"""
dates.py - Date values and explicit date rules

DateStamp is the year/month/day value used everywhere a date ends up in a
directory or file name. ExplicitDateRules holds the user supplied
(pattern, date) overrides loaded from the configuration file.
"""

import datetime
import re
from pathlib import Path
from typing import NamedTuple

# Special date value for explicit rules: use the file's creation time
FILE_DATE = "FILE_DATE"


class DateStamp(NamedTuple):
    """Immutable year/month/day value kept as zero-padded strings."""

    year: str
    month: str
    day: str

    @classmethod
    def of(cls, year, month, day) -> "DateStamp":
        """Build a DateStamp from explicit parts (strings or ints)."""
        return cls(f"{int(year):04d}", f"{int(month):02d}", f"{int(day):02d}")

    @classmethod
    def parse(cls, text: str) -> "DateStamp":
        """
        Build a DateStamp from a "YYYY-MM-DD" string.

        Raises:
            ValueError: If the text is not a real calendar date in YYYY-MM-DD form
        """
        if not isinstance(text, str):
            raise ValueError(f"Invalid date {text!r}, expected a YYYY-MM-DD string")
        match = re.fullmatch(r"(\d{4})-(\d{1,2})-(\d{1,2})", text.strip())
        if not match:
            raise ValueError(f"Invalid date '{text}', expected YYYY-MM-DD")
        try:
            return cls.from_datetime(datetime.date(*(int(part) for part in match.groups())))
        except ValueError as e:
            raise ValueError(f"Invalid date '{text}': {e}")

    @classmethod
    def from_datetime(cls, value) -> "DateStamp":
        """Build a DateStamp from a datetime.date or datetime.datetime."""
        return cls.of(value.year, value.month, value.day)

    def as_short(self) -> str:
        """Render as YYYY-MM (target directory name)."""
        return f"{self.year}-{self.month}"

    def as_long(self) -> str:
        """Render as YYYYMMDD (file name prefix)."""
        return f"{self.year}{self.month}{self.day}"

    def __str__(self):
        return f"{self.year}-{self.month}-{self.day}"


def get_creation_time(path: Path) -> datetime.datetime:
    """
    Return the creation time of a file.

    Uses st_birthtime where the platform records it and the modification
    time otherwise (most Linux filesystems do not expose a birth time
    through os.stat).
    """
    stat = path.stat()
    timestamp = getattr(stat, "st_birthtime", None)
    if timestamp is None:
        timestamp = stat.st_mtime
    return datetime.datetime.fromtimestamp(timestamp)


class ExplicitDateRules:
    """
    Ordered list of (regex pattern, date) rules, first match wins.

    Patterns are matched case-insensitively against the whole raw file name.
    A rule date of FILE_DATE resolves to the file's creation time.
    """

    def __init__(self, rules=None):
        self._rules = []
        for pattern, date in rules or []:
            self.add(pattern, date)

    def add(self, pattern_text: str, date):
        """
        Append a rule.

        Args:
            pattern_text (str): Regular expression for the whole file name
            date (str or DateStamp): "YYYY-MM-DD", FILE_DATE or a DateStamp

        Raises:
            ValueError: If the pattern does not compile or the date is malformed
        """
        try:
            pattern = re.compile(pattern_text, re.IGNORECASE)
        except (re.error, TypeError) as e:
            raise ValueError(f"Invalid explicit date pattern '{pattern_text}': {e}")

        if isinstance(date, DateStamp) or date == FILE_DATE:
            value = date
        elif isinstance(date, str):
            value = DateStamp.parse(date)
        else:
            raise ValueError(f"Invalid date {date!r} for pattern '{pattern_text}', expected a YYYY-MM-DD string")
        self._rules.append((pattern, value))

    def __len__(self):
        return len(self._rules)

    def __iter__(self):
        return ((pattern.pattern, date) for pattern, date in self._rules)

    def find(self, filename: str):
        """Return the raw value (DateStamp or FILE_DATE) of the first matching rule."""
        for pattern, date in self._rules:
            if pattern.fullmatch(filename):
                return date
        return None
