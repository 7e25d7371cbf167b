"""
naming.py - Target name resolution and collision-free paths

NameResolver turns a source file into a (YYYY-MM directory, file name) pair.
Date sources are tried in a fixed order, first applicable wins:

    1. explicit rule from the configuration (any extension)
    2. YYYYMMDD date embedded in the file name
    3. capture date from the file's metadata
    4. file creation time, when the name already carries it as YYYY-MM

Steps 2-4 only apply to media extensions in EXTENSIONS. The resolved file
name is always normalized (lowercase, dash separated) and prefixed with the
YYYYMMDD date.
"""

import enum
import os
import re
from pathlib import Path
from typing import NamedTuple, Optional

from mediatidy.dates import FILE_DATE, DateStamp, ExplicitDateRules, get_creation_time
from mediatidy.log import StatusLog
from mediatidy.metadata import MetadataDateExtractor

# 1 - prefix, 2 - yyyyMMdd, 3 - yyyy, 4 - MM, 5 - dd, 6 - suffix
NAME_WITH_DATE = re.compile(r"(.*)((20[0-3][0-9])([01][0-9])([0-3][0-9]))([^0-9].+)")

EXTENSIONS = {".jpg", ".jpeg", ".mp4", ".mpeg", ".avi", ".mov", ".mts", ".gif"}


class Status(enum.IntEnum):
    """Strongest transformation applied to a name, for log output only."""

    NO_MATCH = 0
    NEW_NAME = 1
    PREFIX_DATE = 2
    OVERRIDE_DATE = 3
    EXIF_DATE = 4
    FILE_DATE = 5


class ResolutionResult(NamedTuple):
    """Target location relative to the target root."""

    parent: str
    file: str

    def under(self, root: Path) -> Path:
        return Path(root) / self.parent / self.file


class _StatusTracker:
    def __init__(self):
        self.status = Status.NO_MATCH

    def raise_to(self, status: Status):
        if status > self.status:
            self.status = status


def split_extension(name: str):
    """
    Split a file name at the last dot.

    Returns:
        tuple: (name without extension, extension including the dot or "")

    Example:
        "test.txt" -> ("test", ".txt"), "test" -> ("test", "")
    """
    index = name.rfind(".")
    if index <= 0:
        return name, ""
    return name[:index], name[index:]


def normalize(name: str) -> str:
    """
    Normalize a file name: lowercase, dash separated, lowercase extension.

    Runs of characters outside [a-z0-9._-] become a single dash, runs of two
    or more separators collapse to a single dash and separators are trimmed
    from both ends of the name part.

    Example:
        "IMG 20210303_special.JPG" -> "img-20210303-special.jpg"
    """
    stem, extension = split_extension(name)
    stem = re.sub(r"[^a-z0-9._-]+", "-", stem.lower())
    stem = re.sub(r"[._-]{2,}", "-", stem)
    stem = stem.strip("._-")
    return stem + extension.lower()


def build_unique_path(path: Path) -> Path:
    """
    Return a path that does not exist yet.

    Args:
        path (Path): Preferred path

    Returns:
        Path: path itself if free, otherwise name-0.ext, name-1.ext, ...
              (first free index)
    """
    path = Path(path)
    if not os.path.lexists(path):
        return path

    stem, extension = split_extension(path.name)
    index = 0
    while True:
        candidate = path.with_name(f"{stem}-{index}{extension}")
        if not os.path.lexists(candidate):
            return candidate
        index += 1


class NameResolver:
    """
    Resolves the dated target location of a media file.

    Args:
        extractor (MetadataDateExtractor): Source of metadata capture dates
        rules (ExplicitDateRules): Explicit (pattern, date) overrides
        log (StatusLog): Status line logger
    """

    def __init__(self, extractor=None, rules=None, log=None):
        self.log = log or StatusLog()
        self.extractor = extractor or MetadataDateExtractor(self.log.logger)
        self.rules = rules if rules is not None else ExplicitDateRules()

    def add_date(self, pattern_text: str, date):
        self.rules.add(pattern_text, date)

    def resolve_target(self, source: Path, target_root: Path) -> Optional[ResolutionResult]:
        """Resolve source and log the full target path under target_root."""
        return self._resolve(Path(source), Path(target_root))

    def resolve(self, source: Path) -> Optional[ResolutionResult]:
        return self._resolve(Path(source), None)

    def _resolve(self, source: Path, target_root) -> Optional[ResolutionResult]:
        tracker = _StatusTracker()

        raw_name = source.name
        name = self._prepare(tracker, raw_name)
        allowed = split_extension(name)[1] in EXTENSIONS
        match = NAME_WITH_DATE.fullmatch(raw_name)

        explicit = self.rules.find(raw_name)
        result = None

        if explicit is not None:
            if explicit == FILE_DATE:
                date = DateStamp.from_datetime(get_creation_time(source))
                tracker.raise_to(Status.FILE_DATE)
            else:
                date = explicit
            result = ResolutionResult(date.as_short(), self._override_date(tracker, raw_name, date.as_long()))
        elif match and allowed:
            date = DateStamp(match.group(3), match.group(4), match.group(5))
            result = ResolutionResult(date.as_short(), self._prefix_date(tracker, name, match))
        elif allowed:
            date = self.extractor.get_date(source)
            if date is not None:
                result = ResolutionResult(date.as_short(), self._exif_date(tracker, name, date.as_long()))
            else:
                date = self._creation_date(source)
                # Only trust the filesystem when the name agrees with it
                if date is not None and date.as_short() in raw_name:
                    result = ResolutionResult(date.as_short(), self._file_date(tracker, name, date.as_long()))

        if result is None:
            self.log.debug_stat(Status.NO_MATCH.name, source)
        elif target_root is None:
            self.log.info_stat(tracker.status.name, source, ">", Path(result.parent, result.file))
        else:
            self.log.info_stat(tracker.status.name, source, ">", result.under(target_root))

        return result

    def _creation_date(self, source: Path) -> Optional[DateStamp]:
        try:
            return DateStamp.from_datetime(get_creation_time(source))
        except OSError as e:
            self.log.debug("no-file-date", source, e)
            return None

    def _prepare(self, tracker, name: str) -> str:
        result = normalize(name)
        if result != name:
            tracker.raise_to(Status.NEW_NAME)
        return result

    def _prefix_date(self, tracker, name: str, match) -> str:
        result = self._prepare(tracker, match.group(2) + "-" + match.group(1) + match.group(6))
        if result != name:
            tracker.raise_to(Status.PREFIX_DATE)
        return result

    def _override_date(self, tracker, name: str, date: str) -> str:
        match = NAME_WITH_DATE.fullmatch(name)
        if match:
            result = self._prepare(tracker, date + "-" + match.group(1) + match.group(6))
        else:
            result = self._prepare(tracker, date + "-" + name)

        if result != name:
            tracker.raise_to(Status.OVERRIDE_DATE)
        return result

    def _exif_date(self, tracker, name: str, date: str) -> str:
        result = self._override_date(tracker, name, date)
        if result != name:
            tracker.raise_to(Status.EXIF_DATE)
        return result

    def _file_date(self, tracker, name: str, date: str) -> str:
        result = self._override_date(tracker, name, date)
        tracker.raise_to(Status.FILE_DATE)
        return result
