"""
metadata.py - Capture date extraction from embedded metadata

Still images are read with exifread (fast, only parses the EXIF block).
Everything else, and images without usable EXIF tags, go through hachoir,
which understands video containers (mp4, mov, avi, mpeg, mts) as well.
"""

import datetime
import logging
from pathlib import Path
from typing import Optional

import exifread
from hachoir.core import config
from hachoir.metadata import extractMetadata
from hachoir.parser import createParser

from mediatidy.dates import DateStamp
from mediatidy.log import LOGGER_NAME

# Suppress hachoir warnings to keep console output clean
config.quiet = True

# Extensions exifread can parse
_EXIFREAD_EXTENSIONS = {
    ".jpg", ".jpeg", ".tif", ".tiff", ".heic", ".heif", ".png", ".webp",
    ".cr2", ".nef", ".arw", ".dng", ".orf",
}

# Tried in order, first parsable value wins
_EXIF_DATE_TAGS = ["EXIF DateTimeOriginal", "EXIF DateTimeDigitized", "Image DateTime"]

# Years outside this range are treated as bogus camera clocks
MIN_YEAR = 2000
MAX_YEAR = 2039


def get_created_date(filename: Path, logger):
    """
    Attempt to extract the creation date from the file's metadata with hachoir.

    Args:
        filename (Path): Path to the file to extract metadata from
        logger (logging.Logger): Logger for recording issues

    Returns:
        datetime.datetime or None: Creation date if found, otherwise None
    """
    created_date = None

    try:
        parser = createParser(str(filename))
    except Exception as e:
        logger.debug(f"Failed to create parser for {filename}: {e}")
        return created_date

    if not parser:
        logger.debug(f"Unable to parse file for created date: {filename}")
        return created_date

    try:
        with parser:  # Ensure parser is properly closed
            try:
                metadata = extractMetadata(parser)
            except Exception as err:
                logger.debug(f"Metadata extraction error for {filename}: {err}")
                metadata = None

        if not metadata:
            logger.debug(f"Unable to extract metadata for {filename}")
        else:
            cd = metadata.getValues("creation_date")
            if len(cd) > 0:
                created_date = cd[0]
    except Exception as e:
        logger.debug(f"Error during metadata extraction for {filename}: {e}")

    return created_date


def _parse_exif_datetime(value) -> Optional[datetime.datetime]:
    text = str(value).strip().rstrip("\x00")
    try:
        return datetime.datetime.strptime(text[:19], "%Y:%m:%d %H:%M:%S")
    except ValueError:
        return None


def get_created_date_fast(filename: Path, logger):
    """
    Extract the capture date, reading EXIF with exifread for still images.

    Falls back to get_created_date (hachoir) for other file types and for
    images where exifread finds no usable date tag.

    Returns:
        datetime.datetime or None
    """
    if Path(filename).suffix.lower() in _EXIFREAD_EXTENSIONS:
        try:
            with open(filename, "rb") as f:
                tags = exifread.process_file(f, details=False)
        except Exception as e:
            logger.debug(f"EXIF read failed for {filename}: {e}")
            tags = {}

        for tag in _EXIF_DATE_TAGS:
            if tag in tags:
                created = _parse_exif_datetime(tags[tag])
                if created:
                    return created

    return get_created_date(filename, logger)


class MetadataDateExtractor:
    """Answers "when was this taken?" for a media file, or None."""

    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger(LOGGER_NAME)

    def get_date(self, path: Path) -> Optional[DateStamp]:
        try:
            created = get_created_date_fast(Path(path), self.logger)
        except Exception as e:
            # A broken file must never stop a tree scan
            self.logger.debug(f"Metadata date lookup failed for {path}: {e}")
            return None

        if created is None:
            self.logger.debug(f"No metadata date for {path}")
            return None

        if not MIN_YEAR <= created.year <= MAX_YEAR:
            self.logger.debug(f"Ignoring metadata date {created} outside {MIN_YEAR}-{MAX_YEAR} for {path}")
            return None

        return DateStamp.from_datetime(created)
