"""
compare.py - File content comparison

Three strategies decide whether two files hold the same bytes:

    HASH          SHA-256 of both files, one streamed pass each
    BYTE_BY_BYTE  paired buffer-sized chunks read in lockstep
    FAST          byte-by-byte for files smaller than the buffer, otherwise
                  only three sampled windows (start, middle, end)

FAST can report two large files as equal when they only differ outside the
sampled windows. That is the price for reading a bounded amount of data per
pair and is expected behaviour.

Missing files, different sizes and read errors all compare as "not equal"
so a bulk scan can continue past one bad file.
"""

import enum
import hashlib
import logging
import math
from pathlib import Path

from mediatidy.log import LOGGER_NAME

DEFAULT_BUFFER_SIZE = 16 * 1024 * 1024
MIN_BUFFER_SIZE = 1024


class ComparisonStrategy(enum.Enum):
    HASH = "hash"
    BYTE_BY_BYTE = "byte"
    FAST = "fast"


def round_buffer_size(size: int) -> int:
    """Round a buffer size up to whole KiB, at least 1 KiB."""
    return max(MIN_BUFFER_SIZE, MIN_BUFFER_SIZE * math.ceil(size / MIN_BUFFER_SIZE))


def calculate_file_hash(file_path: Path, algorithm: str = "sha256", chunk_size: int = 8192) -> str:
    """
    Calculate hash of a file for content comparison.

    Args:
        file_path (Path): Path to the file to hash
        algorithm (str): Hash algorithm to use (default: sha256)
        chunk_size (int): Read size in bytes

    Returns:
        str: Hexadecimal hash string, or empty string if error
    """
    try:
        hash_obj = hashlib.new(algorithm)
        with open(file_path, "rb") as f:
            # Read file in chunks to handle large files efficiently
            for chunk in iter(lambda: f.read(chunk_size), b""):
                hash_obj.update(chunk)
        return hash_obj.hexdigest()
    except OSError as e:
        logging.getLogger(LOGGER_NAME).warning(f"Failed to calculate hash for {file_path}: {e}")
        return ""


class FileComparator:
    """
    Compares file contents using one of the ComparisonStrategy values.

    The internal buffers are reused across calls: one comparator must not be
    used by two comparisons at the same time.
    """

    def __init__(self, buffer_size: int = DEFAULT_BUFFER_SIZE, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.update_buffer_size(buffer_size)

    def update_buffer_size(self, buffer_size: int):
        size = round_buffer_size(buffer_size)
        self._buffer_a = bytearray(size)
        self._buffer_b = bytearray(size)

    @property
    def buffer_size(self) -> int:
        return len(self._buffer_a)

    def have_same_content(self, path_a: Path, path_b: Path, strategy: ComparisonStrategy) -> bool:
        if strategy == ComparisonStrategy.HASH:
            return self.by_hash(path_a, path_b)
        elif strategy == ComparisonStrategy.BYTE_BY_BYTE:
            return self.byte_by_byte(path_a, path_b)
        elif strategy == ComparisonStrategy.FAST:
            return self.fast(path_a, path_b)
        raise ValueError(f"Unknown comparison strategy: {strategy}")

    def by_hash(self, path_a: Path, path_b: Path) -> bool:
        if self._explicitly_different(path_a, path_b):
            return False

        hash_a = calculate_file_hash(path_a, chunk_size=self.buffer_size)
        hash_b = calculate_file_hash(path_b, chunk_size=self.buffer_size)
        # An empty digest means the file could not be read
        return bool(hash_a) and hash_a == hash_b

    def byte_by_byte(self, path_a: Path, path_b: Path, buffer_a: bytearray = None, buffer_b: bytearray = None) -> bool:
        """
        Compare two files chunk by chunk.

        Args:
            path_a (Path): First file
            path_b (Path): Second file
            buffer_a (bytearray): Optional scratch buffer for path_a
            buffer_b (bytearray): Optional scratch buffer for path_b

        Returns:
            bool: True if both files hold the same bytes

        Raises:
            ValueError: If only one buffer is given, the buffers differ in
                        length or both arguments are the same object
        """
        if buffer_a is None and buffer_b is None:
            buffer_a, buffer_b = self._buffer_a, self._buffer_b
        self._check_buffers(buffer_a, buffer_b)

        if self._explicitly_different(path_a, path_b):
            return False
        return self._compare_streams(path_a, path_b, buffer_a, buffer_b)

    def fast(self, path_a: Path, path_b: Path) -> bool:
        if self._explicitly_different(path_a, path_b):
            return False

        size = Path(path_a).stat().st_size
        if size < self.buffer_size:
            return self._compare_streams(path_a, path_b, self._buffer_a, self._buffer_b)

        window = self.buffer_size // 4
        middle = size // 2 - window // 2
        windows = [("start", 0), ("end", size - window), ("middle", middle)]

        try:
            with open(path_a, "rb") as file_a, open(path_b, "rb") as file_b:
                for label, offset in windows:
                    file_a.seek(offset)
                    file_b.seek(offset)
                    if file_a.read(window) != file_b.read(window):
                        self.logger.debug(f"Content differs at {label} window: {path_a} <-> {path_b}")
                        return False
        except OSError as e:
            self.logger.warning(f"Failed to compare {path_a} and {path_b}: {e}")
            return False

        return True

    def _compare_streams(self, path_a, path_b, buffer_a, buffer_b) -> bool:
        view_a = memoryview(buffer_a)
        view_b = memoryview(buffer_b)
        try:
            with open(path_a, "rb") as file_a, open(path_b, "rb") as file_b:
                while True:
                    read_a = file_a.readinto(buffer_a)
                    read_b = file_b.readinto(buffer_b)
                    if read_a != read_b:
                        return False
                    if not read_a:
                        return True
                    if view_a[:read_a] != view_b[:read_b]:
                        return False
        except OSError as e:
            self.logger.warning(f"Failed to compare {path_a} and {path_b}: {e}")
            return False
        finally:
            view_a.release()
            view_b.release()

    @staticmethod
    def _check_buffers(buffer_a, buffer_b):
        if buffer_a is None or buffer_b is None:
            raise ValueError("Both buffers must be provided")
        if buffer_a is buffer_b:
            raise ValueError("Buffers reference the same array")
        if len(buffer_a) != len(buffer_b):
            raise ValueError(f"Buffers have different sizes: {len(buffer_a)} and {len(buffer_b)}")
        if len(buffer_a) == 0:
            raise ValueError("Buffers must not be empty")

    def _explicitly_different(self, path_a, path_b) -> bool:
        try:
            return Path(path_a).stat().st_size != Path(path_b).stat().st_size
        except OSError:
            # Missing or unreadable
            return True
