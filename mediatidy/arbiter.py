"""
arbiter.py - Choosing the copy to keep among identical files

Given files with identical content, the one to keep is the one whose name
looks most like an original rather than a collision-renamed copy:

    1. shorter canonical stem wins (stem with trailing -N copy suffixes removed)
    2. then shorter raw stem wins (fewer copy suffixes)
    3. then the lexicographically larger stem wins, so 20101231-x beats
       20101200-x (the more specific date)

For more than two files every pair is decided and each file collects one
point per lost pair. The file with the fewest points is kept.
"""

import os
import re
from pathlib import Path
from typing import Dict, List, NamedTuple

from mediatidy.naming import split_extension

# One or more trailing "-<digit>" groups, e.g. "-0" or "-1-2"
COPY_SUFFIX = re.compile(r"(?:-\d)+$")


class RetentionResult(NamedTuple):
    retain: Path
    delete: List[Path]
    scores: Dict[Path, int]


def raw_stem(path: Path) -> str:
    """File name without extension."""
    return split_extension(Path(path).name)[0]


def canonical_stem(path: Path) -> str:
    """File name without extension and without trailing copy suffixes."""
    return COPY_SUFFIX.sub("", raw_stem(path))


def decide(path_a: Path, path_b: Path) -> Path:
    """
    Decide which of two identical files should be deleted.

    Returns:
        Path: path_a or path_b, whichever should go
    """
    canonical_a, canonical_b = canonical_stem(path_a), canonical_stem(path_b)
    if len(canonical_a) != len(canonical_b):
        return path_a if len(canonical_a) > len(canonical_b) else path_b

    raw_a, raw_b = raw_stem(path_a), raw_stem(path_b)
    if len(raw_a) != len(raw_b):
        return path_a if len(raw_a) > len(raw_b) else path_b

    if raw_a != raw_b:
        return path_a if raw_a < raw_b else path_b

    # Same name in different directories
    return path_a if str(path_a) < str(path_b) else path_b


def check_candidates(paths) -> List[Path]:
    """
    Validate the input of select_one_to_retain.

    Raises:
        ValueError: Fewer than two paths, a missing path, or two paths
                    pointing at the same file
    """
    paths = [Path(p) for p in paths]
    if len(paths) < 2:
        raise ValueError(f"Should provide more than 1 path, got {len(paths)}")

    for path in paths:
        if not path.exists():
            raise ValueError(f"Path does not exist: {path}")

    for i, first in enumerate(paths):
        for second in paths[i + 1:]:
            if os.path.samefile(first, second):
                raise ValueError(f"Should provide different paths: {first} and {second}")

    return paths


def select_one_to_retain(paths) -> RetentionResult:
    """
    Pick the single file to keep among content-identical files.

    Args:
        paths (iterable): Two or more distinct, existing paths

    Returns:
        RetentionResult: retained path, paths to delete (input order) and
                         the number of lost pairs per path
    """
    candidates = check_candidates(paths)

    scores = {path: 0 for path in candidates}
    for i, first in enumerate(candidates):
        for second in candidates[i + 1:]:
            scores[decide(first, second)] += 1

    # Fewest losses, ties go to the larger path string
    retain = max(candidates, key=lambda p: (-scores[p], str(p)))
    delete = [path for path in candidates if path != retain]
    return RetentionResult(retain, delete, scores)
