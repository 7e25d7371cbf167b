"""
fileops.py - Filesystem operations behind the policy flags

FileService is the only place that changes the filesystem. Each operation
is guarded by a flag (delete, move, copy). When the flag is off the
operation is logged with a [DRY RUN] marker and nothing happens, so a run
without any flag shows exactly what a real run would do.
"""

import os
import shutil
from pathlib import Path
from typing import Optional

from mediatidy.arbiter import decide, select_one_to_retain
from mediatidy.compare import ComparisonStrategy, FileComparator
from mediatidy.log import StatusLog
from mediatidy.naming import NameResolver, build_unique_path

DRY_RUN = "[DRY RUN]"


def _is_under(child: Path, parent: Path) -> bool:
    try:
        child.resolve().relative_to(parent.resolve())
        return True
    except ValueError:
        return False


def _same_path(path_a: Path, path_b: Path) -> bool:
    if os.path.abspath(path_a) == os.path.abspath(path_b):
        return True
    return path_a.exists() and path_b.exists() and os.path.samefile(path_a, path_b)


class FileService:
    """
    Move, copy, delete and prune, honouring the delete/move/copy flags.

    Args:
        resolver (NameResolver): Builds dated targets for organize
        comparator (FileComparator): Content comparison
        log (StatusLog): Status line logger and statistics
        delete (bool): Allow deletions
        move (bool): Allow moves
        copy (bool): Allow copies
        fast (bool): Use the sampled comparison strategy
        ignored (set): File names that do not keep a directory alive
    """

    def __init__(self, resolver=None, comparator=None, log=None,
                 delete=False, move=False, copy=False, fast=False, ignored=None):
        self.log = log or StatusLog()
        self.resolver = resolver or NameResolver(log=self.log)
        self.comparator = comparator or FileComparator(logger=self.log.logger)
        self.delete_enabled = delete
        self.move_enabled = move
        self.copy_enabled = copy
        self.fast = fast
        self.ignored = set(ignored or [])

    @classmethod
    def from_configuration(cls, configuration, log=None, extractor=None):
        """
        Build a FileService and its collaborators from a Configuration.

        Raises:
            ValueError: If the configuration is invalid
        """
        rules = configuration.validate()
        log = log or StatusLog()
        resolver = NameResolver(extractor=extractor, rules=rules, log=log)
        comparator = FileComparator(configuration.buffer_size, logger=log.logger)
        return cls(
            resolver=resolver,
            comparator=comparator,
            log=log,
            delete=configuration.delete,
            move=configuration.move,
            copy=configuration.copy,
            fast=configuration.fast,
            ignored=configuration.ignored,
        )

    # ---------- queries ----------

    def size(self, path: Path) -> int:
        """Size in bytes, -1 for a missing or unreadable path."""
        try:
            return Path(path).stat().st_size
        except OSError:
            return -1

    def is_same_file(self, source: Path, target: Path) -> bool:
        source, target = Path(source), Path(target)
        return source.exists() and target.exists() and os.path.samefile(source, target)

    def have_same_content(self, source: Path, target: Path) -> bool:
        strategy = ComparisonStrategy.FAST if self.fast else ComparisonStrategy.BYTE_BY_BYTE
        return self.comparator.have_same_content(source, target, strategy)

    def build_matching_target(self, source: Path, target_root: Path) -> Optional[Path]:
        result = self.resolver.resolve_target(source, target_root)
        if result is None:
            return None
        return result.under(target_root)

    def build_copy_target(self, source: Path, source_root: Path, target_root: Path) -> Path:
        return Path(target_root) / Path(source).relative_to(source_root)

    # ---------- changes ----------

    def move(self, source: Path, target: Path) -> Path:
        """
        Move source to target, or to a free variant of target if taken.

        Returns:
            Path: The actual target path

        Raises:
            ValueError: If source and target are the same path
            OSError: If the rename fails; source is left untouched
        """
        source, target = Path(source), Path(target)
        if _same_path(source, target):
            raise ValueError(f"Both paths are equal for move: {source} and {target}")

        unique = build_unique_path(target)
        if self.move_enabled:
            self.log.info_stat("move", source, ">", unique)
            unique.parent.mkdir(parents=True, exist_ok=True)
            # Single rename, never copy-then-delete
            source.rename(unique)
        else:
            self.log.info_stat("move", source, ">", unique, DRY_RUN)
        return unique

    def copy(self, source: Path, target: Path) -> Path:
        """
        Copy source to target, or to a free variant of target if taken.

        Returns:
            Path: The actual target path

        Raises:
            ValueError: If source and target are the same path
            OSError: If the copy fails; a partially written target is removed
        """
        source, target = Path(source), Path(target)
        if _same_path(source, target):
            raise ValueError(f"Both paths are equal for copy: {source} and {target}")

        unique = build_unique_path(target)
        if self.copy_enabled:
            self.log.info_stat("copy", source, ">", unique)
            unique.parent.mkdir(parents=True, exist_ok=True)
            try:
                shutil.copy2(source, unique)
            except OSError:
                if os.path.lexists(unique):
                    unique.unlink()
                raise
        else:
            self.log.info_stat("copy", source, ">", unique, DRY_RUN)
        return unique

    def delete(self, path: Path):
        path = Path(path)
        if self.delete_enabled:
            self.log.info_stat("delete", path)
            path.unlink()
        else:
            self.log.info_stat("delete", path, DRY_RUN)

    def delete_one(self, path_a: Path, path_b: Path) -> Path:
        """
        Delete the worse of two identical files (see arbiter.decide).

        Returns:
            Path: The path chosen for deletion

        Raises:
            ValueError: If both paths point at the same file
        """
        path_a, path_b = Path(path_a), Path(path_b)
        if _same_path(path_a, path_b):
            raise ValueError(f"Should provide different paths: {path_a} and {path_b}")

        loser = decide(path_a, path_b)
        keeper = path_b if loser == path_a else path_a
        self.log.info("retain", keeper)
        self.delete(loser)
        return loser

    def retain_one(self, paths):
        """
        Keep one of several identical files and delete the others.

        Returns:
            RetentionResult: The arbitration outcome

        Raises:
            ValueError: Fewer than two, missing or non-distinct paths
        """
        result = select_one_to_retain(paths)
        self.log.info("retain", result.retain, f"score {result.scores[result.retain]}")
        for path in result.delete:
            self.log.debug("score", path, result.scores[path])
            self.delete(path)
        return result

    def prune_empty(self, root: Path, start_dir: Path):
        """
        Remove start_dir and its parents while they hold only disposable files.

        A file is disposable when it is empty or its name is in the ignored
        set. The walk never goes above root and never removes root itself.

        Args:
            root (Path): Top of the tree, always kept
            start_dir (Path): First directory to inspect
        """
        root = Path(root).resolve()
        directory = Path(start_dir).resolve()

        while directory != root and _is_under(directory, root):
            if not directory.is_dir():
                break

            entries = list(directory.iterdir())
            if not all(self._is_disposable(entry) for entry in entries):
                break

            if not self.delete_enabled:
                self.log.info("delete-empty", directory, DRY_RUN)
                break

            for entry in entries:
                self.log.info_stat("delete-ignored", entry)
                entry.unlink()

            self.log.info("delete-empty", directory)
            directory.rmdir()
            directory = directory.parent

    def _is_disposable(self, entry: Path) -> bool:
        if entry.is_symlink() or not entry.is_file():
            return False
        return entry.name in self.ignored or entry.stat().st_size == 0
