"""
actions.py - Whole-tree operations

Each action walks a directory tree in sorted order and hands every file or
directory to the FileService. A failing item is logged with the ERROR status
and the walk continues with the next one.
"""

import os
import time
from pathlib import Path
from typing import List

from mediatidy.fileops import FileService
from mediatidy.log import Statistics

# Files at or below this size are never treated as duplicates
MIN_DUPLICATE_SIZE = 1024


def list_files(root: Path) -> List[Path]:
    """All regular files below root, sorted by directory then name."""
    result = []
    for folder, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for filename in sorted(filenames):
            path = Path(folder) / filename
            if path.is_file() and not path.is_symlink():
                result.append(path)
    return result


def list_directories(root: Path) -> List[Path]:
    """All directories below root (root excluded), deepest first."""
    result = []
    for folder, dirnames, _ in os.walk(root):
        dirnames.sort()
        result.extend(Path(folder) / name for name in dirnames)
    return sorted(result, key=lambda p: (-len(p.parts), str(p)))


class Actions:
    """
    Organize, synchronize, deduplicate and prune media trees.

    Args:
        service (FileService): Performs (or dry-runs) every change
    """

    def __init__(self, service: FileService):
        self.service = service
        self.log = service.log
        self._started = 0.0

    def organize(self, source_root: Path, target_root: Path) -> Statistics:
        """
        Move every dated media file from source_root into target_root/YYYY-MM.

        Files whose identical copy already sits at the target are deleted
        from the source. Source directories emptied by the run are pruned.

        Returns:
            Statistics: Per-status counters of this run
        """
        source_root, target_root = Path(source_root), Path(target_root)
        self._start("organize", source_root, ">", target_root)
        touched = set()

        for source in list_files(source_root):
            try:
                target = self.service.build_matching_target(source, target_root)
                if target is None:
                    continue
                if self.service.is_same_file(source, target):
                    self.log.debug_stat("ok-location", source)
                elif self.service.have_same_content(source, target):
                    self.log.info("duplicate", source, "=", target)
                    self.service.delete(source)
                    touched.add(source.parent)
                else:
                    self.service.move(source, target)
                    touched.add(source.parent)
            except (OSError, ValueError) as e:
                self.log.error("error", source, e)

        for directory in sorted(touched, key=lambda p: (-len(p.parts), str(p))):
            try:
                self.service.prune_empty(source_root, directory)
            except OSError as e:
                self.log.error("error", directory, e)

        return self._finish()

    def reorganize(self, root: Path) -> Statistics:
        """Re-apply the naming rules to a tree that is already organized."""
        return self.organize(root, root)

    def synchronize(self, source_root: Path, target_root: Path) -> Statistics:
        """
        Mirror source_root into target_root by copying missing or changed files.

        Returns:
            Statistics: Per-status counters of this run
        """
        source_root, target_root = Path(source_root), Path(target_root)
        self._start("synchronize", source_root, ">", target_root)

        for source in list_files(source_root):
            try:
                target = self.service.build_copy_target(source, source_root, target_root)
                if target.exists() and self.service.have_same_content(source, target):
                    self.log.debug_stat("ok-location", source)
                else:
                    self.service.copy(source, target)
            except (OSError, ValueError) as e:
                self.log.error("error", source, e)

        return self._finish()

    def remove_duplicates(self, root: Path) -> Statistics:
        """
        Within each directory keep one file of every set of identical files.

        Only files larger than MIN_DUPLICATE_SIZE are considered. Files are
        grouped by size first, so only same-sized files are ever compared.

        Returns:
            Statistics: Per-status counters of this run
        """
        root = Path(root)
        self._start("remove-duplicates", root)

        by_directory = {}
        for path in list_files(root):
            by_directory.setdefault(path.parent, []).append(path)

        for directory, paths in sorted(by_directory.items()):
            self.log.debug("directory", directory)
            by_size = {}
            for path in paths:
                size = self.service.size(path)
                if size > MIN_DUPLICATE_SIZE:
                    by_size.setdefault(size, []).append(path)

            for group in by_size.values():
                if len(group) < 2:
                    continue
                for cluster in self._clusters(group):
                    if len(cluster) < 2:
                        continue
                    try:
                        self.service.retain_one(cluster)
                    except (OSError, ValueError) as e:
                        self.log.error("error", directory, e)

        return self._finish()

    def remove_empty(self, root: Path) -> Statistics:
        """
        Prune every directory below root that holds only disposable files.

        Returns:
            Statistics: Per-status counters of this run
        """
        root = Path(root)
        self._start("remove-empty", root)

        for directory in list_directories(root):
            if not directory.is_dir():
                # Already removed with a child
                continue
            try:
                self.service.prune_empty(root, directory)
            except OSError as e:
                self.log.error("error", directory, e)

        return self._finish()

    def _clusters(self, group: List[Path]) -> List[List[Path]]:
        # Each cluster is compared through its first member
        clusters = []
        for path in group:
            for cluster in clusters:
                try:
                    first = cluster[0]
                    if not self.service.is_same_file(first, path) and self.service.have_same_content(first, path):
                        cluster.append(path)
                        break
                except OSError as e:
                    self.log.error("error", path, e)
                    break
            else:
                clusters.append([path])
        return clusters

    def _start(self, name, *parts):
        self.log.reset_statistics(name)
        self.log.label(name)
        self.log.info(name, *parts)
        self._started = time.monotonic()

    def _finish(self) -> Statistics:
        elapsed = time.monotonic() - self._started
        self.log.info("time", f"{self.log.statistics.name} took {elapsed:.1f} s")
        return self.log.statistics
