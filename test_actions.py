#!/usr/bin/env python3
"""
test_actions.py - Tests for the whole-tree actions

Runs each action against a real temporary directory tree. Metadata dates are
stubbed so results depend only on file names.
"""

import logging
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from mediatidy.actions import Actions, list_directories, list_files
from mediatidy.compare import FileComparator
from mediatidy.fileops import FileService
from mediatidy.log import StatusLog
from mediatidy.naming import NameResolver


def _make_file(path: Path, content: bytes = b"default content") -> Path:
    """Helper: create a file with given content, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


def _get_test_logger() -> logging.Logger:
    """Return a logger that doesn't touch the filesystem."""
    logger = logging.getLogger(f"test.{id(object())}")
    logger.setLevel(logging.DEBUG)
    logger.addHandler(logging.NullHandler())
    return logger


def _actions(**flags) -> Actions:
    log = StatusLog(_get_test_logger())
    extractor = MagicMock()
    extractor.get_date.return_value = None
    service = FileService(
        resolver=NameResolver(extractor=extractor, log=log),
        comparator=FileComparator(1024, logger=log.logger),
        log=log,
        **flags,
    )
    return Actions(service)


def _tree(root: Path):
    """Relative paths of all files below root."""
    return sorted(str(p.relative_to(root)).replace("\\", "/") for p in root.rglob("*") if p.is_file())


class TestWalk(unittest.TestCase):
    """Test directory listing helpers."""

    def setUp(self):
        self.tmp = Path(tempfile.mkdtemp())
        self.addCleanup(shutil.rmtree, self.tmp)

    def test_list_files_sorted(self):
        for name in ["b/2.jpg", "a/1.jpg", "c.jpg", "a/0.jpg"]:
            _make_file(self.tmp / name)
        names = [str(p.relative_to(self.tmp)).replace("\\", "/") for p in list_files(self.tmp)]
        self.assertEqual(names, ["c.jpg", "a/0.jpg", "a/1.jpg", "b/2.jpg"])

    def test_list_directories_deepest_first(self):
        (self.tmp / "a" / "b" / "c").mkdir(parents=True)
        (self.tmp / "d").mkdir()
        names = [p.name for p in list_directories(self.tmp)]
        self.assertEqual(names, ["c", "b", "a", "d"])


class TestOrganize(unittest.TestCase):
    """Test organize and reorganize."""

    def setUp(self):
        self.tmp = Path(tempfile.mkdtemp())
        self.addCleanup(shutil.rmtree, self.tmp)
        self.source = self.tmp / "source"
        self.target = self.tmp / "target"
        self.source.mkdir()
        self.target.mkdir()

    def test_organize_moves_dated_files(self):
        _make_file(self.source / "camera" / "IMG 20210303_special.JPG", b"photo")
        _make_file(self.source / "notes.txt", b"text")

        statistics = _actions(move=True, delete=True).organize(self.source, self.target)

        self.assertEqual(_tree(self.target), ["2021-03/20210303-img-special.jpg"])
        self.assertEqual(_tree(self.source), ["notes.txt"])
        # Emptied source directory is pruned, the source root stays
        self.assertFalse((self.source / "camera").exists())
        self.assertEqual(statistics.count("MOVE"), 1)
        self.assertEqual(statistics.count("NO-MATCH"), 1)

    def test_organize_deletes_source_already_in_target(self):
        _make_file(self.source / "IMG_20200115_x.jpg", b"same")
        _make_file(self.target / "2020-01" / "20200115-img-x.jpg", b"same")

        statistics = _actions(move=True, delete=True).organize(self.source, self.target)

        self.assertEqual(_tree(self.source), [])
        self.assertEqual(_tree(self.target), ["2020-01/20200115-img-x.jpg"])
        self.assertEqual(statistics.count("DELETE"), 1)
        self.assertEqual(statistics.count("MOVE"), 0)

    def test_organize_keeps_both_when_content_differs(self):
        _make_file(self.source / "IMG_20200115_x.jpg", b"new")
        _make_file(self.target / "2020-01" / "20200115-img-x.jpg", b"old")

        _actions(move=True, delete=True).organize(self.source, self.target)

        self.assertEqual(
            _tree(self.target),
            ["2020-01/20200115-img-x-0.jpg", "2020-01/20200115-img-x.jpg"],
        )

    def test_organize_dry_run(self):
        _make_file(self.source / "IMG 20210303_special.JPG", b"photo")
        statistics = _actions().organize(self.source, self.target)
        self.assertEqual(_tree(self.source), ["IMG 20210303_special.JPG"])
        self.assertEqual(_tree(self.target), [])
        self.assertEqual(statistics.count("MOVE"), 1)

    def test_organize_continues_after_error(self):
        _make_file(self.source / "IMG_20200101_a.jpg", b"a")
        _make_file(self.source / "IMG_20200102_b.jpg", b"b")
        actions = _actions(move=True)

        real_move = actions.service.move
        calls = []

        def failing_move(source, target):
            calls.append(source)
            if len(calls) == 1:
                raise OSError("permission denied")
            return real_move(source, target)

        with patch.object(actions.service, "move", side_effect=failing_move):
            actions.organize(self.source, self.target)

        self.assertEqual(len(calls), 2)
        self.assertEqual(len(actions.log.errors), 1)
        self.assertEqual(_tree(self.target), ["2020-01/20200102-img-b.jpg"])

    def test_reorganize_is_idempotent(self):
        _make_file(self.target / "IMG_20200115_x.jpg", b"x")
        actions = _actions(move=True, delete=True)

        actions.reorganize(self.target)
        self.assertEqual(_tree(self.target), ["2020-01/20200115-img-x.jpg"])

        statistics = actions.reorganize(self.target)
        self.assertEqual(_tree(self.target), ["2020-01/20200115-img-x.jpg"])
        self.assertEqual(statistics.count("OK-LOCATION"), 1)
        self.assertEqual(statistics.count("MOVE"), 0)


class TestSynchronize(unittest.TestCase):
    """Test mirror copies."""

    def setUp(self):
        self.tmp = Path(tempfile.mkdtemp())
        self.addCleanup(shutil.rmtree, self.tmp)
        self.source = self.tmp / "source"
        self.target = self.tmp / "target"

    def test_synchronize_copies_missing_files(self):
        _make_file(self.source / "a" / "x.jpg", b"x")
        _make_file(self.source / "y.txt", b"y")
        actions = _actions(copy=True)

        statistics = actions.synchronize(self.source, self.target)
        self.assertEqual(_tree(self.target), ["a/x.jpg", "y.txt"])
        self.assertEqual(_tree(self.source), ["a/x.jpg", "y.txt"])
        self.assertEqual(statistics.count("COPY"), 2)

        statistics = actions.synchronize(self.source, self.target)
        self.assertEqual(_tree(self.target), ["a/x.jpg", "y.txt"])
        self.assertEqual(statistics.count("OK-LOCATION"), 2)
        self.assertEqual(statistics.count("COPY"), 0)

    def test_synchronize_dry_run(self):
        _make_file(self.source / "x.jpg", b"x")
        _actions().synchronize(self.source, self.target)
        self.assertFalse(self.target.exists())


class TestRemoveDuplicates(unittest.TestCase):
    """Test per-directory duplicate removal."""

    def setUp(self):
        self.tmp = Path(tempfile.mkdtemp())
        self.addCleanup(shutil.rmtree, self.tmp)
        self.root = self.tmp / "root"

    def test_remove_duplicates(self):
        big = b"d" * 2000
        _make_file(self.root / "dir" / "photo.jpg", big)
        _make_file(self.root / "dir" / "photo-0.jpg", big)
        _make_file(self.root / "dir" / "photo-1.jpg", big)
        _make_file(self.root / "dir" / "other.jpg", b"o" * 2000)
        _make_file(self.root / "dir" / "small.jpg", b"s" * 1024)
        _make_file(self.root / "dir" / "small-0.jpg", b"s" * 1024)
        _make_file(self.root / "dir-other" / "photo-0.jpg", big)

        statistics = _actions(delete=True).remove_duplicates(self.root)

        self.assertEqual(
            _tree(self.root),
            [
                "dir-other/photo-0.jpg",
                "dir/other.jpg",
                "dir/photo.jpg",
                "dir/small-0.jpg",
                "dir/small.jpg",
            ],
        )
        self.assertEqual(statistics.count("DELETE"), 2)

    def test_remove_duplicates_separate_clusters(self):
        _make_file(self.root / "a.jpg", b"a" * 2000)
        _make_file(self.root / "a-0.jpg", b"a" * 2000)
        _make_file(self.root / "b.jpg", b"b" * 2000)
        _make_file(self.root / "b-0.jpg", b"b" * 2000)

        _actions(delete=True).remove_duplicates(self.root)
        self.assertEqual(_tree(self.root), ["a.jpg", "b.jpg"])

    def test_remove_duplicates_dry_run(self):
        _make_file(self.root / "a.jpg", b"a" * 2000)
        _make_file(self.root / "a-0.jpg", b"a" * 2000)
        statistics = _actions().remove_duplicates(self.root)
        self.assertEqual(_tree(self.root), ["a-0.jpg", "a.jpg"])
        self.assertEqual(statistics.count("DELETE"), 1)


class TestRemoveEmpty(unittest.TestCase):
    """Test bottom-up pruning of a whole tree."""

    def setUp(self):
        self.tmp = Path(tempfile.mkdtemp())
        self.addCleanup(shutil.rmtree, self.tmp)
        self.root = self.tmp / "root"
        self.root.mkdir()

    def test_remove_empty(self):
        (self.root / "a" / "b").mkdir(parents=True)
        _make_file(self.root / "c" / ".picasa.ini", b"[Picasa]")
        _make_file(self.root / "d" / "photo.jpg", b"data")
        _make_file(self.root / "d" / "e" / "empty.txt", b"")

        _actions(delete=True, ignored=[".picasa.ini"]).remove_empty(self.root)

        self.assertEqual(sorted(p.name for p in self.root.iterdir()), ["d"])
        self.assertEqual(_tree(self.root), ["d/photo.jpg"])
        self.assertTrue(self.root.exists())

    def test_remove_empty_dry_run(self):
        (self.root / "a" / "b").mkdir(parents=True)
        _actions().remove_empty(self.root)
        self.assertTrue((self.root / "a" / "b").exists())


if __name__ == "__main__":
    unittest.main(verbosity=2)
