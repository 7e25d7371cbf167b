#!/usr/bin/env python3
"""
test_cli.py - End-to-end tests of the mediatidy command line

Runs cli.main() in-process against temporary directories. Metadata lookups
are stubbed so the results depend only on file names.
"""

import json
import logging
import shutil
import tempfile
import unittest
from io import StringIO
from pathlib import Path
from unittest.mock import patch

from mediatidy import __version__, cli
from mediatidy.log import LOGGER_NAME


def _make_file(path: Path, content: bytes = b"default content") -> Path:
    """Helper: create a file with given content, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


def _remove_handlers():
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


class CliTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp = Path(tempfile.mkdtemp())
        self.addCleanup(shutil.rmtree, self.tmp)
        self.addCleanup(_remove_handlers)
        self.source = self.tmp / "source"
        self.target = self.tmp / "target"
        self.source.mkdir()

        metadata_patch = patch("mediatidy.metadata.get_created_date_fast", return_value=None)
        metadata_patch.start()
        self.addCleanup(metadata_patch.stop)

    def run_main(self, *args):
        with patch("sys.stdout", new_callable=StringIO) as stdout:
            result = cli.main(list(args))
        return result, stdout.getvalue()

    def events(self) -> str:
        return (self.target / "events.log").read_text(encoding="utf-8")


class TestOrganizeCommand(CliTestCase):
    """Test organize through the command line."""

    def test_dry_run_by_default(self):
        _make_file(self.source / "IMG 20210303_special.JPG", b"photo")

        result, output = self.run_main("organize", "-i", str(self.source), "-o", str(self.target))

        self.assertEqual(result, 0)
        self.assertTrue((self.source / "IMG 20210303_special.JPG").exists())
        self.assertFalse((self.target / "2021-03").exists())
        self.assertIn("[DRY RUN]", output)
        self.assertIn("Session Started", self.events())
        self.assertIn("Session Ended", self.events())

    def test_move(self):
        _make_file(self.source / "IMG 20210303_special.JPG", b"photo")
        _make_file(self.source / "notes.txt", b"text")

        result, _ = self.run_main("organize", "-m", "-i", str(self.source), "-o", str(self.target))

        self.assertEqual(result, 0)
        self.assertTrue((self.target / "2021-03" / "20210303-img-special.jpg").exists())
        self.assertTrue((self.source / "notes.txt").exists())
        self.assertIn("1 files", self.events())

    def test_several_sources(self):
        other = self.tmp / "other"
        _make_file(self.source / "IMG_20200101_a.jpg", b"a")
        _make_file(other / "IMG_20200202_b.jpg", b"b")

        self.run_main("organize", "-m", "-i", str(self.source), "-i", str(other), "-o", str(self.target))

        self.assertTrue((self.target / "2020-01" / "20200101-img-a.jpg").exists())
        self.assertTrue((self.target / "2020-02" / "20200202-img-b.jpg").exists())

    def test_explicit_dates_from_config(self):
        _make_file(self.source / "Scan 001.jpg", b"scan")
        config = _make_file(
            self.tmp / "mediatidy.json",
            json.dumps({"explicitDates": {"scan.+": "2010-11-21"}}).encode("utf-8"),
        )

        self.run_main("organize", "-m", "-C", str(config), "-i", str(self.source), "-o", str(self.target))

        self.assertTrue((self.target / "2010-11" / "20101121-scan-001.jpg").exists())

    def test_needs_source(self):
        with self.assertRaises(SystemExit) as cm:
            self.run_main("organize", "-o", str(self.target))
        self.assertEqual(cm.exception.code, 1)

    def test_missing_source(self):
        with self.assertRaises(SystemExit) as cm:
            self.run_main("organize", "-i", str(self.tmp / "missing"), "-o", str(self.target))
        self.assertEqual(cm.exception.code, 1)

    def test_invalid_config(self):
        config = _make_file(self.tmp / "bad.json", b"{broken")
        with self.assertRaises(SystemExit) as cm:
            self.run_main("organize", "-C", str(config), "-i", str(self.source), "-o", str(self.target))
        self.assertEqual(cm.exception.code, 1)
        self.assertIn("Invalid configuration", self.events())

    def test_config_with_wrong_value_types(self):
        for data in [{"explicitDates": {"scan.+": 20101121}}, {"bufferSize": None}]:
            with self.subTest(data=data):
                config = _make_file(self.tmp / "bad.json", json.dumps(data).encode("utf-8"))
                with self.assertRaises(SystemExit) as cm:
                    self.run_main("organize", "-C", str(config), "-i", str(self.source), "-o", str(self.target))
                self.assertEqual(cm.exception.code, 1)
                _remove_handlers()


class TestOtherCommands(CliTestCase):
    """Test the single-directory actions."""

    def test_dedupe(self):
        _make_file(self.target / "photo.jpg", b"p" * 2000)
        _make_file(self.target / "photo-0.jpg", b"p" * 2000)

        result, _ = self.run_main("dedupe", "-D", "-f", "-b", "1024", "-o", str(self.target))

        self.assertEqual(result, 0)
        self.assertTrue((self.target / "photo.jpg").exists())
        self.assertFalse((self.target / "photo-0.jpg").exists())

    def test_prune(self):
        (self.target / "a" / "b").mkdir(parents=True)
        _make_file(self.target / "c" / "keep.jpg", b"data")

        self.run_main("prune", "-D", "-o", str(self.target))

        self.assertFalse((self.target / "a").exists())
        self.assertTrue((self.target / "c" / "keep.jpg").exists())

    def test_reorganize(self):
        _make_file(self.target / "IMG_20200115_x.jpg", b"x")
        self.run_main("reorganize", "-m", "-o", str(self.target))
        self.assertTrue((self.target / "2020-01" / "20200115-img-x.jpg").exists())

    def test_synchronize(self):
        _make_file(self.source / "a" / "x.jpg", b"x")
        self.run_main("synchronize", "-c", "-i", str(self.source), "-o", str(self.target))
        self.assertTrue((self.target / "a" / "x.jpg").exists())
        self.assertTrue((self.source / "a" / "x.jpg").exists())

    def test_missing_target(self):
        with self.assertRaises(SystemExit) as cm:
            self.run_main("prune", "-o", str(self.tmp / "missing"))
        self.assertEqual(cm.exception.code, 1)


class TestArguments(unittest.TestCase):
    """Test argument parsing."""

    def test_move_and_copy_exclusive(self):
        with patch("sys.argv", ["mediatidy", "organize"]), patch("sys.stderr", new_callable=StringIO):
            with self.assertRaises(SystemExit) as cm:
                cli.parse_arguments(["organize", "-m", "-c", "-o", "x"])
        self.assertEqual(cm.exception.code, 2)

    def test_unknown_action(self):
        with patch("sys.argv", ["mediatidy", "x"]), patch("sys.stderr", new_callable=StringIO):
            with self.assertRaises(SystemExit) as cm:
                cli.parse_arguments(["tidy", "-o", "x"])
        self.assertEqual(cm.exception.code, 2)

    def test_no_arguments_shows_version(self):
        with patch("sys.argv", ["mediatidy"]), patch("sys.stderr", new_callable=StringIO) as stderr:
            with self.assertRaises(SystemExit) as cm:
                cli.parse_arguments([])
        self.assertEqual(cm.exception.code, 2)
        self.assertIn(__version__, stderr.getvalue())

    def test_version(self):
        with patch("sys.stdout", new_callable=StringIO) as stdout:
            with self.assertRaises(SystemExit) as cm:
                cli.parse_arguments(["--version"])
        self.assertEqual(cm.exception.code, 0)
        self.assertIn(__version__, stdout.getvalue())

    def test_examples(self):
        with patch("sys.stdout", new_callable=StringIO) as stdout:
            with self.assertRaises(SystemExit) as cm:
                cli.parse_arguments(["--examples"])
        self.assertEqual(cm.exception.code, 0)
        self.assertIn("USAGE EXAMPLES:", stdout.getvalue())
        self.assertIn("mediatidy organize", stdout.getvalue())

    def test_defaults(self):
        parsed = cli.parse_arguments(["dedupe", "-o", "x"])
        self.assertEqual(parsed.sources, [])
        self.assertFalse(parsed.move or parsed.copy or parsed.delete or parsed.fast)
        self.assertIsNone(parsed.buffer_size)
        self.assertIsNone(parsed.config)


if __name__ == "__main__":
    unittest.main(verbosity=2)
