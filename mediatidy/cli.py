r"""
cli.py - Command line front end for mediatidy

SUMMARY:
--------
Organizes photos and videos into YYYY-MM directories under a target
directory, naming every file YYYYMMDD-<normalized name>.<ext>. The date comes
from an explicit rule in the configuration file, a date already present in
the file name, the EXIF/container metadata, or the file creation date (only
when the name already mentions it).

ACTIONS:
--------
organize     move media files from each -i directory into the -o tree
reorganize   re-apply the naming rules inside the -o tree
synchronize  copy each -i tree into -o, mirroring relative paths
dedupe       per directory, keep one of every set of identical files
prune        remove directories holding only empty or ignored files

Nothing is changed unless -m, -c or -D allows it. Without them every
operation is only logged with a [DRY RUN] marker.

USAGE EXAMPLES:
---------------
1. Preview how a camera dump would be organized (dry run):
    mediatidy organize -i /media/camera -o /photos

2. Organize for real, deleting source files already present in the target:
    mediatidy organize -m -D -i /media/camera -i /media/phone -o /photos

3. Rename files inside an existing archive to the current rules:
    mediatidy reorganize -m -o /photos

4. Back up an archive, copying only new or changed files:
    mediatidy synchronize -c -i /photos -o /backup/photos

5. Remove duplicates using sampled comparison with 4 MiB windows:
    mediatidy dedupe -D -f -b 4194304 -o /photos

6. Remove empty directories, treating .picasa.ini as disposable:
    mediatidy prune -D -C mediatidy.json -o /photos

7. Configuration file with explicit dates (first matching rule wins):
    {
        "ignored": [".picasa.ini", "Thumbs.db"],
        "explicitDates": {"scan.+\\.jpg": "2010-11-21", "whatsapp.+": "FILE_DATE"}
    }

See --help for all options.
"""

import argparse
import datetime
import logging
import sys
from pathlib import Path

from mediatidy import __version__, myversion
from mediatidy.actions import Actions
from mediatidy.compare import DEFAULT_BUFFER_SIZE, round_buffer_size
from mediatidy.config import Configuration
from mediatidy.fileops import FileService
from mediatidy.log import StatusLog, set_up_logging

ACTIONS = ["organize", "reorganize", "synchronize", "dedupe", "prune"]
NEEDS_SOURCE = {"organize", "synchronize"}


def print_examples():
    """Print the examples section of the module docstring."""
    doc_lines = __doc__.split("\n")
    examples_start = doc_lines.index("USAGE EXAMPLES:")
    examples_end = next(
        (
            i
            for i, line in enumerate(doc_lines[examples_start:], examples_start)
            if line.startswith("See --help")
        ),
        len(doc_lines),
    )
    print("\n".join(doc_lines[examples_start : examples_end + 1]))


class VersionedArgumentParser(argparse.ArgumentParser):
    """Custom ArgumentParser that displays version on error when no arguments provided."""

    def error(self, message):
        if "required" in message and len(sys.argv) == 1:
            sys.stderr.write(f"mediatidy {myversion}\n\n")
            sys.stderr.write(f"error: {message}\n")
            sys.stderr.write("Try 'mediatidy --help' for more information.\n")
        else:
            sys.stderr.write(f"{self.prog}: error: {message}\n")
            sys.stderr.write(f"Try '{self.prog} --help' for more information.\n")
        sys.exit(2)


def parse_arguments(args=None):
    """
    Parse command line arguments.

    Args:
        args (list, optional): Command line arguments. Defaults to sys.argv[1:].

    Returns:
        argparse.Namespace: Parsed arguments

    --examples is handled before parsing so it works without the required
    arguments.
    """
    if args is None:
        args = sys.argv[1:]

    if "--examples" in args:
        print_examples()
        sys.exit(0)

    parser = VersionedArgumentParser(
        prog="mediatidy",
        description="Organize media files into YYYY-MM directories, remove duplicate files and prune empty directories.",
        epilog="""
IMPORTANT NOTES:
- Without -m, -c or -D nothing is changed, every operation is only logged
- All operations are logged to 'events.log' in the target directory
- Use --examples to see usage scenarios""",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "action",
        choices=ACTIONS,
        help="Action to run: organize, reorganize, synchronize, dedupe or prune.",
        metavar="ACTION",
    )

    parser.add_argument(
        "-i",
        "--input",
        action="append",
        default=[],
        help="Source directory, may be repeated. Required by organize and synchronize.",
        metavar="SOURCE_DIR",
        dest="sources",
    )

    parser.add_argument(
        "-o",
        "--output",
        required=True,
        help="Target directory. Also the working directory of reorganize, dedupe and prune.",
        metavar="TARGET_DIR",
        dest="target",
    )

    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "-m",
        "--move",
        action="store_true",
        help="Allow moving files. Cannot be used with --copy.",
    )

    group.add_argument(
        "-c",
        "--copy",
        action="store_true",
        help="Allow copying files. Cannot be used with --move.",
    )

    parser.add_argument(
        "-D",
        "--delete",
        action="store_true",
        help="Allow deleting duplicate files and empty directories.",
    )

    parser.add_argument(
        "-f",
        "--fast",
        action="store_true",
        help="Compare large files by three sampled windows instead of all bytes. "
        "Much faster, but differences outside the windows go unnoticed.",
    )

    parser.add_argument(
        "-b",
        "--buffer-size",
        type=int,
        default=None,
        help=f"Comparison buffer size in bytes, rounded up to whole KiB [default: {DEFAULT_BUFFER_SIZE}]",
        metavar="BYTES",
        dest="buffer_size",
    )

    parser.add_argument(
        "-C",
        "--config",
        default=None,
        help="JSON configuration file with 'ignored' names and 'explicitDates' rules.",
        metavar="CONFIG",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging, including files that need no change.",
    )

    parser.add_argument(
        "--examples",
        action="store_true",
        help="Display usage examples and exit.",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
        help="Show program version and exit",
    )

    return parser.parse_args(args)


def validate_args(parsed_args, sources, target: Path, target_existed: bool, logger):
    """
    Check the directories given on the command line.

    Exits:
        With code 1 if a required directory is missing
    """
    if parsed_args.action in NEEDS_SOURCE and not sources:
        logger.error(f"Action {parsed_args.action} needs at least one source directory (-i)")
        sys.exit(1)

    for source in sources:
        if not source.is_dir():
            logger.error(f"Source directory does not exist: {source}")
            sys.exit(1)

    if parsed_args.action not in NEEDS_SOURCE and not target_existed:
        logger.error(f"Target directory does not exist: {target}")
        sys.exit(1)


def build_configuration(parsed_args) -> Configuration:
    """
    Merge the command line flags and the optional configuration file.

    Raises:
        ValueError: Invalid configuration file content
        OSError: Configuration file cannot be read
    """
    configuration = Configuration(
        delete=parsed_args.delete,
        move=parsed_args.move,
        copy=parsed_args.copy,
        fast=parsed_args.fast,
    )
    if parsed_args.config:
        configuration.load(Path(parsed_args.config).expanduser())
    # Command line wins over the file
    if parsed_args.buffer_size is not None:
        configuration.buffer_size = round_buffer_size(parsed_args.buffer_size)
    if parsed_args.fast:
        configuration.fast = True
    return configuration


def run_action(actions: Actions, action: str, sources, target: Path):
    """Run one action, once per source directory where it takes one."""
    if action == "organize":
        for source in sources:
            yield actions.organize(source, target)
    elif action == "synchronize":
        for source in sources:
            yield actions.synchronize(source, target)
    elif action == "reorganize":
        yield actions.reorganize(target)
    elif action == "dedupe":
        yield actions.remove_duplicates(target)
    elif action == "prune":
        yield actions.remove_empty(target)


def main(args=None):
    """
    Main entry point.

    Args:
        args (list, optional): Command line arguments. Defaults to None.

    Returns:
        int: 0 on success, 1 if any item failed

    Parses arguments, sets up logging in the target directory, builds the
    configuration and runs the requested action, ending with a statistics
    summary per action.
    """
    parsed_args = parse_arguments(args)

    sources = [Path(source).expanduser().resolve() for source in parsed_args.sources]
    target = Path(parsed_args.target).expanduser().resolve()
    # Logging creates the target directory
    target_existed = target.is_dir()

    logger = set_up_logging(target, parsed_args.verbose)

    start_time = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    logger.info("=" * 80)
    logger.info("mediatidy - Media Organization Tool")
    logger.info(f"Version: {__version__}")
    logger.info(f"Session Started: {start_time}")
    logger.info("=" * 80)
    logger.debug("Command-line options: %s", vars(parsed_args))

    validate_args(parsed_args, sources, target, target_existed, logger)

    try:
        configuration = build_configuration(parsed_args)
        log = StatusLog(logger)
        service = FileService.from_configuration(configuration, log=log)
    except (ValueError, OSError) as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    logger.info(f"Configuration: {configuration}")
    if configuration.dry_run:
        logger.info("Dry run: no -m, -c or -D given, nothing will be changed")

    actions = Actions(service)
    failed = False
    for statistics in run_action(actions, parsed_args.action, sources, target):
        log.label("summary")
        log.summary()
        if log.errors:
            failed = True
            logger.info(f"{len(log.errors)} errors in {statistics.name}")

    end_time = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    logger.info("=" * 80)
    logger.info(f"Session Ended: {end_time}")
    logger.info("=" * 80)
    logger.info("")

    logging.shutdown()
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
