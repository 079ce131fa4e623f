# Copyright Red Hat
#
# treesync/command.py - Tree synchronisation command interface
#
# This file is part of the treesync project.
#
# SPDX-License-Identifier: Apache-2.0
"""The ``treesync.command`` module provides both the treesync command line
interface infrastructure, and a simple procedural interface to the
``treesync`` library modules.

The procedural interface is used by the ``treesync`` command line tool,
and may be used by application programs, or interactively in the
Python shell by users who do not require all the features present
in the treesync object API.
"""
from argparse import ArgumentParser
from os.path import basename
import logging
import sys
import os

from treesync import (
    TreesyncArgumentError,
    TREESYNC_DEBUG_COMMAND,
    TREESYNC_DEBUG_WALK,
    TREESYNC_DEBUG_DIFF,
    TREESYNC_DEBUG_APPLY,
    TREESYNC_DEBUG_ALL,
    TREESYNC_SUBSYSTEM_COMMAND,
    SubsystemFilter,
    set_debug_mask,
    __version__,
)
from .fsdiff import (
    ApplyResult,
    ChangeClassification,
    DiffOptions,
    DiffResult,
    FsDiffer,
    copy_tree,
)
from .fsdiff.options import HASH_ALGORITHMS, DEFAULT_HASH_ALGORITHM

#: Output formats accepted by the ``diff`` and ``apply`` commands.
OUTPUT_FORMATS = ["summary", "paths", "json"]

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_command(msg, *args, **kwargs):
    """A wrapper for command subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": TREESYNC_SUBSYSTEM_COMMAND}, **kwargs)


_DEFAULT_LOG_LEVEL = logging.WARNING
_CONSOLE_HANDLER = None


def diff_trees(reference, target, options=None):
    """
    Compare the tree at ``target`` to the tree at ``reference``.

    :param reference: The path to the authoritative tree.
    :param target: The path to the tree to compare.
    :param options: A ``DiffOptions`` instance.
    :returns: A ``DiffResult`` describing the changes.
    """
    return FsDiffer(options).diff(os.path.abspath(reference), os.path.abspath(target))


def apply_trees(reference, target, options=None):
    """
    Bring the tree at ``target`` into line with the tree at ``reference``.

    :param reference: The path to the authoritative tree.
    :param target: The path to the tree to modify.
    :param options: A ``DiffOptions`` instance.
    :returns: An ``ApplyResult`` describing the changes made.
    """
    return FsDiffer(options).apply(os.path.abspath(reference), os.path.abspath(target))


def list_tree(root, options=None):
    """
    List the paths below ``root``.

    :param root: The path to the tree to list.
    :param options: A ``DiffOptions`` instance.
    :returns: A sorted list of absolute paths.
    """
    return FsDiffer(options).list_tree(os.path.abspath(root))


def trees_equal(path_a, path_b, options=None):
    """
    Test two files or two trees for content equality.

    :param path_a: The first path to compare.
    :param path_b: The second path to compare.
    :param options: A ``DiffOptions`` instance.
    :returns: ``True`` if the content is equal or ``False`` otherwise.
    """
    return FsDiffer(options).content_equals(
        os.path.abspath(path_a), os.path.abspath(path_b)
    )


def copy_paths(source, target):
    """
    Copy the file or tree at ``source`` onto ``target``.

    :param source: The path to copy.
    :param target: The destination path.
    :returns: The number of files and directories copied or created.
    """
    return copy_tree(os.path.abspath(source), os.path.abspath(target))


def print_diff(
    results: DiffResult, output_format="summary", pretty=False, unchanged=False
):
    """
    Print a ``DiffResult`` in the requested format.
    """
    if output_format == "json":
        print(results.json(pretty=pretty))
    elif output_format == "paths":
        pairs = sorted(
            results.status(changed_only=not unchanged),
            key=lambda pair: pair[1].relative_path,
        )
        for cls, entry in pairs:
            print(f"{cls.symbol} {entry.relative_path}")
        for entry in results.unreadable_paths:
            print(f"{ChangeClassification.UNREADABLE.symbol} {entry.absolute_path}")
    else:
        print(results.summary(include_unchanged=unchanged))


def print_apply(results: ApplyResult, output_format="summary", pretty=False):
    """
    Print an ``ApplyResult`` in the requested format.
    """
    if output_format == "json":
        print(results.json(pretty=pretty))
    elif output_format == "paths":
        for entry in results.created:
            print(f"{ChangeClassification.ADDED.symbol} {entry.relative_path}")
        for entry in results.deleted:
            print(f"{ChangeClassification.DELETED.symbol} {entry.relative_path}")
        for entry in results.updated:
            print(f"{ChangeClassification.UPDATED.symbol} {entry.relative_path}")
    else:
        print(results.summary())


def _check_output_args(cmd_args):
    """
    Validate the output formatting arguments of ``cmd_args``.

    :raises TreesyncArgumentError: If the arguments are inconsistent.
    """
    if cmd_args.output_format not in OUTPUT_FORMATS:
        # Belts and braces: ArgumentParser validates ``choices``.
        raise TreesyncArgumentError(
            f"Unknown output format: {cmd_args.output_format}"
        )
    if cmd_args.pretty and cmd_args.output_format != "json":
        raise TreesyncArgumentError(
            "Option --pretty only supported with --output-format=json"
        )


def _diff_cmd(cmd_args):
    """
    Diff trees command handler.

    Compare a target tree to a reference tree and print the changes.

    :param cmd_args: Command line arguments for the command
    :returns: integer status code returned from ``main()``
    """
    try:
        _check_output_args(cmd_args)
    except TreesyncArgumentError as err:
        _log_error("%s", err)
        return 1

    options = DiffOptions.from_cmd_args(cmd_args)
    results = diff_trees(cmd_args.reference, cmd_args.target, options)
    print_diff(
        results,
        output_format=cmd_args.output_format,
        pretty=cmd_args.pretty,
        unchanged=cmd_args.unchanged,
    )
    return 0


def _apply_cmd(cmd_args):
    """
    Apply changes command handler.

    Bring a target tree into line with a reference tree.

    :param cmd_args: Command line arguments for the command
    :returns: integer status code returned from ``main()``
    """
    try:
        _check_output_args(cmd_args)
    except TreesyncArgumentError as err:
        _log_error("%s", err)
        return 1

    options = DiffOptions.from_cmd_args(cmd_args)
    results = apply_trees(cmd_args.reference, cmd_args.target, options)
    print_apply(results, output_format=cmd_args.output_format, pretty=cmd_args.pretty)
    return 0


def _list_cmd(cmd_args):
    """
    List tree command handler.

    :param cmd_args: Command line arguments for the command
    :returns: integer status code returned from ``main()``
    """
    options = DiffOptions.from_cmd_args(cmd_args)
    for path in list_tree(cmd_args.root, options):
        print(path)
    return 0


def _equal_cmd(cmd_args):
    """
    Equality test command handler.

    :param cmd_args: Command line arguments for the command
    :returns: 0 if the paths are equal or 1 otherwise.
    """
    options = DiffOptions.from_cmd_args(cmd_args)
    equal = trees_equal(cmd_args.path_a, cmd_args.path_b, options)
    print("equal" if equal else "different")
    return 0 if equal else 1


def _copy_cmd(cmd_args):
    """
    Copy command handler.

    :param cmd_args: Command line arguments for the command
    :returns: integer status code returned from ``main()``
    """
    done = copy_paths(cmd_args.source, cmd_args.target)
    print(f"Copied {done} items")
    return 0


def setup_logging(cmd_args):
    """
    Set up treesync logging.
    """
    # pylint: disable=global-statement
    global _CONSOLE_HANDLER
    level = _DEFAULT_LOG_LEVEL
    if cmd_args.verbose and cmd_args.verbose > 1:
        level = logging.DEBUG
    elif cmd_args.verbose and cmd_args.verbose > 0:
        level = logging.INFO

    treesync_log = logging.getLogger("treesync")
    formatter = logging.Formatter("%(levelname)s - %(message)s")
    treesync_log.setLevel(level)
    if treesync_log.hasHandlers():
        treesync_log.handlers.clear()

    # Subsystem log filtering
    _treesync_subsystem_filter = SubsystemFilter("treesync")

    # Main console handler
    _CONSOLE_HANDLER = logging.StreamHandler()

    _CONSOLE_HANDLER.setLevel(level)
    _CONSOLE_HANDLER.setFormatter(formatter)
    _CONSOLE_HANDLER.addFilter(_treesync_subsystem_filter)

    treesync_log.addHandler(_CONSOLE_HANDLER)


def shutdown_logging():
    """
    Shut down treesync logging.
    """
    logging.shutdown()


def set_debug(debug_arg):
    """
    Set debugging mask from command line argument.
    """
    if not debug_arg:
        return

    mask_map = {
        "command": TREESYNC_DEBUG_COMMAND,
        "walk": TREESYNC_DEBUG_WALK,
        "diff": TREESYNC_DEBUG_DIFF,
        "apply": TREESYNC_DEBUG_APPLY,
        "all": TREESYNC_DEBUG_ALL,
    }

    mask = 0
    for name in debug_arg.split(","):
        if name not in mask_map:
            raise ValueError(f"Unknown debug option: {name}")
        mask |= mask_map[name]
    set_debug_mask(mask)


def _add_walk_args(parser):
    """
    Add tree walking arguments.
    """
    parser.add_argument(
        "-i",
        "--ignore",
        type=str,
        action="append",
        metavar="PATTERN",
        default=None,
        help="Paths or wildcard patterns to ignore (may be repeated or "
        "given as a comma separated list)",
    )
    parser.add_argument(
        "--no-follow-symlinks",
        dest="follow_symlinks",
        action="store_false",
        help="Do not follow symbolic links when walking trees",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Do not output progress or status information",
    )


def _add_compare_args(parser):
    """
    Add content comparison arguments.
    """
    _add_walk_args(parser)
    parser.add_argument(
        "--hash",
        type=str,
        dest="hash_algorithm",
        choices=HASH_ALGORITHMS,
        default=DEFAULT_HASH_ALGORITHM,
        help=f"Content hash algorithm (default: {DEFAULT_HASH_ALGORITHM})",
    )
    parser.add_argument(
        "-f",
        "--file-types",
        dest="use_magic_file_type",
        action="store_true",
        help="Detect binary files using libmagic",
    )


def _add_output_args(parser, unchanged=True):
    """
    Add output formatting arguments.
    """
    parser.add_argument(
        "-o",
        "--output-format",
        type=str,
        choices=OUTPUT_FORMATS,
        default=OUTPUT_FORMATS[0],
        help=f"Output format ({', '.join(OUTPUT_FORMATS)})",
    )
    parser.add_argument(
        "--pretty",
        action="store_true",
        help="Format JSON output for readability",
    )
    if unchanged:
        parser.add_argument(
            "-u",
            "--unchanged",
            action="store_true",
            help="Include unchanged paths in the output",
        )


def _add_roots_args(parser):
    parser.add_argument(
        "reference",
        metavar="REFERENCE",
        type=str,
        help="The reference tree whose state is authoritative",
    )
    parser.add_argument(
        "target",
        metavar="TARGET",
        type=str,
        help="The target tree to compare to the reference",
    )


DIFF_CMD = "diff"
APPLY_CMD = "apply"
MERGE_CMD = "merge"
LIST_CMD = "list"
EQUAL_CMD = "equal"
COPY_CMD = "copy"


def main(args):
    """
    Main entry point for treesync.
    """
    parser = ArgumentParser(
        description="Directory tree synchronisation", prog=basename(args[0])
    )

    # Global arguments
    parser.add_argument(
        "-d",
        "--debug",
        metavar="DEBUGOPTS",
        type=str,
        help="A list of debug options to enable",
    )
    parser.add_argument("-v", "--verbose", help="Enable verbose output", action="count")
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        help="Report the version number of treesync",
        version=__version__,
    )
    command_subparser = parser.add_subparsers(dest="command", help="Command")

    # diff command
    diff_parser = command_subparser.add_parser(
        DIFF_CMD, help="Show the changes needed to bring TARGET into line"
    )
    diff_parser.set_defaults(func=_diff_cmd)
    _add_roots_args(diff_parser)
    _add_compare_args(diff_parser)
    _add_output_args(diff_parser)

    # apply command
    apply_parser = command_subparser.add_parser(
        APPLY_CMD,
        aliases=[MERGE_CMD],
        help="Apply the changes needed to bring TARGET into line",
    )
    apply_parser.set_defaults(func=_apply_cmd)
    _add_roots_args(apply_parser)
    _add_compare_args(apply_parser)
    _add_output_args(apply_parser, unchanged=False)

    # list command
    list_parser = command_subparser.add_parser(
        LIST_CMD, help="List the paths below a tree root"
    )
    list_parser.set_defaults(func=_list_cmd)
    list_parser.add_argument(
        "root",
        metavar="ROOT",
        type=str,
        help="The tree to list",
    )
    _add_walk_args(list_parser)

    # equal command
    equal_parser = command_subparser.add_parser(
        EQUAL_CMD, help="Test two files or trees for equal content"
    )
    equal_parser.set_defaults(func=_equal_cmd)
    equal_parser.add_argument(
        "path_a",
        metavar="PATH_A",
        type=str,
        help="The first file or tree to compare",
    )
    equal_parser.add_argument(
        "path_b",
        metavar="PATH_B",
        type=str,
        help="The second file or tree to compare",
    )
    _add_compare_args(equal_parser)

    # copy command
    copy_parser = command_subparser.add_parser(
        COPY_CMD, help="Copy a file or tree onto a target path"
    )
    copy_parser.set_defaults(func=_copy_cmd)
    copy_parser.add_argument(
        "source",
        metavar="SOURCE",
        type=str,
        help="The file or tree to copy",
    )
    copy_parser.add_argument(
        "target",
        metavar="TARGET",
        type=str,
        help="The destination path",
    )

    cmd_args = parser.parse_args(args[1:])

    status = 1

    try:
        set_debug(cmd_args.debug)
    except ValueError as err:
        print(err)
        parser.print_help()
        return status

    setup_logging(cmd_args)

    _log_debug_command("Parsed %s", " ".join(args[1:]))

    if "func" not in cmd_args:
        parser.print_help()
        return status

    if cmd_args.debug:
        status = cmd_args.func(cmd_args)
    else:
        try:
            status = cmd_args.func(cmd_args)
        # pylint: disable=broad-except
        except KeyboardInterrupt:  # pragma: no cover
            _log_info("Exiting on user cancel")
        except Exception as err:
            _log_error("Command failed: %s", err)

    shutdown_logging()
    return status


def run():
    """
    Console script entry point for treesync.
    """
    sys.exit(main(sys.argv))


# vim: set et ts=4 sw=4 :
