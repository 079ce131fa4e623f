# Copyright Red Hat
#
# treesync/fsdiff/fsdiffer.py - Tree synchronisation differ
#
# This file is part of the treesync project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Top-level fsdiff interface.
"""
from dataclasses import replace
from typing import List, Optional
import logging
import os

from treesync import TreesyncNotFoundError, TreesyncPathError

from .applier import ApplyResult, ChangeApplier
from .engine import DiffEngine, DiffResult
from .fileops import is_directory, path_exists
from .fingerprint import Fingerprinter
from .options import DiffOptions, IgnoreSpec
from .treewalk import TreeWalker, check_root, normalize_root

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


class FsDiffer:
    """
    Top-level interface for generating and applying tree comparisons.
    """

    def __init__(self, options: Optional[DiffOptions] = None):
        """
        Initialise a new ``FsDiffer`` to compute file system differences.

        :param options: Options to control this ``FsDiffer`` instance.
        :type options: ``DiffOptions``
        """
        options = options or DiffOptions()
        self.options: DiffOptions = options
        self.tree_walker: TreeWalker = TreeWalker(options)
        self.fingerprinter: Fingerprinter = Fingerprinter(
            options.hash_algorithm, use_magic=options.use_magic_file_type
        )
        self.diff_engine: DiffEngine = DiffEngine()
        self.change_applier: ChangeApplier = ChangeApplier()

    def diff(self, reference_root: str, target_root: str) -> DiffResult:
        """
        Compare ``target_root`` to ``reference_root`` and return the changes
        needed to bring the target into line with the reference.

        :param reference_root: The authoritative tree.
        :type reference_root: ``str``
        :param target_root: The tree to compare against the reference.
        :type target_root: ``str``
        :returns: The classified change set.
        :rtype: ``DiffResult``
        :raises TreesyncNotFoundError: If either root does not exist.
        :raises TreesyncPathError: If either root is not a directory.
        """
        reference_root = check_root(reference_root, what="Reference")
        target_root = check_root(target_root, what="Target")
        _log_debug(
            "Comparing %s to %s with options:\n%s",
            target_root,
            reference_root,
            self.options,
        )

        reference_walk = self.tree_walker.walk_tree(reference_root)
        target_walk = self.tree_walker.walk_tree(target_root)

        return self.diff_engine.compute_diff(
            reference_walk, target_walk, self.options, self.fingerprinter
        )

    def apply(self, reference_root: str, target_root: str) -> ApplyResult:
        """
        Compare ``target_root`` to ``reference_root`` and apply the changes
        to ``target_root``.

        :param reference_root: The authoritative tree.
        :type reference_root: ``str``
        :param target_root: The tree to modify.
        :type target_root: ``str``
        :returns: The entries acted upon.
        :rtype: ``ApplyResult``
        """
        diff_result = self.diff(reference_root, target_root)
        if diff_result.unreadable_paths:
            _log_warn(
                "Skipping %d unreadable paths while applying changes",
                len(diff_result.unreadable_paths),
            )
        return self.change_applier.apply_diff(diff_result)

    def content_equals(self, path_a: str, path_b: str) -> bool:
        """
        Test whether two files or two directory trees have equal content.

        :param path_a: The first path to compare.
        :type path_a: ``str``
        :param path_b: The second path to compare.
        :type path_b: ``str``
        :returns: ``True`` if both paths are files with equal fingerprints or
                  directories with no differences, ``False`` otherwise.
        :rtype: ``bool``
        :raises TreesyncNotFoundError: If either path does not exist.
        :raises TreesyncPathError: If either path is neither a file nor a
                                   directory.
        """
        path_a = normalize_root(path_a)
        path_b = normalize_root(path_b)
        for path in (path_a, path_b):
            if not path_exists(path):
                raise TreesyncNotFoundError(f"Path does not exist: {path}")
            if not (is_directory(path) or os.path.isfile(path)):
                raise TreesyncPathError(
                    f"Path is neither a regular file nor a directory: {path}"
                )

        if is_directory(path_a) != is_directory(path_b):
            _log_debug("Type mismatch comparing %s and %s", path_a, path_b)
            return False

        if is_directory(path_a):
            return self.diff(path_a, path_b).change_count == 0

        return self.fingerprinter.fingerprint(
            path_a
        ) == self.fingerprinter.fingerprint(path_b)

    def list_tree(self, root: str) -> List[str]:
        """
        Return the sorted absolute paths of every non-ignored entry below
        ``root``.

        :param root: The directory to list.
        :type root: ``str``
        :returns: A sorted list of absolute paths.
        :rtype: ``List[str]``
        """
        return self.tree_walker.walk_tree(root).paths()


def _make_options(
    ignore: IgnoreSpec = None, options: Optional[DiffOptions] = None
) -> DiffOptions:
    return (options or DiffOptions()).with_ignore(ignore)


def diff(
    reference_root: str,
    target_root: str,
    ignore: IgnoreSpec = None,
    options: Optional[DiffOptions] = None,
) -> DiffResult:
    """
    Compare ``target_root`` to ``reference_root``.

    :param reference_root: The authoritative tree.
    :type reference_root: ``str``
    :param target_root: The tree to compare against the reference.
    :type target_root: ``str``
    :param ignore: Paths or wildcard patterns to exclude. Overrides
                   ``options.ignore`` if given.
    :type ignore: ``Union[str, Iterable[str], None]``
    :param options: Comparison options.
    :type options: ``Optional[DiffOptions]``
    :returns: The classified change set.
    :rtype: ``DiffResult``
    """
    return FsDiffer(_make_options(ignore, options)).diff(reference_root, target_root)


def apply(
    reference_root: str,
    target_root: str,
    ignore: IgnoreSpec = None,
    options: Optional[DiffOptions] = None,
) -> ApplyResult:
    """
    Bring ``target_root`` into line with ``reference_root``.

    :param reference_root: The authoritative tree.
    :type reference_root: ``str``
    :param target_root: The tree to modify.
    :type target_root: ``str``
    :param ignore: Paths or wildcard patterns to exclude. Overrides
                   ``options.ignore`` if given.
    :type ignore: ``Union[str, Iterable[str], None]``
    :param options: Comparison options.
    :type options: ``Optional[DiffOptions]``
    :returns: The entries acted upon.
    :rtype: ``ApplyResult``
    """
    return FsDiffer(_make_options(ignore, options)).apply(reference_root, target_root)


def content_equals(
    path_a: str,
    path_b: str,
    ignore: IgnoreSpec = None,
    options: Optional[DiffOptions] = None,
) -> bool:
    """
    Test whether two files or two directory trees have equal content.
    See ``FsDiffer.content_equals()``.
    """
    return FsDiffer(_make_options(ignore, options)).content_equals(path_a, path_b)


def list_tree(
    root: str,
    ignore: IgnoreSpec = None,
    follow_symlinks: Optional[bool] = None,
    options: Optional[DiffOptions] = None,
) -> List[str]:
    """
    List the entries below ``root``.

    :param root: The directory to list.
    :type root: ``str``
    :param ignore: Paths or wildcard patterns to exclude.
    :type ignore: ``Union[str, Iterable[str], None]``
    :param follow_symlinks: Follow symbolic links. Defaults to the value in
                            ``options`` (``True`` if no options are given).
    :type follow_symlinks: ``Optional[bool]``
    :param options: Walk options.
    :type options: ``Optional[DiffOptions]``
    :returns: A sorted list of absolute paths.
    :rtype: ``List[str]``
    """
    options = _make_options(ignore, options)
    if follow_symlinks is not None:
        options = replace(options, follow_symlinks=follow_symlinks)
    return FsDiffer(options).list_tree(root)
