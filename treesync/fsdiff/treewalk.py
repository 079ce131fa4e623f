# Copyright Red Hat
#
# treesync/fsdiff/treewalk.py - Tree synchronisation tree walk
#
# This file is part of the treesync project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Tree walking support for treesync.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Pattern, Tuple
import logging
import stat
import re
import os

from treesync import (
    TreesyncNotFoundError,
    TreesyncPathError,
    TREESYNC_SUBSYSTEM_WALK,
)

from .options import DiffOptions

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_walk(msg, *args, **kwargs):
    """A wrapper for walk subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": TREESYNC_SUBSYSTEM_WALK}, **kwargs)


#: Log a progress message every this many entries.
_PROGRESS_INTERVAL = 10000


@dataclass(frozen=True)
class PathEntry:
    """
    Representation of a single file system entry discovered while walking
    a tree.
    """

    #: The full path of this entry
    absolute_path: str
    #: The path relative to the root of the walk: the join key between trees
    relative_path: str
    #: True if this entry is a directory
    is_dir: bool
    #: Distance from the walk root (direct children have depth 1)
    depth: int
    #: Modification time returned by ``stat()``
    mtime: float = 0.0
    #: Status change (or creation) time returned by ``stat()``
    ctime: float = 0.0
    #: Access time returned by ``stat()``
    atime: float = 0.0
    #: Size in bytes returned by ``stat()``
    size: int = 0

    @classmethod
    def from_stat(
        cls,
        absolute_path: str,
        relative_path: str,
        depth: int,
        stat_info: os.stat_result,
    ) -> "PathEntry":
        """
        Build a ``PathEntry`` from an ``os.stat_result``.

        :param absolute_path: The full path to the entry.
        :type absolute_path: ``str``
        :param relative_path: The path relative to the walk root.
        :type relative_path: ``str``
        :param depth: The depth of this entry below the walk root.
        :type depth: ``int``
        :param stat_info: An ``os.stat_result`` for the entry.
        :type stat_info: ``os.stat_result``
        :returns: A new ``PathEntry``.
        :rtype: ``PathEntry``
        """
        return cls(
            absolute_path=absolute_path,
            relative_path=relative_path,
            is_dir=stat.S_ISDIR(stat_info.st_mode),
            depth=depth,
            mtime=stat_info.st_mtime,
            ctime=stat_info.st_ctime,
            atime=stat_info.st_atime,
            size=stat_info.st_size,
        )

    def __str__(self):
        """
        Return a string representation of this ``PathEntry`` object.

        :returns: A human readable representation of this ``PathEntry``.
        :rtype: ``str``
        """
        indent = 4 * " "
        return (
            f"{indent}path: {self.absolute_path}\n"
            f"{indent}relative_path: {self.relative_path}\n"
            f"{indent}type: {self.type_desc}\n"
            f"{indent}depth: {self.depth}\n"
            f"{indent}size: {self.size}\n"
            f"{indent}mtime: {self.mtime}"
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert this ``PathEntry`` object into a dictionary representation
        suitable for encoding as JSON.

        :returns: A dictionary mapping this instance's keys to values.
        :rtype: ``Dict[str, Any]``
        """
        return {
            "path": self.absolute_path,
            "relative_path": self.relative_path,
            "is_dir": self.is_dir,
            "depth": self.depth,
            "mtime": self.mtime,
            "ctime": self.ctime,
            "atime": self.atime,
            "size": self.size,
        }

    @property
    def type_desc(self) -> str:
        """
        Return a string description of the entry type: "file" or
        "directory".

        :returns: A string description of the entry type.
        :rtype: ``str``
        """
        return "directory" if self.is_dir else "file"

    def is_below(self, other: "PathEntry") -> bool:
        """
        Return ``True`` if this entry lies strictly beneath ``other``.

        :param other: The candidate ancestor entry.
        :type other: ``PathEntry``
        :returns: ``True`` if ``other`` is an ancestor of this entry.
        :rtype: ``bool``
        """
        return self.absolute_path.startswith(other.absolute_path + os.sep)


class IgnoreMatcher:
    """
    Match absolute paths against an ignore specification.

    Patterns containing ``*`` are wildcard expressions anchored at both
    ends and evaluated against the full path. Other patterns name exact
    paths: relative patterns are resolved against the walk root.
    """

    def __init__(self, root: str, patterns: Tuple[str, ...] = ()):
        """
        Initialise a new ``IgnoreMatcher``.

        :param root: The normalised walk root.
        :type root: ``str``
        :param patterns: The ignore patterns.
        :type patterns: ``Tuple[str, ...]``
        """
        self.exact_paths = set()
        self.wildcards: List[Pattern] = []
        for pattern in patterns:
            if "*" in pattern:
                expr = "^" + ".*".join(re.escape(part) for part in pattern.split("*"))
                self.wildcards.append(re.compile(expr + "$", re.DOTALL))
            elif os.path.isabs(pattern):
                self.exact_paths.add(pattern)
            else:
                self.exact_paths.add(os.path.normpath(os.path.join(root, pattern)))
        _log_debug_walk(
            "Ignore matcher for %s: exact=%s, wildcards=%s",
            root,
            ", ".join(sorted(self.exact_paths)),
            ", ".join(exp.pattern for exp in self.wildcards),
        )

    def __bool__(self):
        return bool(self.exact_paths or self.wildcards)

    def is_ignored(self, path: str) -> bool:
        """
        Return ``True`` if ``path`` matches the ignore specification.

        :param path: The absolute path to test.
        :type path: ``str``
        :returns: ``True`` if ``path`` should be excluded.
        :rtype: ``bool``
        """
        if path in self.exact_paths:
            return True
        return any(exp.match(path) for exp in self.wildcards)


@dataclass
class WalkResult:
    """
    The entries discovered below a walk root.
    """

    #: The normalised walk root
    root: str
    #: Entries in top-down order
    entries: List[PathEntry] = field(default_factory=list)
    #: Directories that could not be listed
    unreadable_dirs: List[str] = field(default_factory=list)

    def by_relative_path(self) -> Dict[str, PathEntry]:
        """
        Return a mapping of relative path to ``PathEntry``.

        :returns: A dictionary keyed by ``PathEntry.relative_path``.
        :rtype: ``Dict[str, PathEntry]``
        """
        return {entry.relative_path: entry for entry in self.entries}

    def paths(self) -> List[str]:
        """
        Return the sorted absolute paths of all entries.

        :returns: A sorted list of absolute path strings.
        :rtype: ``List[str]``
        """
        return sorted(entry.absolute_path for entry in self.entries)


def normalize_root(root: str) -> str:
    """
    Return ``root`` as an absolute, normalised path without a trailing
    separator.

    :param root: The path to normalise.
    :type root: ``str``
    :returns: The normalised path.
    :rtype: ``str``
    """
    return os.path.normpath(os.path.abspath(os.fspath(root)))


def check_root(root: str, what: str = "Root") -> str:
    """
    Normalise ``root`` and check that it is an existing directory.

    :param root: The path to check.
    :type root: ``str``
    :param what: A description of the root used in error messages.
    :type what: ``str``
    :returns: The normalised root path.
    :rtype: ``str``
    :raises TreesyncNotFoundError: If ``root`` does not exist.
    :raises TreesyncPathError: If ``root`` is not a directory.
    """
    root = normalize_root(root)
    if not os.path.exists(root):
        raise TreesyncNotFoundError(f"{what} path does not exist: {root}")
    if not os.path.isdir(root):
        raise TreesyncPathError(f"{what} path is not a directory: {root}")
    return root


def is_illegal_symlink(link_path: str, link_target: str) -> bool:
    """
    Return ``True`` if following the symbolic link at ``link_path`` would
    recurse into itself or one of its ancestors.

    :param link_path: The path of the symbolic link.
    :type link_path: ``str``
    :param link_target: The value returned by ``os.readlink()``.
    :type link_target: ``str``
    :returns: ``True`` for self- or ancestor-referential links.
    :rtype: ``bool``
    """
    if link_target in (".", ".."):
        return True
    resolved = os.path.normpath(os.path.join(os.path.dirname(link_path), link_target))
    return link_path == resolved or link_path.startswith(resolved + os.sep)


class TreeWalker:
    """
    Simple file system tree walker for comparisons.
    """

    def __init__(self, options: Optional[DiffOptions] = None):
        """
        Initialise a new ``TreeWalker`` object.

        :param options: Options to control this ``TreeWalker`` instance.
        :type options: ``DiffOptions``
        """
        self.options: DiffOptions = options or DiffOptions()

    def _stat_child(self, path: str) -> Optional[os.stat_result]:
        """
        Return the ``os.stat_result`` describing ``path``, or ``None`` if
        the path is to be skipped.

        :param path: The path to examine.
        :type path: ``str``
        :returns: Stat data for ``path`` or ``None``.
        :rtype: ``Optional[os.stat_result]``
        """
        try:
            path_stat = os.lstat(path)
        except FileNotFoundError:
            # Path vanished between listing and stat; skip it.
            return None

        if not stat.S_ISLNK(path_stat.st_mode):
            return path_stat

        if not self.options.follow_symlinks:
            _log_warn("Not following symbolic link: %s", path)
            return None

        link_target = os.readlink(path)
        if is_illegal_symlink(path, link_target):
            _log_warn("Ignoring illegal symbolic link: %s => %s", path, link_target)
            return None

        try:
            return os.stat(path)
        except OSError:
            _log_warn("Ignoring dangling symbolic link: %s => %s", path, link_target)
            return None

    def walk_tree(self, root: str) -> WalkResult:
        """
        Walk the file system tree below ``root`` and return its entries in
        top-down order: the children of each directory are listed after the
        directory itself.

        :param root: The directory to walk.
        :type root: ``str``
        :returns: The discovered entries and any unreadable directories.
        :rtype: ``WalkResult``
        :raises TreesyncNotFoundError: If ``root`` does not exist.
        :raises TreesyncPathError: If ``root`` is not a directory.
        """
        root = check_root(root)
        ignore = IgnoreMatcher(root, self.options.ignore)
        result = WalkResult(root)
        # Directories strictly below root begin with this prefix.
        prefix_len = len(root.rstrip(os.sep)) + 1

        _log_info("Gathering paths from %s", root)

        def _list_dir(dir_path: str, depth: int):
            """
            Append the non-ignored children of ``dir_path`` to the result.
            """
            try:
                names = sorted(os.listdir(dir_path))
            except OSError as err:
                _log_debug_walk("Could not list %s: %s", dir_path, err)
                result.unreadable_dirs.append(dir_path)
                return

            for name in names:
                child_path = os.path.join(dir_path, name)
                if ignore and ignore.is_ignored(child_path):
                    _log_debug_walk("Ignoring %s", child_path)
                    continue
                child_stat = self._stat_child(child_path)
                if child_stat is None:
                    continue
                result.entries.append(
                    PathEntry.from_stat(
                        child_path, child_path[prefix_len:], depth, child_stat
                    )
                )
                if self.options.quiet:
                    continue
                if len(result.entries) % _PROGRESS_INTERVAL == 0:
                    _log_info("Listed %d paths ...", len(result.entries))

        _list_dir(root, 1)
        # Entries appended while iterating are visited in turn (breadth first).
        index = 0
        while index < len(result.entries):
            entry = result.entries[index]
            if entry.is_dir:
                _list_dir(entry.absolute_path, entry.depth + 1)
            index += 1

        if result.unreadable_dirs:
            _log_warn(
                "Could not list %d directories below %s:\n%s",
                len(result.unreadable_dirs),
                root,
                "\n".join(result.unreadable_dirs),
            )

        _log_info("Found %d paths below %s", len(result.entries), root)
        return result
