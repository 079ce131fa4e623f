# Copyright Red Hat
#
# treesync/fsdiff/fileops.py - Tree synchronisation path primitives
#
# This file is part of the treesync project.
#
# SPDX-License-Identifier: Apache-2.0
"""
File system operations used by the tree differ and applier.
"""
from collections import deque
from typing import Union
from pathlib import Path
import logging
import shutil
import os

from treesync import (
    TreesyncNotFoundError,
    TreesyncPathError,
    TREESYNC_SUBSYSTEM_APPLY,
)

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_apply(msg, *args, **kwargs):
    """A wrapper for apply subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": TREESYNC_SUBSYSTEM_APPLY}, **kwargs)


PathLike = Union[str, Path]


def path_exists(path: PathLike) -> bool:
    """
    Return ``True`` if ``path`` exists (following symbolic links).
    """
    return os.path.exists(path)


def is_directory(path: PathLike) -> bool:
    """
    Return ``True`` if ``path`` is a directory (following symbolic links).
    """
    return os.path.isdir(path)


def is_readable(path: PathLike) -> bool:
    """
    Return ``True`` if ``path`` exists and is readable by the current user.
    """
    return os.access(path, os.R_OK)


def copy_file(source: PathLike, dest: PathLike):
    """
    Copy the content of ``source`` to ``dest``, replacing any existing
    file at ``dest``.

    :param source: The file to copy.
    :type source: ``Union[str, Path]``
    :param dest: The destination path.
    :type dest: ``Union[str, Path]``
    """
    _log_debug_apply("Copying %s -> %s", source, dest)
    shutil.copyfile(source, dest)


def delete_tree(path: PathLike) -> None:
    """
    Delete ``path``: a directory is removed together with everything
    beneath it, any other file type is unlinked.

    :param path: The path to delete.
    :type path: ``Union[str, Path]``
    :raises TreesyncNotFoundError: If ``path`` does not exist.
    """
    if not os.path.lexists(path):
        raise TreesyncNotFoundError(f"Path to delete does not exist: {path}")
    if os.path.isdir(path) and not os.path.islink(path):
        _log_debug_apply("Deleting directory tree %s", path)
        shutil.rmtree(path)
    else:
        _log_debug_apply("Unlinking %s", path)
        os.unlink(path)


def create_directory_chain(path: PathLike) -> int:
    """
    Create the directory ``path`` together with any missing ancestors.

    :param path: The directory to create.
    :type path: ``Union[str, Path]``
    :returns: The number of directories created (0 if ``path`` was already
              a directory).
    :rtype: ``int``
    :raises TreesyncPathError: If a non-directory occupies ``path`` or one
                               of its ancestors.
    """
    the_path = os.path.normpath(os.path.abspath(path))
    if os.path.lexists(the_path):
        if os.path.isdir(the_path):
            return 0
        raise TreesyncPathError(
            f"Cannot create directory: there is a non-directory at {the_path}"
        )

    to_create = []
    current = the_path
    while not os.path.lexists(current):
        to_create.append(current)
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent

    if not os.path.isdir(current):
        raise TreesyncPathError(
            f"Cannot create directory {the_path}: there is a non-directory at {current}"
        )

    for dir_path in reversed(to_create):
        _log_debug_apply("Creating directory %s", dir_path)
        os.mkdir(dir_path)
    return len(to_create)


def copy_tree(source: PathLike, dest: PathLike) -> int:
    """
    Copy the file or directory tree at ``source`` onto ``dest``.

    Existing content at ``dest`` is overwritten and entries that are
    present only at ``dest`` are left in place. A directory found where a
    file is to be copied is removed first, and a file found where a
    directory is needed is replaced with a directory.

    :param source: The file or directory to copy.
    :type source: ``Union[str, Path]``
    :param dest: The destination path. Missing directories are created.
    :type dest: ``Union[str, Path]``
    :returns: The number of files and directories copied or created.
    :rtype: ``int``
    :raises TreesyncNotFoundError: If ``source`` does not exist.
    """
    if not os.path.exists(source):
        raise TreesyncNotFoundError(f"Copy source does not exist: {source}")

    def _copy_one(src: str, dst: str) -> None:
        if os.path.isdir(dst) and not os.path.islink(dst):
            delete_tree(dst)
        elif os.path.islink(dst):
            os.unlink(dst)
        copy_file(src, dst)

    if not os.path.isdir(source):
        _copy_one(source, dest)
        return 1

    done = 0
    if os.path.lexists(dest) and not os.path.isdir(dest):
        delete_tree(dest)
    done += create_directory_chain(dest)

    to_visit = deque([(os.fspath(source), os.fspath(dest))])
    while to_visit:
        src_dir, dst_dir = to_visit.popleft()
        for name in sorted(os.listdir(src_dir)):
            src_path = os.path.join(src_dir, name)
            dst_path = os.path.join(dst_dir, name)
            if os.path.isdir(src_path):
                if os.path.lexists(dst_path) and not os.path.isdir(dst_path):
                    _log_debug_apply("Replacing %s with a directory", dst_path)
                    os.unlink(dst_path)
                if not os.path.isdir(dst_path):
                    os.mkdir(dst_path)
                to_visit.append((src_path, dst_path))
            else:
                _copy_one(src_path, dst_path)
            done += 1

    _log_debug_apply("Copied %d items from %s -> %s", done, source, dest)
    return done
