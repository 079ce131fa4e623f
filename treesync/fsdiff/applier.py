# Copyright Red Hat
#
# treesync/fsdiff/applier.py - Tree synchronisation change applier
#
# This file is part of the treesync project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Replay a classified change set onto a target tree.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple
from datetime import datetime
import logging
import json
import os

from treesync import TREESYNC_SUBSYSTEM_APPLY

from .difftypes import ChangeClassification
from .engine import DiffResult
from .fileops import copy_file, create_directory_chain, delete_tree, is_directory
from .treewalk import PathEntry

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_apply(msg, *args, **kwargs):
    """A wrapper for apply subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": TREESYNC_SUBSYSTEM_APPLY}, **kwargs)


@dataclass(frozen=True)
class ApplyResult:
    """
    The changes acted upon when applying a ``DiffResult`` to a target tree.
    """

    #: The authoritative tree
    reference_root: str
    #: The tree that was modified
    target_root: str
    #: Reference entries created in the target tree
    created: Tuple[PathEntry, ...] = ()
    #: Target entries removed from the target tree
    deleted: Tuple[PathEntry, ...] = ()
    #: Reference entries whose content replaced the target's
    updated: Tuple[PathEntry, ...] = ()

    @property
    def change_count(self) -> int:
        """
        The number of entries acted upon.

        :returns: The total of created, updated and deleted entries.
        :rtype: ``int``
        """
        return len(self.created) + len(self.deleted) + len(self.updated)

    def summary(self) -> str:
        """
        Render a report of the applied changes: one line per entry followed
        by the totals.

        :returns: The rendered summary.
        :rtype: ``str``
        """
        pairs = (
            [(ChangeClassification.ADDED, entry) for entry in self.created]
            + [(ChangeClassification.DELETED, entry) for entry in self.deleted]
            + [(ChangeClassification.UPDATED, entry) for entry in self.updated]
        )
        pairs.sort(key=lambda pair: pair[1].relative_path)
        lines = [
            f"{cls.symbol}{'d' if entry.is_dir else 'f'} {entry.relative_path}"
            for cls, entry in pairs
        ]
        lines.append(
            f"# Applied: created={len(self.created)} updated={len(self.updated)} "
            f"deleted={len(self.deleted)}"
        )
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.summary()

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert this ``ApplyResult`` object into a dictionary representation
        suitable for encoding as JSON.

        :returns: A dictionary mapping this instance's keys to values.
        :rtype: ``Dict[str, Any]``
        """
        return {
            "reference_root": self.reference_root,
            "target_root": self.target_root,
            "change_count": self.change_count,
            "created": [entry.to_dict() for entry in self.created],
            "deleted": [entry.to_dict() for entry in self.deleted],
            "updated": [entry.to_dict() for entry in self.updated],
        }

    def json(self, pretty: bool = False) -> str:
        """
        Return a string representation of this ``ApplyResult`` in JSON
        notation.

        :param pretty: Indent JSON to be human readable.
        :type pretty: ``bool``
        :returns: A JSON representation of this instance.
        :rtype: ``str``
        """
        return json.dumps(self.to_dict(), indent=4 if pretty else None)


def _is_real_directory(path: str) -> bool:
    return is_directory(path) and not os.path.islink(path)


class ChangeApplier:
    """
    Apply the changes described by a ``DiffResult`` to its target tree.

    Changes are applied in three passes: added paths, then deleted paths,
    then updated paths. Each pass runs in sorted order so that parent
    directories are handled before their children.
    """

    def _target_path(self, diff_result: DiffResult, entry: PathEntry) -> str:
        return os.path.join(diff_result.target_root, entry.relative_path)

    def _prepare_directories(self, diff_result: DiffResult):
        """
        Replace target files that the reference tree has turned into
        directories so that added descendants have somewhere to land.
        """
        for entry in diff_result.updated:
            if not entry.is_dir:
                continue
            target_path = self._target_path(diff_result, entry)
            if os.path.lexists(target_path) and not _is_real_directory(target_path):
                _log_info("UPDATED: replacing %s with a directory", target_path)
                delete_tree(target_path)
            create_directory_chain(target_path)

    def _apply_added(self, diff_result: DiffResult) -> List[PathEntry]:
        created = []
        for entry in diff_result.added:
            target_path = self._target_path(diff_result, entry)
            if entry.is_dir:
                _log_info("ADDED: creating directory %s", target_path)
                create_directory_chain(target_path)
            else:
                _log_info("ADDED: copying %s -> %s", entry.absolute_path, target_path)
                create_directory_chain(os.path.dirname(target_path))
                copy_file(entry.absolute_path, target_path)
            created.append(entry)
        return created

    def _apply_deleted(self, diff_result: DiffResult) -> List[PathEntry]:
        deleted = []
        for entry in diff_result.deleted:
            if os.path.lexists(entry.absolute_path):
                _log_info("DELETED: removing %s", entry.absolute_path)
                delete_tree(entry.absolute_path)
            else:
                _log_debug_apply(
                    "DELETED: %s already removed with its parent", entry.absolute_path
                )
            deleted.append(entry)
        return deleted

    def _apply_updated(self, diff_result: DiffResult) -> List[PathEntry]:
        updated = []
        for entry in diff_result.updated:
            target_path = self._target_path(diff_result, entry)
            if not entry.is_dir:
                if _is_real_directory(target_path):
                    _log_info("UPDATED: removing directory %s", target_path)
                    delete_tree(target_path)
                _log_info(
                    "UPDATED: copying %s -> %s", entry.absolute_path, target_path
                )
                create_directory_chain(os.path.dirname(target_path))
                copy_file(entry.absolute_path, target_path)
            updated.append(entry)
        return updated

    def apply_diff(self, diff_result: DiffResult) -> ApplyResult:
        """
        Apply ``diff_result`` to its target tree.

        :param diff_result: The change set to apply.
        :type diff_result: ``DiffResult``
        :returns: The entries acted upon.
        :rtype: ``ApplyResult``
        :raises TreesyncPathError: If a directory cannot be created because a
                                   non-directory occupies its path.
        :raises OSError: If a file system operation fails.
        """
        start_time = datetime.now()
        _log_info(
            "Applying %d changes from %s to %s",
            diff_result.change_count,
            diff_result.reference_root,
            diff_result.target_root,
        )

        self._prepare_directories(diff_result)
        created = self._apply_added(diff_result)
        deleted = self._apply_deleted(diff_result)
        updated = self._apply_updated(diff_result)

        result = ApplyResult(
            reference_root=diff_result.reference_root,
            target_root=diff_result.target_root,
            created=tuple(created),
            deleted=tuple(deleted),
            updated=tuple(updated),
        )
        end_time = datetime.now()
        _log_info(
            "Applied %d changes in %s", result.change_count, end_time - start_time
        )
        return result
