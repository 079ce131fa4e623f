# Copyright Red Hat
#
# treesync/fsdiff/engine.py - Tree synchronisation diff engine
#
# This file is part of the treesync project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Tree diff engine
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple
from datetime import datetime
import logging
import json
import os

from treesync import TREESYNC_SUBSYSTEM_DIFF

from .difftypes import ChangeClassification
from .fileops import is_readable
from .fingerprint import Fingerprinter
from .options import DiffOptions
from .treewalk import PathEntry, WalkResult

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_diff(msg, *args, **kwargs):
    """A wrapper for diff subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": TREESYNC_SUBSYSTEM_DIFF}, **kwargs)


def _sort_entries(entries: Iterable[PathEntry]) -> Tuple[PathEntry, ...]:
    """
    Return ``entries`` sorted by absolute path as a tuple.
    """
    return tuple(sorted(entries, key=lambda entry: entry.absolute_path))


def _unlisted_prefixes(walk: WalkResult) -> Tuple[str, ...]:
    """
    Return the relative path prefixes of directories that could not be
    listed while walking ``walk.root``. An unlisted root maps to the empty
    prefix, which every relative path starts with.
    """
    return tuple(
        ""
        if os.path.normpath(dir_path) == os.path.normpath(walk.root)
        else os.path.relpath(dir_path, walk.root) + os.sep
        for dir_path in walk.unreadable_dirs
    )


def collapse_top_level(entries: Iterable[PathEntry]) -> Tuple[PathEntry, ...]:
    """
    Reduce ``entries`` to the minimal subset that covers them: an entry is
    retained only if no other entry in ``entries`` is one of its ancestors.

    The result depends only on the set of paths given and not on their
    order.

    :param entries: The entries to collapse.
    :type entries: ``Iterable[PathEntry]``
    :returns: The top-level entries sorted by absolute path.
    :rtype: ``Tuple[PathEntry, ...]``
    """
    entries = _sort_entries(entries)
    dir_paths = {entry.absolute_path for entry in entries if entry.is_dir}

    def _has_ancestor(path: str) -> bool:
        parent = os.path.dirname(path)
        while parent != path:
            if parent in dir_paths:
                return True
            path, parent = parent, os.path.dirname(parent)
        return False

    return tuple(entry for entry in entries if not _has_ancestor(entry.absolute_path))


# pylint: disable=too-many-instance-attributes
@dataclass(frozen=True)
class DiffResult:
    """
    The result of comparing a reference tree to a target tree.

    ``added``, ``updated`` and ``unchanged`` hold reference-side entries;
    ``deleted`` holds target-side entries. All sequences are sorted by
    absolute path.
    """

    #: The authoritative tree
    reference_root: str
    #: The tree to be brought into line with ``reference_root``
    target_root: str
    #: Paths present only in the reference tree
    added: Tuple[PathEntry, ...] = ()
    #: Paths present in both trees with differing content or type
    updated: Tuple[PathEntry, ...] = ()
    #: Paths present only in the target tree
    deleted: Tuple[PathEntry, ...] = ()
    #: Paths present in both trees with equal content
    unchanged: Tuple[PathEntry, ...] = ()
    #: ``added`` collapsed to its top-level entries
    added_top_level: Tuple[PathEntry, ...] = ()
    #: ``deleted`` collapsed to its top-level entries
    deleted_top_level: Tuple[PathEntry, ...] = ()
    #: Files on either side whose content could not be read
    unreadable_paths: Tuple[PathEntry, ...] = ()
    #: Directories on either side that could not be listed
    unreadable_dirs: Tuple[str, ...] = ()

    @property
    def change_count(self) -> int:
        """
        The number of changes needed to bring the target tree into line with
        the reference tree.

        :returns: The total of added, updated and deleted paths.
        :rtype: ``int``
        """
        return len(self.added) + len(self.updated) + len(self.deleted)

    def status(
        self, changed_only: bool = False
    ) -> List[Tuple[ChangeClassification, PathEntry]]:
        """
        Return the classification of every compared path.

        :param changed_only: Omit unchanged paths.
        :type changed_only: ``bool``
        :returns: A list of ``(classification, entry)`` pairs sorted by
                  absolute path.
        :rtype: ``List[Tuple[ChangeClassification, PathEntry]]``
        """
        groups = [
            (ChangeClassification.ADDED, self.added),
            (ChangeClassification.UPDATED, self.updated),
            (ChangeClassification.DELETED, self.deleted),
        ]
        if not changed_only:
            groups.append((ChangeClassification.UNCHANGED, self.unchanged))
        pairs = [(cls, entry) for cls, entries in groups for entry in entries]
        return sorted(pairs, key=lambda pair: pair[1].absolute_path)

    def relative_paths(
        self, classification: Optional[ChangeClassification] = None
    ) -> List[str]:
        """
        Return a flattened view of this result as relative path strings.

        :param classification: Restrict the view to one classification.
        :type classification: ``Optional[ChangeClassification]``
        :returns: A sorted list of relative paths.
        :rtype: ``List[str]``
        """
        if classification == ChangeClassification.UNREADABLE:
            entries = self.unreadable_paths
        else:
            entries = [
                entry
                for cls, entry in self.status()
                if classification is None or cls == classification
            ]
        return sorted({entry.relative_path for entry in entries})

    def summary(self, include_unchanged: bool = False) -> str:
        """
        Render a summary of the top-level changes in this result.

        Each line shows a status symbol, ``d`` or ``f`` for directories or
        files, the relative path, and a count of compared paths below each
        directory. The report ends with total counts.

        :param include_unchanged: Include unchanged paths in the listing.
        :type include_unchanged: ``bool``
        :returns: The rendered summary.
        :rtype: ``str``
        """
        listed = (
            [(ChangeClassification.ADDED, entry) for entry in self.added_top_level]
            + [(ChangeClassification.DELETED, entry) for entry in self.deleted_top_level]
            + [(ChangeClassification.UPDATED, entry) for entry in self.updated]
        )
        if include_unchanged:
            listed += [(ChangeClassification.UNCHANGED, entry) for entry in self.unchanged]
        listed.sort(key=lambda pair: pair[1].relative_path)

        status = self.status()
        lines = []
        for cls, entry in listed:
            dir_counts = ""
            if entry.is_dir:
                children = sum(1 for _, other in status if other.is_below(entry))
                dir_counts = f" ({children} children)"
            lines.append(
                f"{cls.symbol}{'d' if entry.is_dir else 'f'} "
                f"{entry.relative_path}{dir_counts}"
            )

        lines.append(
            f"# Total changed={self.change_count} unchanged={len(self.unchanged)}"
        )
        lines.append(
            f"# Changes: added={len(self.added)} updated={len(self.updated)} "
            f"deleted={len(self.deleted)}"
        )
        if self.unreadable_paths:
            lines.append(
                f"# Warning: could not read {len(self.unreadable_paths)} paths"
            )
        if self.unreadable_dirs:
            lines.append(
                f"# Warning: could not list {len(self.unreadable_dirs)} directories"
            )
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.summary()

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert this ``DiffResult`` object into a dictionary representation
        suitable for encoding as JSON.

        :returns: A dictionary mapping this instance's keys to values.
        :rtype: ``Dict[str, Any]``
        """

        def _entries(entries: Tuple[PathEntry, ...]) -> List[Dict[str, Any]]:
            return [entry.to_dict() for entry in entries]

        return {
            "reference_root": self.reference_root,
            "target_root": self.target_root,
            "change_count": self.change_count,
            "added": _entries(self.added),
            "updated": _entries(self.updated),
            "deleted": _entries(self.deleted),
            "unchanged": _entries(self.unchanged),
            "added_top_level": _entries(self.added_top_level),
            "deleted_top_level": _entries(self.deleted_top_level),
            "unreadable_paths": _entries(self.unreadable_paths),
            "unreadable_dirs": list(self.unreadable_dirs),
        }

    def json(self, pretty: bool = False) -> str:
        """
        Return a string representation of this ``DiffResult`` in JSON
        notation.

        :param pretty: Indent JSON to be human readable.
        :type pretty: ``bool``
        :returns: A JSON representation of this instance.
        :rtype: ``str``
        """
        return json.dumps(self.to_dict(), indent=4 if pretty else None)


class DiffEngine:
    """
    Core class for classifying the paths of two walked trees.
    """

    # pylint: disable=too-many-locals,too-many-branches
    def compute_diff(
        self,
        reference: WalkResult,
        target: WalkResult,
        options: Optional[DiffOptions] = None,
        fingerprinter: Optional[Fingerprinter] = None,
    ) -> DiffResult:
        """
        Compare two walked trees and classify every relative path.

        :param reference: The walk of the authoritative tree.
        :type reference: ``WalkResult``
        :param target: The walk of the tree to be brought into line.
        :type target: ``WalkResult``
        :param options: Options to apply to the diff generation.
        :type options: ``DiffOptions``
        :param fingerprinter: The ``Fingerprinter`` used for content
                              comparisons.
        :type fingerprinter: ``Optional[Fingerprinter]``
        :returns: The classified change set.
        :rtype: ``DiffResult``
        """
        options = options or DiffOptions()
        fingerprinter = fingerprinter or Fingerprinter(
            options.hash_algorithm, use_magic=options.use_magic_file_type
        )

        reference_map = reference.by_relative_path()
        target_map = target.by_relative_path()
        # Paths below a directory that could not be listed on the other side
        # are neither added nor deleted.
        reference_unlisted = _unlisted_prefixes(reference)
        target_unlisted = _unlisted_prefixes(target)

        added, updated, deleted, unchanged = [], [], [], []
        unreadable = []

        start_time = datetime.now()
        _log_info(
            "Comparing %d reference paths to %d target paths",
            len(reference_map),
            len(target_map),
        )

        for rel_path, ref_entry in reference_map.items():
            tgt_entry = target_map.get(rel_path)
            if tgt_entry is None:
                if rel_path.startswith(target_unlisted):
                    _log_debug_diff(
                        "Skipping %s below unlisted target directory", rel_path
                    )
                    continue
                _log_debug_diff("Added: %s", rel_path)
                added.append(ref_entry)
                continue

            if ref_entry.is_dir != tgt_entry.is_dir:
                _log_debug_diff(
                    "Updated (type changed %s -> %s): %s",
                    tgt_entry.type_desc,
                    ref_entry.type_desc,
                    rel_path,
                )
                updated.append(ref_entry)
                continue

            if ref_entry.is_dir:
                unchanged.append(ref_entry)
                continue

            if not (
                is_readable(ref_entry.absolute_path)
                and is_readable(tgt_entry.absolute_path)
            ):
                _log_warn("Could not read %s for comparison", rel_path)
                unreadable.extend((ref_entry, tgt_entry))
                continue

            try:
                ref_hash = fingerprinter.fingerprint(ref_entry.absolute_path)
                tgt_hash = fingerprinter.fingerprint(tgt_entry.absolute_path)
            except OSError as err:
                _log_warn("Could not read %s for comparison: %s", rel_path, err)
                unreadable.extend((ref_entry, tgt_entry))
                continue

            if ref_hash != tgt_hash:
                _log_debug_diff(
                    "Updated (%s != %s): %s", ref_hash[0:16], tgt_hash[0:16], rel_path
                )
                updated.append(ref_entry)
            else:
                unchanged.append(ref_entry)

        for rel_path, tgt_entry in target_map.items():
            if rel_path in reference_map:
                continue
            if rel_path.startswith(reference_unlisted):
                _log_debug_diff(
                    "Skipping %s below unlisted reference directory", rel_path
                )
                continue
            _log_debug_diff("Deleted: %s", rel_path)
            deleted.append(tgt_entry)

        added = _sort_entries(added)
        deleted = _sort_entries(deleted)

        result = DiffResult(
            reference_root=reference.root,
            target_root=target.root,
            added=added,
            updated=_sort_entries(updated),
            deleted=deleted,
            unchanged=_sort_entries(unchanged),
            added_top_level=collapse_top_level(added),
            deleted_top_level=collapse_top_level(deleted),
            unreadable_paths=_sort_entries(unreadable),
            unreadable_dirs=tuple(
                sorted(reference.unreadable_dirs + target.unreadable_dirs)
            ),
        )

        end_time = datetime.now()
        _log_info(
            "Found %d differences in %s", result.change_count, end_time - start_time
        )
        if result.unreadable_paths:
            _log_warn("Could not read %d paths", len(result.unreadable_paths))
        return result
