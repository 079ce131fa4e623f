# Copyright Red Hat
#
# treesync/_treesync.py - Tree synchronisation global definitions
#
# This file is part of the treesync project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Global definitions for the top-level treesync package.
"""
import logging

_log = logging.getLogger("treesync")

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error

# Treesync debugging subsystem mask
TREESYNC_DEBUG_COMMAND = 1
TREESYNC_DEBUG_WALK = 2
TREESYNC_DEBUG_DIFF = 4
TREESYNC_DEBUG_APPLY = 8
TREESYNC_DEBUG_ALL = (
    TREESYNC_DEBUG_COMMAND
    | TREESYNC_DEBUG_WALK
    | TREESYNC_DEBUG_DIFF
    | TREESYNC_DEBUG_APPLY
)

# Treesync debugging subsystem names
TREESYNC_SUBSYSTEM_COMMAND = "treesync.command"
TREESYNC_SUBSYSTEM_WALK = "treesync.walk"
TREESYNC_SUBSYSTEM_DIFF = "treesync.diff"
TREESYNC_SUBSYSTEM_APPLY = "treesync.apply"

_DEBUG_MASK_TO_SUBSYSTEM = {
    TREESYNC_DEBUG_COMMAND: TREESYNC_SUBSYSTEM_COMMAND,
    TREESYNC_DEBUG_WALK: TREESYNC_SUBSYSTEM_WALK,
    TREESYNC_DEBUG_DIFF: TREESYNC_SUBSYSTEM_DIFF,
    TREESYNC_DEBUG_APPLY: TREESYNC_SUBSYSTEM_APPLY,
}

_debug_subsystems = set()


class SubsystemFilter(logging.Filter):
    """
    Filters DEBUG records based on a set of enabled subsystem names.
    Non-DEBUG records or DEBUG records without a 'subsystem' attribute
    are always passed through.
    """

    def __init__(self, name=""):
        super().__init__(name)
        self.enabled_subsystems = set(_debug_subsystems)

    def filter(self, record):
        # Always pass non-DEBUG messages.
        if record.levelno != logging.DEBUG:
            return True

        # Always pass DEBUG messages that aren't for a specific subsystem.
        if not hasattr(record, "subsystem"):
            return True

        # For subsystem-specific DEBUG messages, check if the subsystem is enabled.
        return record.subsystem in self.enabled_subsystems

    def set_debug_subsystems(self, subsystems):
        """Sets the collection of subsystems to allow."""
        self.enabled_subsystems = set(subsystems)


def get_debug_mask():
    """
    Return the current debug mask for the ``treesync`` package.

    :returns: The current debug mask value
    :rtype: int
    """
    enabled_subsystems = set(_debug_subsystems)
    treesync_log = logging.getLogger("treesync")

    for handler in treesync_log.handlers:
        for f in handler.filters:
            if isinstance(f, SubsystemFilter):
                enabled_subsystems.update(f.enabled_subsystems)

    mask_map = {v: k for k, v in _DEBUG_MASK_TO_SUBSYSTEM.items()}
    mask = 0
    for subsystem_name in enabled_subsystems:
        mask |= mask_map.get(subsystem_name, 0)
    return mask


def set_debug_mask(mask):
    """
    Set the debug mask for the ``treesync`` package.

    :param mask: the logical OR of the ``TREESYNC_DEBUG_*``
                 values to log.
    :rtype: None
    """
    # pylint: disable=global-statement
    global _debug_subsystems

    if mask < 0 or mask > TREESYNC_DEBUG_ALL:
        raise ValueError(f"Invalid treesync debug mask: {mask}")

    enabled_subsystems = []
    for flag, subsystem_name in _DEBUG_MASK_TO_SUBSYSTEM.items():
        if mask & flag:
            enabled_subsystems.append(subsystem_name)

    treesync_log = logging.getLogger("treesync")
    for handler in treesync_log.handlers:
        for f in handler.filters:
            if isinstance(f, SubsystemFilter):
                f.set_debug_subsystems(enabled_subsystems)

    _debug_subsystems = set(enabled_subsystems)


#
# Treesync exception types
#


class TreesyncError(Exception):
    """
    Base class for tree synchronisation errors.
    """


class TreesyncNotFoundError(TreesyncError):
    """
    A path required by the operation does not exist: for e.g. one of the
    roots of a comparison.
    """


class TreesyncPathError(TreesyncError):
    """
    A path exists but has the wrong type for the requested operation, for
    example a comparison root that is not a directory, or a regular file
    occupying a location where a directory must be created.
    """


class TreesyncArgumentError(TreesyncError):
    """
    An invalid argument was passed to a treesync API call.
    """


__all__ = [
    "TREESYNC_DEBUG_COMMAND",
    "TREESYNC_DEBUG_WALK",
    "TREESYNC_DEBUG_DIFF",
    "TREESYNC_DEBUG_APPLY",
    "TREESYNC_DEBUG_ALL",
    "TREESYNC_SUBSYSTEM_COMMAND",
    "TREESYNC_SUBSYSTEM_WALK",
    "TREESYNC_SUBSYSTEM_DIFF",
    "TREESYNC_SUBSYSTEM_APPLY",
    "SubsystemFilter",
    "get_debug_mask",
    "set_debug_mask",
    "TreesyncError",
    "TreesyncNotFoundError",
    "TreesyncPathError",
    "TreesyncArgumentError",
]
