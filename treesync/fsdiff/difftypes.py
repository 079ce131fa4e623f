# Copyright Red Hat
#
# treesync/fsdiff/difftypes.py - Tree synchronisation diff types
#
# This file is part of the treesync project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Tree diff types
"""
from enum import Enum


class ChangeClassification(Enum):
    """
    Enum for the classification of a path in a tree comparison.
    """

    ADDED = "added"
    UPDATED = "updated"
    DELETED = "deleted"
    UNCHANGED = "unchanged"
    UNREADABLE = "unreadable"

    @property
    def symbol(self) -> str:
        """
        The single character status symbol used in change summaries.
        """
        return _SYMBOLS[self]


_SYMBOLS = {
    ChangeClassification.ADDED: "+",
    ChangeClassification.UPDATED: "~",
    ChangeClassification.DELETED: "-",
    ChangeClassification.UNCHANGED: "=",
    ChangeClassification.UNREADABLE: "?",
}
