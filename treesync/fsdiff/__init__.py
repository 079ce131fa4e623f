# Copyright Red Hat
#
# treesync/fsdiff/__init__.py - Tree synchronisation fs differ package
#
# This file is part of the treesync project.
#
# SPDX-License-Identifier: Apache-2.0
"""
File system diff package.

Provides directory tree comparison facilities including tree walking,
content fingerprinting, change classification and change application. The
main entry points are ``FsDiffer`` and ``DiffOptions``, and the ``diff()``,
``apply()``, ``content_equals()``, ``copy_tree()`` and ``list_tree()``
convenience functions.
"""
from .applier import ApplyResult, ChangeApplier
from .difftypes import ChangeClassification
from .engine import DiffEngine, DiffResult, collapse_top_level
from .fileops import copy_tree
from .fsdiffer import FsDiffer, apply, content_equals, diff, list_tree
from .options import DiffOptions
from .treewalk import PathEntry, TreeWalker

__all__ = [
    "ApplyResult",
    "ChangeApplier",
    "ChangeClassification",
    "DiffEngine",
    "DiffOptions",
    "DiffResult",
    "FsDiffer",
    "PathEntry",
    "TreeWalker",
    "apply",
    "collapse_top_level",
    "content_equals",
    "copy_tree",
    "diff",
    "list_tree",
]
