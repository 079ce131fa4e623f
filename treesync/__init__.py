# Copyright Red Hat
#
# treesync/__init__.py - Tree synchronisation package initialisation
#
# This file is part of the treesync project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Treesync top-level package.
"""
from ._treesync import *  # noqa: F401, F403
from ._treesync import __all__  # noqa: F401

__version__ = "0.1.0"
