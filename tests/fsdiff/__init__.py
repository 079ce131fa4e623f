# Copyright Red Hat
#
# tests/fsdiff/__init__.py - Tree synchronisation fsdiff test package
#
# This file is part of the treesync project.
#
# SPDX-License-Identifier: Apache-2.0
