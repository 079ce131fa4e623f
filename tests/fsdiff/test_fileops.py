# Copyright Red Hat
#
# tests/fsdiff/test_fileops.py - Path primitive tests.
#
# This file is part of the treesync project.
#
# SPDX-License-Identifier: Apache-2.0
import unittest
import tempfile
import os

from treesync import TreesyncNotFoundError, TreesyncPathError
from treesync.fsdiff.fileops import (
    copy_file,
    copy_tree,
    create_directory_chain,
    delete_tree,
    is_directory,
    is_readable,
    path_exists,
)

from ._util import make_tree, read_tree


class TestFileOps(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmpdir = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()

    def _path(self, *parts):
        return os.path.join(self.tmpdir, *parts)

    def test_predicates(self):
        make_tree(self.tmpdir, {"f": "x", "d": {}})
        self.assertTrue(path_exists(self._path("f")))
        self.assertFalse(path_exists(self._path("nope")))
        self.assertTrue(is_directory(self._path("d")))
        self.assertFalse(is_directory(self._path("f")))
        self.assertTrue(is_readable(self._path("f")))
        self.assertFalse(is_readable(self._path("nope")))

    def test_copy_file_overwrites(self):
        make_tree(self.tmpdir, {"src": b"new\r\n", "dst": b"old content"})
        copy_file(self._path("src"), self._path("dst"))
        with open(self._path("dst"), "rb") as f:
            self.assertEqual(f.read(), b"new\r\n")

    def test_delete_tree_directory(self):
        make_tree(self.tmpdir, {"d": {"e": {"f": "x"}, "g": "y"}})
        delete_tree(self._path("d"))
        self.assertFalse(os.path.lexists(self._path("d")))

    def test_delete_tree_file(self):
        make_tree(self.tmpdir, {"f": "x"})
        delete_tree(self._path("f"))
        self.assertFalse(os.path.lexists(self._path("f")))

    def test_delete_tree_symlink_to_dir(self):
        make_tree(self.tmpdir, {"d": {"f": "x"}})
        os.symlink(self._path("d"), self._path("link"))
        delete_tree(self._path("link"))
        self.assertFalse(os.path.lexists(self._path("link")))
        self.assertTrue(os.path.exists(self._path("d", "f")))

    def test_delete_tree_missing(self):
        with self.assertRaises(TreesyncNotFoundError):
            delete_tree(self._path("missing"))

    def test_create_directory_chain(self):
        created = create_directory_chain(self._path("a", "b", "c"))
        self.assertEqual(created, 3)
        self.assertTrue(os.path.isdir(self._path("a", "b", "c")))

    def test_create_directory_chain_exists(self):
        make_tree(self.tmpdir, {"a": {}})
        self.assertEqual(create_directory_chain(self._path("a")), 0)
        self.assertEqual(create_directory_chain(self._path("a", "b")), 1)

    def test_create_directory_chain_file_in_the_way(self):
        make_tree(self.tmpdir, {"a": "file"})
        with self.assertRaises(TreesyncPathError):
            create_directory_chain(self._path("a"))
        with self.assertRaises(TreesyncPathError):
            create_directory_chain(self._path("a", "b", "c"))
        self.assertFalse(os.path.isdir(self._path("a")))

    def test_copy_tree_new_target(self):
        src = make_tree(
            self._path("src"), {"file1.txt": "file1", "nested": {"file2.txt": "file2"}}
        )
        done = copy_tree(src, self._path("copy"))
        # Three entries plus the created target directory.
        self.assertEqual(done, 4)
        self.assertEqual(read_tree(self._path("copy")), read_tree(src))

    def test_copy_tree_onto_existing(self):
        src = make_tree(self._path("src"), {"a": "new", "d": {"b": "b"}})
        make_tree(self._path("dst"), {"a": "old", "extra": "keep"})
        done = copy_tree(src, self._path("dst"))
        self.assertEqual(done, 3)
        self.assertEqual(
            read_tree(self._path("dst")),
            {"a": b"new", "d": {"b": b"b"}, "extra": b"keep"},
        )

    def test_copy_tree_file_replaces_directory(self):
        src = make_tree(self._path("src"), {"t": "file"})
        make_tree(self._path("dst"), {"t": {"inner": "x"}})
        copy_tree(src, self._path("dst"))
        self.assertEqual(read_tree(self._path("dst")), {"t": b"file"})

    def test_copy_tree_directory_replaces_file(self):
        src = make_tree(self._path("src"), {"t": {"inner": "x"}})
        make_tree(self._path("dst"), {"t": "file"})
        copy_tree(src, self._path("dst"))
        self.assertEqual(read_tree(self._path("dst")), {"t": {"inner": b"x"}})

    def test_copy_tree_single_file(self):
        make_tree(self.tmpdir, {"f": "content", "d": {"g": "x"}})
        self.assertEqual(copy_tree(self._path("f"), self._path("new")), 1)
        self.assertEqual(copy_tree(self._path("f"), self._path("d")), 1)
        with open(self._path("d"), "rb") as f:
            self.assertEqual(f.read(), b"content")

    def test_copy_tree_root_file_replaced(self):
        src = make_tree(self._path("src"), {"a": "a"})
        make_tree(self.tmpdir, {"dst": "file"})
        copy_tree(src, self._path("dst"))
        self.assertEqual(read_tree(self._path("dst")), {"a": b"a"})

    def test_copy_tree_missing_source(self):
        with self.assertRaises(TreesyncNotFoundError):
            copy_tree(self._path("missing"), self._path("dst"))
