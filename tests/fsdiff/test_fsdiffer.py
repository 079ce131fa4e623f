# Copyright Red Hat
#
# tests/fsdiff/test_fsdiffer.py - Top-level differ tests.
#
# This file is part of the treesync project.
#
# SPDX-License-Identifier: Apache-2.0
import unittest
import tempfile
import os

from treesync import TreesyncNotFoundError, TreesyncPathError
from treesync.fsdiff import (
    DiffOptions,
    FsDiffer,
    apply,
    content_equals,
    diff,
    list_tree,
)

from ._util import make_tree, read_tree

_REFERENCE = {
    "file1.txt": "x",
    "nested": {"file2.txt": "y", "deep": {"file3.bin": b"\x00\x01\x02"}},
    "debug.log": "log",
    "crlf.txt": b"one\r\ntwo\r\n",
}

_TARGET = {
    "file1.txt": "changed",
    "file3.txt": "extra",
    "nested": "not a directory",
    "crlf.txt": b"one\ntwo\n",
    "old": {"stale": {"x": "1"}},
    "trace.log": "other log",
}


class TestFsDiffer(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.ref = make_tree(os.path.join(self._tmp.name, "ref"), _REFERENCE)
        self.tgt = make_tree(os.path.join(self._tmp.name, "tgt"), _TARGET)

    def tearDown(self):
        self._tmp.cleanup()

    def test_FsDiffer(self):
        differ = FsDiffer()
        self.assertEqual(differ.options, DiffOptions())
        self.assertEqual(differ.fingerprinter.hash_algorithm, "sha256")

    def test_diff(self):
        result = diff(self.ref, self.tgt)
        self.assertEqual(
            result.relative_paths(), sorted(result.relative_paths())
        )
        self.assertIn("file3.txt", [e.relative_path for e in result.deleted])
        self.assertIn("file1.txt", [e.relative_path for e in result.updated])
        self.assertIn("nested", [e.relative_path for e in result.updated])
        self.assertIn("crlf.txt", [e.relative_path for e in result.unchanged])
        self.assertEqual(
            [e.relative_path for e in result.deleted_top_level],
            ["file3.txt", "old", "trace.log"],
        )

    def test_diff_ignore(self):
        result = diff(self.ref, self.tgt, ignore="*.log")
        self.assertNotIn("debug.log", result.relative_paths())
        self.assertNotIn("trace.log", result.relative_paths())

    def test_diff_ignore_overrides_options(self):
        options = DiffOptions(ignore=["file1.txt"])
        self.assertNotIn("file1.txt", diff(self.ref, self.tgt, options=options).relative_paths())
        self.assertIn(
            "file1.txt", diff(self.ref, self.tgt, ignore="*.log", options=options).relative_paths()
        )

    def test_diff_missing_root(self):
        with self.assertRaises(TreesyncNotFoundError):
            diff(self.ref, os.path.join(self._tmp.name, "missing"))
        with self.assertRaises(TreesyncNotFoundError):
            diff(os.path.join(self._tmp.name, "missing"), self.tgt)

    def test_diff_file_root(self):
        with self.assertRaises(TreesyncPathError):
            diff(os.path.join(self.ref, "file1.txt"), self.tgt)

    def test_apply_idempotent(self):
        result = apply(self.ref, self.tgt)
        self.assertGreater(result.change_count, 0)
        self.assertEqual(diff(self.ref, self.tgt).change_count, 0)
        self.assertTrue(content_equals(self.ref, self.tgt))
        self.assertEqual(apply(self.ref, self.tgt).change_count, 0)

    def test_apply_ignore_leaves_ignored(self):
        apply(self.ref, self.tgt, ignore="*.log")
        target = read_tree(self.tgt)
        self.assertIn("trace.log", target)
        self.assertNotIn("debug.log", target)
        # Unchanged files keep their own line endings.
        self.assertEqual(target["crlf.txt"], b"one\ntwo\n")
        self.assertEqual(target["nested"]["deep"]["file3.bin"], b"\x00\x01\x02")

    def test_apply_result_matches_diff(self):
        before = diff(self.ref, self.tgt)
        result = apply(self.ref, self.tgt)
        for applied, expected in (
            (result.created, before.added),
            (result.deleted, before.deleted),
            (result.updated, before.updated),
        ):
            self.assertEqual(
                [e.relative_path for e in applied], [e.relative_path for e in expected]
            )

    def test_content_equals_dirs(self):
        self.assertFalse(content_equals(self.ref, self.tgt))
        self.assertFalse(content_equals(self.tgt, self.ref))
        self.assertTrue(content_equals(self.ref, self.ref))

    def test_content_equals_matches_change_count(self):
        same = make_tree(os.path.join(self._tmp.name, "same"), _REFERENCE)
        self.assertEqual(
            content_equals(self.ref, same), diff(self.ref, same).change_count == 0
        )
        self.assertTrue(content_equals(same, self.ref))

    def test_content_equals_files(self):
        self.assertTrue(
            content_equals(
                os.path.join(self.ref, "crlf.txt"), os.path.join(self.tgt, "crlf.txt")
            )
        )
        self.assertFalse(
            content_equals(
                os.path.join(self.ref, "file1.txt"), os.path.join(self.tgt, "file1.txt")
            )
        )

    def test_content_equals_file_and_dir(self):
        self.assertFalse(
            content_equals(os.path.join(self.ref, "nested"), os.path.join(self.tgt, "nested"))
        )

    def test_content_equals_missing(self):
        with self.assertRaises(TreesyncNotFoundError):
            content_equals(self.ref, os.path.join(self._tmp.name, "missing"))

    def test_content_equals_special_file(self):
        fifo = os.path.join(self._tmp.name, "fifo")
        os.mkfifo(fifo)
        with self.assertRaises(TreesyncPathError):
            content_equals(fifo, self.ref)

    def test_content_equals_ignore(self):
        os.remove(os.path.join(self.tgt, "trace.log"))
        apply(self.ref, self.tgt, ignore="*.log")
        self.assertFalse(content_equals(self.ref, self.tgt))
        self.assertTrue(content_equals(self.ref, self.tgt, ignore="*.log"))

    def test_list_tree(self):
        paths = list_tree(self.ref)
        self.assertEqual(paths, sorted(paths))
        self.assertIn(os.path.join(self.ref, "nested", "deep", "file3.bin"), paths)
        self.assertEqual(len(paths), 7)

    def test_list_tree_ignore(self):
        paths = list_tree(self.ref, ignore=["*.log", "nested/deep"])
        self.assertNotIn(os.path.join(self.ref, "debug.log"), paths)
        self.assertNotIn(os.path.join(self.ref, "nested", "deep"), paths)
        self.assertEqual(len(paths), 4)

    def test_list_tree_follow_symlinks(self):
        os.symlink("nested", os.path.join(self.ref, "link"))
        self.assertIn(os.path.join(self.ref, "link", "file2.txt"), list_tree(self.ref))
        paths = list_tree(self.ref, follow_symlinks=False)
        self.assertNotIn(os.path.join(self.ref, "link"), paths)
        paths = list_tree(self.ref, options=DiffOptions(follow_symlinks=False))
        self.assertNotIn(os.path.join(self.ref, "link"), paths)
