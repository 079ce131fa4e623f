# Copyright Red Hat
#
# tests/fsdiff/test_applier.py - Change applier tests.
#
# This file is part of the treesync project.
#
# SPDX-License-Identifier: Apache-2.0
import unittest
from unittest.mock import patch
import tempfile
import json
import os

from treesync import TreesyncPathError
from treesync.fsdiff.applier import ApplyResult, ChangeApplier
from treesync.fsdiff.fsdiffer import FsDiffer

from ._util import make_entry, make_tree, read_tree

_APPLY_LOG = "treesync.fsdiff.applier"


def _rel(entries):
    return [entry.relative_path for entry in entries]


class TestApplyResult(unittest.TestCase):
    def setUp(self):
        self.result = ApplyResult(
            reference_root="/ref",
            target_root="/tgt",
            created=(make_entry("d", is_dir=True), make_entry("d/f")),
            deleted=(make_entry("old", root="/tgt"),),
            updated=(make_entry("changed"),),
        )

    def test_change_count(self):
        self.assertEqual(self.result.change_count, 4)
        self.assertEqual(ApplyResult("/ref", "/tgt").change_count, 0)

    def test_summary(self):
        self.assertEqual(
            self.result.summary().splitlines(),
            [
                "~f changed",
                "+d d",
                "+f d/f",
                "-f old",
                "# Applied: created=2 updated=1 deleted=1",
            ],
        )
        self.assertEqual(str(self.result), self.result.summary())

    def test_to_dict_and_json(self):
        d = self.result.to_dict()
        self.assertEqual(d["change_count"], 4)
        self.assertEqual([e["relative_path"] for e in d["created"]], ["d", "d/f"])
        self.assertEqual(json.loads(self.result.json(pretty=True)), d)


class TestChangeApplier(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.ref = os.path.join(self._tmp.name, "ref")
        self.tgt = os.path.join(self._tmp.name, "tgt")
        os.mkdir(self.ref)
        os.mkdir(self.tgt)
        self.differ = FsDiffer()

    def tearDown(self):
        self._tmp.cleanup()

    def _apply(self):
        return ChangeApplier().apply_diff(self.differ.diff(self.ref, self.tgt))

    def test_apply_to_empty_target(self):
        make_tree(self.ref, {"file1.txt": "x", "nested": {"file2.txt": "y"}})
        with self.assertLogs(_APPLY_LOG, level="INFO") as cm:
            result = self._apply()
        self.assertEqual(_rel(result.created), ["file1.txt", "nested", "nested/file2.txt"])
        self.assertEqual(read_tree(self.tgt), read_tree(self.ref))
        self.assertTrue(any("ADDED: copying" in msg for msg in cm.output))
        self.assertTrue(any("ADDED: creating directory" in msg for msg in cm.output))

    def test_apply_unlisted_reference_root_keeps_target(self):
        make_tree(self.ref, {"a.txt": "a", "d": {"b": "b"}})
        make_tree(self.tgt, {"a.txt": "a", "d": {"b": "b"}})
        real_listdir = os.listdir

        def _listdir(path):
            if path == self.ref:
                raise PermissionError(13, "Permission denied", path)
            return real_listdir(path)

        with patch("treesync.fsdiff.treewalk.os.listdir", side_effect=_listdir):
            result = self._apply()

        self.assertEqual(result.change_count, 0)
        self.assertEqual(read_tree(self.tgt), {"a.txt": b"a", "d": {"b": b"b"}})

    def test_apply_creates_in_target_not_reference(self):
        make_tree(self.ref, {"nested": {"deeper": {}}})
        self._apply()
        self.assertTrue(os.path.isdir(os.path.join(self.tgt, "nested", "deeper")))
        self.assertEqual(os.listdir(self.ref), ["nested"])

    def test_apply_deletes_extra(self):
        make_tree(self.ref, {"a.txt": "a"})
        make_tree(self.tgt, {"a.txt": "a", "file3.txt": "z"})
        result = self._apply()
        self.assertEqual(_rel(result.deleted), ["file3.txt"])
        self.assertFalse(os.path.exists(os.path.join(self.tgt, "file3.txt")))
        self.assertTrue(os.path.exists(os.path.join(self.tgt, "a.txt")))

    def test_apply_deletes_nested_once(self):
        make_tree(self.ref, {})
        make_tree(self.tgt, {"gone": {"sub": {"g": "g"}, "h": "h"}})
        result = self._apply()
        # Descendants are removed with their parent and still recorded.
        self.assertEqual(_rel(result.deleted), ["gone", "gone/h", "gone/sub", "gone/sub/g"])
        self.assertEqual(os.listdir(self.tgt), [])

    def test_apply_updates_content(self):
        make_tree(self.ref, {"b.txt": "new content"})
        make_tree(self.tgt, {"b.txt": "old"})
        result = self._apply()
        self.assertEqual(_rel(result.updated), ["b.txt"])
        self.assertEqual(read_tree(self.tgt), {"b.txt": b"new content"})

    def test_apply_file_replaces_directory(self):
        make_tree(self.ref, {"u": "file"})
        make_tree(self.tgt, {"u": {"g": "y", "h": {"i": "z"}}})
        result = self._apply()
        self.assertEqual(_rel(result.updated), ["u"])
        self.assertEqual(read_tree(self.tgt), {"u": b"file"})

    def test_apply_directory_replaces_file(self):
        make_tree(self.ref, {"t": {"f": "x", "sub": {"g": "y"}}})
        make_tree(self.tgt, {"t": "file"})
        result = self._apply()
        self.assertEqual(_rel(result.updated), ["t"])
        self.assertEqual(_rel(result.created), ["t/f", "t/sub", "t/sub/g"])
        self.assertEqual(read_tree(self.tgt), read_tree(self.ref))

    def test_apply_preserves_line_endings_of_unchanged(self):
        make_tree(self.ref, {"a.txt": b"a\r\nb"})
        make_tree(self.tgt, {"a.txt": b"a\nb"})
        result = self._apply()
        self.assertEqual(result.change_count, 0)
        self.assertEqual(read_tree(self.tgt), {"a.txt": b"a\nb"})

    def test_apply_nothing(self):
        make_tree(self.ref, {"a": "1"})
        make_tree(self.tgt, {"a": "1"})
        self.assertEqual(self._apply().change_count, 0)

    def test_apply_blocked_directory_raises(self):
        make_tree(self.ref, {"d": {"f": "x"}})
        diff_result = self.differ.diff(self.ref, self.tgt)
        # The target changes after the comparison.
        make_tree(self.tgt, {"d": "in the way"})
        with self.assertRaises(TreesyncPathError):
            ChangeApplier().apply_diff(diff_result)

    def test_apply_order(self):
        make_tree(self.ref, {"new": "n", "upd": "2"})
        make_tree(self.tgt, {"old": "o", "upd": "1"})
        calls = []
        with patch(
            "treesync.fsdiff.applier.copy_file",
            side_effect=lambda src, dst: calls.append(("copy", os.path.basename(dst))),
        ), patch(
            "treesync.fsdiff.applier.delete_tree",
            side_effect=lambda path: calls.append(("delete", os.path.basename(path))),
        ):
            self._apply()
        self.assertEqual(calls, [("copy", "new"), ("delete", "old"), ("copy", "upd")])
