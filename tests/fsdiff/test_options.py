# Copyright Red Hat
#
# tests/fsdiff/test_options.py - DiffOptions tests.
#
# This file is part of the treesync project.
#
# SPDX-License-Identifier: Apache-2.0
import unittest
from argparse import Namespace

from treesync.fsdiff.fingerprint import Fingerprinter
from treesync.fsdiff.options import (
    HASH_ALGORITHMS,
    HASH_TYPES,
    DiffOptions,
    normalize_ignore,
)


class TestDiffOptions(unittest.TestCase):
    def test_DiffOptions_defaults(self):
        opts = DiffOptions()
        self.assertEqual(opts.ignore, ())
        self.assertTrue(opts.follow_symlinks)
        self.assertEqual(opts.hash_algorithm, "sha256")
        self.assertFalse(opts.use_magic_file_type)
        self.assertFalse(opts.quiet)

    def test_DiffOptions__str__(self):
        opts = DiffOptions(ignore=["*.log", "build"], follow_symlinks=False)
        s = str(opts)
        self.assertIn("ignore=*.log build", s)
        self.assertIn("follow_symlinks=False", s)
        self.assertIn("hash_algorithm=sha256", s)

    def test_DiffOptions_ignore_string(self):
        opts = DiffOptions(ignore="*.log")
        self.assertEqual(opts.ignore, ("*.log",))

    def test_DiffOptions_ignore_list_hashable(self):
        opts = DiffOptions(ignore=["a", "b"])
        self.assertEqual(opts.ignore, ("a", "b"))
        self.assertEqual(hash(opts), hash(DiffOptions(ignore=("a", "b"))))

    def test_DiffOptions_bad_hash(self):
        with self.assertRaises(ValueError):
            DiffOptions(hash_algorithm="crc32")

    def test_DiffOptions_hash_algorithms(self):
        self.assertEqual(HASH_ALGORITHMS, tuple(HASH_TYPES))
        for algorithm in HASH_ALGORITHMS:
            opts = DiffOptions(hash_algorithm=algorithm)
            fingerprinter = Fingerprinter(opts.hash_algorithm)
            self.assertIs(fingerprinter.hasher, HASH_TYPES[algorithm])

    def test_with_ignore(self):
        opts = DiffOptions(ignore="a", quiet=True)
        self.assertIs(opts.with_ignore(None), opts)
        new_opts = opts.with_ignore(["b", "c"])
        self.assertEqual(new_opts.ignore, ("b", "c"))
        self.assertTrue(new_opts.quiet)
        self.assertEqual(opts.ignore, ("a",))

    def test_normalize_ignore(self):
        self.assertEqual(normalize_ignore(None), ())
        self.assertEqual(normalize_ignore(""), ())
        self.assertEqual(normalize_ignore("x"), ("x",))
        self.assertEqual(normalize_ignore(["x", "", "y"]), ("x", "y"))

    def test_from_cmd_args(self):
        """Test initialization from argparse Namespace."""
        args = Namespace(
            ignore=["*.log,build", " dist "],
            follow_symlinks=False,
            hash_algorithm="md5",
            unknown_arg="ignored",
        )
        opts = DiffOptions.from_cmd_args(args)

        self.assertEqual(opts.ignore, ("*.log", "build", "dist"))
        self.assertFalse(opts.follow_symlinks)
        self.assertEqual(opts.hash_algorithm, "md5")
        # Should use defaults for missing args
        self.assertFalse(opts.use_magic_file_type)
        self.assertFalse(opts.quiet)

    def test_from_cmd_args_no_ignore(self):
        args = Namespace(ignore=None, hash_algorithm=None)
        opts = DiffOptions.from_cmd_args(args)
        self.assertEqual(opts.ignore, ())
        self.assertEqual(opts.hash_algorithm, "sha256")
