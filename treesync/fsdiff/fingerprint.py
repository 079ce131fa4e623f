# Copyright Red Hat
#
# treesync/fsdiff/fingerprint.py - Tree synchronisation content fingerprints
#
# This file is part of the treesync project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Content fingerprints for regular files.

Two files have equal content if and only if their fingerprints match.
Text files are hashed with every line terminator normalised to a single
line feed so that files differing only in line ending convention compare
equal.
"""
from typing import Iterator, Optional, Union
from pathlib import Path
import logging

from treesync import TREESYNC_SUBSYSTEM_DIFF

from .filetypes import FileTypeDetector
from .options import DEFAULT_HASH_ALGORITHM, HASH_TYPES

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_diff(msg, *args, **kwargs):
    """A wrapper for diff subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": TREESYNC_SUBSYSTEM_DIFF}, **kwargs)


#: Read size for hashing file content.
_CHUNK_SIZE = 65536


def normalize_line_endings(chunks: Iterator[bytes]) -> Iterator[bytes]:
    """
    Rewrite ``\\r\\n`` and lone ``\\r`` line terminators in a stream of byte
    chunks to ``\\n``.

    A carriage return at the end of a chunk is held back until the next
    chunk shows whether it begins a ``\\r\\n`` pair.

    :param chunks: An iterator of byte strings.
    :type chunks: ``Iterator[bytes]``
    :returns: An iterator of normalised byte strings.
    :rtype: ``Iterator[bytes]``
    """
    carry = b""
    for chunk in chunks:
        data = carry + chunk
        if data.endswith(b"\r"):
            data, carry = data[:-1], b"\r"
        else:
            carry = b""
        yield data.replace(b"\r\n", b"\n").replace(b"\r", b"\n")
    if carry:
        yield b"\n"


class Fingerprinter:
    """
    Compute normalised content digests for regular files.
    """

    def __init__(
        self,
        hash_algorithm: str = DEFAULT_HASH_ALGORITHM,
        detector: Optional[FileTypeDetector] = None,
        use_magic: bool = False,
    ):
        """
        Initialise a new ``Fingerprinter`` object.

        :param hash_algorithm: A string describing the hash algorithm to be
                               used for this ``Fingerprinter`` instance.
        :type hash_algorithm: ``str``
        :param detector: The ``FileTypeDetector`` used to decide whether a
                         file is text or binary.
        :type detector: ``Optional[FileTypeDetector]``
        :param use_magic: Detect binary content using libmagic.
        :type use_magic: ``bool``
        """
        if hash_algorithm not in HASH_TYPES:
            raise ValueError(f"Unknown hash algorithm: {hash_algorithm}")

        self.hash_algorithm: str = hash_algorithm
        self.hasher = HASH_TYPES[hash_algorithm]
        self.file_type_detector: FileTypeDetector = detector or FileTypeDetector()
        self.use_magic: bool = use_magic

    def fingerprint(self, file_path: Union[str, Path]) -> str:
        """
        Calculate the content fingerprint for ``file_path``.

        :param file_path: The path to the file to hash.
        :type file_path: ``Union[str, Path]``
        :returns: A hex string digest of the (normalised) file content using
                  the configured hash algorithm.
        :rtype: ``str``
        :raises OSError: If ``file_path`` cannot be read.
        """
        binary = self.file_type_detector.is_binary(
            Path(file_path), use_magic=self.use_magic
        )
        hasher = self.hasher(usedforsecurity=False)
        with open(file_path, "rb") as f:
            chunks = iter(lambda: f.read(_CHUNK_SIZE), b"")
            if not binary:
                chunks = normalize_line_endings(chunks)
            for chunk in chunks:
                hasher.update(chunk)
        digest = hasher.hexdigest()
        _log_debug_diff(
            "Fingerprint for %s (%s): %s",
            file_path,
            "binary" if binary else "text",
            digest[0:16],
        )
        return digest
