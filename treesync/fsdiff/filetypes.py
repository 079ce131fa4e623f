# Copyright Red Hat
#
# treesync/fsdiff/filetypes.py - Tree synchronisation file types
#
# This file is part of the treesync project.
#
# SPDX-License-Identifier: Apache-2.0
"""
File type information support.

Classifies regular files as text or binary. By default classification
uses a content sniffer that inspects the leading block of the file; when
requested ``libmagic`` is consulted instead via the ``file-magic``
bindings.
"""
from typing import Optional
from pathlib import Path
from enum import Enum
import logging

import magic

from treesync import TREESYNC_SUBSYSTEM_DIFF

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_diff(msg, *args, **kwargs):
    """A wrapper for diff subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": TREESYNC_SUBSYSTEM_DIFF}, **kwargs)


#: Number of leading bytes inspected by the content sniffer.
SNIFF_SIZE = 8192

#: Fraction of control bytes above which undecodable content is binary.
_BINARY_THRESHOLD = 0.1

#: Byte order marks that identify text in a multi-byte encoding.
_TEXT_BOMS = (
    b"\xef\xbb\xbf",  # UTF-8
    b"\x00\x00\xfe\xff",  # UTF-32 BE
    b"\xff\xfe\x00\x00",  # UTF-32 LE
    b"\xfe\xff",  # UTF-16 BE
    b"\xff\xfe",  # UTF-16 LE
)

#: Control bytes that legitimately occur in text files.
_TEXT_CONTROL = frozenset(b"\t\n\r\f\b\x1b")


class FileTypeCategory(Enum):
    """
    Enum for file type categories.
    """

    TEXT = "text"
    BINARY = "binary"
    EMPTY = "empty"
    UNKNOWN = "unknown"


class FileTypeInfo:
    """
    Class representing file type information and encoding.
    """

    def __init__(
        self,
        mime_type: str,
        description: str,
        category: FileTypeCategory,
        encoding: Optional[str] = None,
    ):
        """
        Initialise a new ``FileTypeInfo`` object.

        :param mime_type: The detected MIME type.
        :type mime_type: ``str``
        :param description: Type description.
        :type description: ``str``
        :param category: File type category.
        :type category: ``FileTypeCategory``
        :param encoding: Optional file encoding.
        :type encoding: ``Optional[str]``
        """
        self.mime_type = mime_type
        self.description = description
        self.category = category
        self.encoding = encoding
        self.is_text_like = category in (FileTypeCategory.TEXT, FileTypeCategory.EMPTY)

    def __str__(self):
        """
        Return a string representation of this ``FileTypeInfo`` object.

        :returns: A human readable string describing this instance.
        :rtype: ``str``
        """
        return (
            f"MIME type: {self.mime_type}, "
            f"Category: {self.category.value}, "
            f"Encoding: {self.encoding if self.encoding else 'unknown'}, "
            f"Description: {self.description}"
        )


def _sniff_bytes(data: bytes) -> FileTypeInfo:
    """
    Classify a leading block of file content as text or binary.

    :param data: The leading bytes of a file.
    :type data: ``bytes``
    :returns: File type information for the sampled content.
    :rtype: ``FileTypeInfo``
    """
    if not data:
        return FileTypeInfo("inode/x-empty", "empty", FileTypeCategory.EMPTY, "utf-8")

    if data.startswith(_TEXT_BOMS):
        return FileTypeInfo(
            "text/plain", "text with byte order mark", FileTypeCategory.TEXT, "unicode"
        )

    if b"\x00" in data:
        return FileTypeInfo(
            "application/octet-stream", "data", FileTypeCategory.BINARY, "binary"
        )

    try:
        data.decode("utf-8")
        return FileTypeInfo("text/plain", "UTF-8 text", FileTypeCategory.TEXT, "utf-8")
    except UnicodeDecodeError as err:
        # A multi-byte sequence truncated by the sample boundary.
        if err.start >= len(data) - 3 and err.reason == "unexpected end of data":
            return FileTypeInfo(
                "text/plain", "UTF-8 text", FileTypeCategory.TEXT, "utf-8"
            )

    suspicious = sum(
        1 for byte in data if (byte < 0x20 and byte not in _TEXT_CONTROL) or byte == 0x7F
    )
    if suspicious / len(data) > _BINARY_THRESHOLD:
        return FileTypeInfo(
            "application/octet-stream", "data", FileTypeCategory.BINARY, "binary"
        )
    return FileTypeInfo(
        "text/plain", "8-bit text", FileTypeCategory.TEXT, "unknown-8bit"
    )


class FileTypeDetector:
    """
    Detect file types by content sniffing or using ``magic`` from
    python3-file-magic.
    """

    def detect_file_type(self, file_path: Path, use_magic=False) -> FileTypeInfo:
        """
        Detect file type information, optionally using libmagic for MIME
        type and encoding detection.

        :param file_path: The path to the file to inspect.
        :type file_path: ``Path``.
        :param use_magic: Use libmagic rather than the content sniffer.
        :type use_magic: ``bool``
        :returns: File type information for ``file_path``.
        :rtype: ``FileTypeInfo``
        :raises OSError: If ``file_path`` cannot be read.
        """
        if use_magic:
            return self._magic_file_type(file_path)
        return self._sniff_file_type(file_path)

    def is_binary(self, file_path: Path, use_magic=False) -> bool:
        """
        Return ``True`` if the content of ``file_path`` is binary data.

        :param file_path: The path to the file to inspect.
        :type file_path: ``Path``.
        :param use_magic: Use libmagic rather than the content sniffer.
        :type use_magic: ``bool``
        :returns: ``True`` for binary content or ``False`` for text.
        :rtype: ``bool``
        """
        fti = self.detect_file_type(file_path, use_magic=use_magic)
        _log_debug_diff("Detected file type for %s: %s", str(file_path), fti)
        return not fti.is_text_like

    @staticmethod
    def _sniff_file_type(file_path: Path) -> FileTypeInfo:
        """
        Classify ``file_path`` from the first ``SNIFF_SIZE`` bytes of its
        content.

        :param file_path: The path to the file to inspect.
        :type file_path: ``Path``
        :returns: File type information for ``file_path``.
        :rtype: ``FileTypeInfo``
        """
        with open(file_path, "rb") as f:
            data = f.read(SNIFF_SIZE)
        return _sniff_bytes(data)

    @staticmethod
    def _magic_file_type(file_path: Path) -> FileTypeInfo:
        """
        Classify ``file_path`` using libmagic.

        :param file_path: The path to the file to inspect.
        :type file_path: ``Path``
        :returns: File type information for ``file_path``.
        :rtype: ``FileTypeInfo``
        """
        # c9s magic does not have magic.error
        if hasattr(magic, "error"):
            magic_errors = (magic.error, ValueError)
        else:
            magic_errors = (ValueError,)

        try:
            fm = magic.detect_from_filename(str(file_path))
        except magic_errors as err:
            _log_warn("Error detecting file type for %s: %s", str(file_path), err)
            return FileTypeInfo(
                "application/octet-stream", "unknown", FileTypeCategory.UNKNOWN
            )

        if fm.mime_type == "inode/x-empty":
            category = FileTypeCategory.EMPTY
        elif fm.encoding == "binary":
            category = FileTypeCategory.BINARY
        else:
            category = FileTypeCategory.TEXT
        return FileTypeInfo(fm.mime_type, fm.name, category, fm.encoding)
