# Copyright Red Hat
#
# treesync/fsdiff/options.py - Tree synchronisation diff options
#
# This file is part of the treesync project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Tree comparison options.
"""
from dataclasses import dataclass, field, fields, replace
from typing import Iterable, Optional, Tuple, Union
from argparse import Namespace
from hashlib import blake2b, md5, sha1, sha256, sha512
import logging

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error

#: Digest constructors for content fingerprints, by algorithm name.
HASH_TYPES = {
    "md5": md5,
    "sha1": sha1,
    "sha256": sha256,
    "sha512": sha512,
    "blake2b": blake2b,
}

#: Hash algorithms accepted for content fingerprints.
HASH_ALGORITHMS = tuple(HASH_TYPES)

#: Default content fingerprint algorithm.
DEFAULT_HASH_ALGORITHM = "sha256"

IgnoreSpec = Union[str, Iterable[str], None]


def normalize_ignore(ignore: IgnoreSpec) -> Tuple[str, ...]:
    """
    Normalise an ignore specification into a tuple of pattern strings.

    :param ignore: A single pattern string, an iterable of pattern strings,
                   or ``None``.
    :type ignore: ``Union[str, Iterable[str], None]``
    :returns: A (possibly empty) tuple of patterns.
    :rtype: ``Tuple[str, ...]``
    """
    if ignore is None:
        return ()
    if isinstance(ignore, str):
        return (ignore,) if ignore else ()
    return tuple(pat for pat in ignore if pat)


@dataclass(frozen=True)
class DiffOptions:
    """
    Tree comparison options.
    """

    #: Paths or wildcard patterns to exclude from enumeration
    ignore: Tuple[str, ...] = field(default_factory=tuple)
    #: Follow symlinks when walking trees
    follow_symlinks: bool = True
    #: Digest used for content fingerprints
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM
    #: Detect binary files using libmagic instead of the content sniffer
    use_magic_file_type: bool = False
    #: Do not output progress or status updates
    quiet: bool = False

    def __post_init__(self):
        # Accept a bare string or list for ``ignore`` while keeping the
        # stored value hashable.
        object.__setattr__(self, "ignore", normalize_ignore(self.ignore))
        if self.hash_algorithm not in HASH_ALGORITHMS:
            raise ValueError(f"Unknown hash algorithm: {self.hash_algorithm}")

    def __str__(self):
        """
        Return a human readable string representation of this
        ``DiffOptions`` instance.

        :returns: A human readable string.
        :rtype: ``str``
        """
        items = [
            (key, val) if not isinstance(val, tuple) else (key, " ".join(val))
            for key, val in self.__dict__.items()
        ]
        return "\n".join(f"{key}={val}" for key, val in items)

    def with_ignore(self, ignore: IgnoreSpec) -> "DiffOptions":
        """
        Return a copy of these options with ``ignore`` replaced, or these
        options unchanged if ``ignore`` is ``None``.

        :param ignore: The replacement ignore specification.
        :type ignore: ``Union[str, Iterable[str], None]``
        :returns: A ``DiffOptions`` instance.
        :rtype: ``DiffOptions``
        """
        if ignore is None:
            return self
        return replace(self, ignore=normalize_ignore(ignore))

    @classmethod
    def from_cmd_args(cls, cmd_args: Namespace) -> "DiffOptions":
        """
        Initialise DiffOptions from command line arguments.

        Construct a new ``DiffOptions`` object from the command line
        arguments in ``cmd_args``. Ignore values may be given as repeated
        arguments, comma separated lists, or both.

        :param cmd_args: The command line selection arguments.
        :type cmd_args: ``Namespace``
        :returns: A new ``DiffOptions`` instance
        :rtype: ``DiffOptions``
        """

        def get_value(name: str) -> Union[bool, Optional[str], Tuple[str, ...]]:
            """
            Get a value from ``cmd_args``, converting lists to tuples.

            :param name: The name of the argument.
            :type name: ``str``
            :returns: The argument converted to a tuple if appropriate.
            :rtype: ``Union[bool, Optional[str], Tuple[str, ...]]``
            """
            attr = getattr(cmd_args, name)
            if name == "ignore":
                if attr is None:
                    return ()
                return tuple(
                    pat.strip() for val in attr for pat in val.split(",") if pat.strip()
                )
            if isinstance(attr, list):
                return tuple(attr)
            return attr

        field_names = {f.name for f in fields(cls)}
        # Unset (None) arguments fall back to the field default.
        kwargs = {
            name: get_value(name)
            for name in field_names
            if hasattr(cmd_args, name)
            and (name == "ignore" or getattr(cmd_args, name) is not None)
        }
        options = cls(**kwargs)
        _log_debug("Initialised DiffOptions from arguments: %s", repr(options))
        return options
