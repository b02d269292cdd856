"""
Classification of library references as found in Mach-O load commands.

The rules are evaluated in a fixed order and the first match wins:

1. anything below the sysroot directory is already part of the bundle; a sibling sharing the
   prefix, e.g. Contents.old next to Contents, is not
2. absolute paths below a system prefix are provided by the OS
3. absolute paths below the package prefix must be vendored, if the package cache has them
4. a few legacy absolute paths are known to be satisfied by the OS
5. relocation-marker references (@rpath/, @loader_path/, @executable_path/) are looked up by
   basename in the sysroot, system and package indices, in that order
6. everything else is unknown
"""

from enum import Enum
import logging
from typing import NamedTuple, Optional

from .config import Config
from .index import LibraryIndex

__all__ = ["Classification", "ResolvedLibrary", "classify", "Resolver", "reference_basename"]

LOGGER = logging.getLogger(__name__)

RELOCATION_MARKER = "@"


class Classification(Enum):
    # provided by the base OS, nothing to do
    SYSTEM = "system"
    # third-party, needs to be copied and referenced via @rpath
    REQUIRED = "required"
    # already in the sysroot, only references need rewriting
    SYSROOT = "sysroot"
    # expected outside the system but not found
    MISSING = "missing"
    # no rule recognized the reference
    UNKNOWN = "unknown"


class ResolvedLibrary(NamedTuple):
    classification: Classification
    # canonical path, the identity of a library during collection
    path: str


def _is_below(ref: str, directory: str) -> bool:
    # load paths are POSIX paths on every host
    return ref == directory or ref.startswith(directory.rstrip("/") + "/")


def reference_basename(ref: str) -> str:
    return ref.rsplit("/", 1)[-1]


def classify(ref: str, sysroot: str, index: LibraryIndex, config: Optional[Config] = None) -> ResolvedLibrary:
    """
    Classifies a single library reference and returns where it canonically lives.

    :param ref: The reference exactly as it appears in a binary's load commands.
    :param sysroot: The sysroot directory.
    :param index: The basename lookup tables.
    :param config: The prefix sets and allowlists, defaults to :class:`Config`.
    """
    config = config or Config()

    if _is_below(ref, sysroot):
        return ResolvedLibrary(Classification.SYSROOT, ref)

    if ref.startswith("/"):
        if any(ref.startswith(prefix) for prefix in config.system_prefixes):
            return ResolvedLibrary(Classification.SYSTEM, ref)

        if ref.startswith(config.package_prefix):
            path = index.package.get(reference_basename(ref))
            if path is not None:
                return ResolvedLibrary(Classification.REQUIRED, path)
            return ResolvedLibrary(Classification.MISSING, ref)

        if ref in config.legacy_system_paths:
            return ResolvedLibrary(Classification.SYSTEM, ref)

    elif ref.startswith(RELOCATION_MARKER):
        basename = reference_basename(ref)

        for lookup, classification in (
            (index.sysroot, Classification.SYSROOT),
            (index.system, Classification.SYSTEM),
            (index.package, Classification.REQUIRED),
        ):
            path = lookup.get(basename)
            if path is not None:
                return ResolvedLibrary(classification, path)

        if basename in config.system_basenames:
            return ResolvedLibrary(Classification.SYSTEM, ref)

    return ResolvedLibrary(Classification.UNKNOWN, ref)


class Resolver:
    """Binds the sysroot, index and config a whole run classifies against."""

    def __init__(self, sysroot: str, index: LibraryIndex, config: Optional[Config] = None):
        self.sysroot = sysroot
        self.index = index
        self.config = config or Config()

    @property
    def roots(self):
        return self.index.sysroot_libraries

    def resolve(self, ref: str) -> ResolvedLibrary:
        resolved = classify(ref, self.sysroot, self.index, self.config)
        LOGGER.debug(f"[{ref}] {resolved.classification.value}: {resolved.path}")
        return resolved
