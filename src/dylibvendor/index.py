import logging
import os
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from .config import Config
from .errors import EnumerationError

__all__ = ["LibraryIndex", "find_libraries", "Finder"]

LOGGER = logging.getLogger(__name__)

Finder = Callable[[str, Iterable[str]], List[str]]


def _walk(in_path: Path, suffix: str, found: List[str]):
    """Recursively fills the passed list with the files ending in suffix, doesn't follow symlinked dirs"""
    for p in in_path.iterdir():
        if p.is_dir() and not p.is_symlink():
            _walk(p, suffix, found)
        elif p.name.endswith(suffix):
            found.append(str(p))


def find_libraries(root: str, suffixes: Iterable[str]) -> List[str]:
    """
    Lists every file below root whose name ends in one of the suffixes, one suffix after the other.
    Each suffix' matches are sorted so the result doesn't depend on directory order.

    :param root: The directory to search.
    :param suffixes: File name suffixes, e.g. ".dylib".
    """
    root_path = Path(root)
    if not root_path.is_dir():
        raise EnumerationError(f"Library search root doesn't exist or isn't a directory: {root}")

    libraries = list()
    for suffix in suffixes:
        found: List[str] = list()
        try:
            _walk(root_path, suffix, found)
        except OSError as e:
            raise EnumerationError(f"Failed listing libraries below {root}: {e}") from e
        libraries.extend(sorted(found))

    return libraries


def _lookup_by_basename(paths: Iterable[str], tier: str) -> Dict[str, str]:
    lookup: Dict[str, str] = dict()
    for path in paths:
        basename = os.path.basename(path)
        if basename in lookup:
            LOGGER.debug(f"{tier} index: {path} shadows {lookup[basename]}")
        lookup[basename] = path
    return lookup


class LibraryIndex:
    """
    Basename lookup tables over the three library universes: the sysroot, the system library
    directory and the package cache. Read-only once built.
    """

    def __init__(
        self,
        sysroot_libraries: List[str],
        system: Dict[str, str],
        package: Dict[str, str],
    ):
        self.sysroot_libraries = list(sysroot_libraries)
        self.sysroot = _lookup_by_basename(self.sysroot_libraries, "sysroot")
        self.system = dict(system)
        self.package = dict(package)

    @classmethod
    def build(cls, sysroot: str, config: Optional[Config] = None, finder: Finder = find_libraries) -> "LibraryIndex":
        """
        Scans all three roots. Any root that can't be listed aborts the build.

        :param sysroot: The sysroot directory, its libraries are the traversal roots.
        :param config: Locations of the system and package cache directories, defaults to :class:`Config`.
        :param finder: The directory enumeration, swappable for tests.
        """
        config = config or Config()

        sysroot_libraries = finder(sysroot, config.suffixes)
        LOGGER.info(f"Found {len(sysroot_libraries)} libraries in sysroot {sysroot}")

        system_libraries = finder(config.system_lib_dir, config.suffixes)
        LOGGER.info(f"Found {len(system_libraries)} libraries in {config.system_lib_dir}")

        package_libraries = finder(config.package_cache_dir, config.suffixes)
        LOGGER.info(f"Found {len(package_libraries)} libraries in {config.package_cache_dir}")

        return cls(
            sysroot_libraries,
            _lookup_by_basename(system_libraries, "system"),
            _lookup_by_basename(package_libraries, "package"),
        )
