import logging
from typing import Dict, Iterable, List

from .errors import BinaryNotFoundError
from .listers import Lister
from .resolve import Classification, ResolvedLibrary, Resolver

__all__ = ["collect_dependencies", "DependencyRecords"]

LOGGER = logging.getLogger(__name__)

# canonical library path -> {reference as found in its load commands -> resolution}
DependencyRecords = Dict[str, Dict[str, ResolvedLibrary]]

EXPANDED = (Classification.REQUIRED, Classification.SYSROOT)


def collect_dependencies(roots: Iterable[str], resolver: Resolver, lister: Lister, arch: str) -> DependencyRecords:
    """
    Walks the dependency graph from the roots and records the classified dependencies of every
    sysroot and required library. Each canonical path is listed at most once, so cycles and
    shared dependencies are fine.

    :param roots: The sysroot libraries to start from.
    :param resolver: Classifies each reference.
    :param lister: Lists a binary's direct dependencies.
    :param arch: The architecture whose slice is inspected.
    """
    records: DependencyRecords = dict()
    queue: List[str] = list(roots)

    passes = 0
    while queue:
        current, queue = queue, list()
        passes += 1
        LOGGER.debug(f"Pass {passes}: {len(current)} references")

        for ref in current:
            classification, path = resolver.resolve(ref)

            if classification == Classification.MISSING:
                LOGGER.warning(f"[{ref}] Is missing, continuing.")
                continue
            if classification == Classification.UNKNOWN:
                LOGGER.warning(f"[{ref}] Is unknown, continuing.")
                continue
            if classification not in EXPANDED or path in records:
                continue

            deps = lister(path, arch)
            if deps is None:
                raise BinaryNotFoundError(path, arch)

            LOGGER.info(f"Listed {len(deps)} dependencies of {path}")
            records[path] = {dep: resolver.resolve(dep) for dep in deps}
            queue.extend(deps)

    LOGGER.info(f"Collected dependencies of {len(records)} libraries in {passes} passes")
    return records
