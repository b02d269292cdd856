from dataclasses import dataclass, field
import logging
import os
from pathlib import Path
import shutil
import stat
from typing import Iterable, List, Optional, Tuple

from .collect import DependencyRecords
from .errors import PlanError
from .resolve import Classification
from .tools import Toolchain, rpath_reference

__all__ = ["LibraryPlan", "plan_rewrites", "apply_plan", "required_libraries"]

LOGGER = logging.getLogger(__name__)


@dataclass
class LibraryPlan:
    """Everything that happens to one library after the dependency graph is collected."""

    # canonical path of the library
    source: str
    # the file that gets rewritten and signed: the vendored copy or the sysroot library itself
    target: str
    copy: bool = False
    # new install name, if the library's id changes
    install_name: Optional[str] = None
    # (reference as found, new reference)
    changes: List[Tuple[str, str]] = field(default_factory=list)


def required_libraries(records: DependencyRecords) -> List[str]:
    """Returns the canonical paths classified as required anywhere in the records."""
    return sorted(
        {
            resolved.path
            for record in records.values()
            for resolved in record.values()
            if resolved.classification == Classification.REQUIRED
        }
    )


def _sysroot_libraries(records: DependencyRecords, roots: Iterable[str]) -> List[str]:
    libraries = list(dict.fromkeys(roots))
    seen = set(libraries)
    discovered = {
        resolved.path
        for record in records.values()
        for resolved in record.values()
        if resolved.classification == Classification.SYSROOT
    }
    # sysroot libraries referenced but never listed have nothing to rewrite
    libraries.extend(sorted(p for p in discovered if p not in seen and p in records))
    return libraries


def _changes(records: DependencyRecords, path: str) -> List[Tuple[str, str]]:
    record = records.get(path)
    if record is None:
        raise PlanError(f"No dependency record for {path}, its dependencies were never listed")

    return [
        (ref, rpath_reference(os.path.basename(resolved.path)))
        for ref, resolved in sorted(record.items())
        if resolved.classification == Classification.REQUIRED
    ]


def plan_rewrites(records: DependencyRecords, roots: Iterable[str], output_dir: str) -> List[LibraryPlan]:
    """
    Derives the actions for every required and every sysroot library. Required libraries are
    copied flat into output_dir and get an @rpath install name; sysroot libraries stay in place.
    In both cases each required dependency reference is changed to @rpath/<basename>.

    :param records: The collected dependency records.
    :param roots: The sysroot libraries collection started from.
    :param output_dir: Where required libraries get copied to.
    """
    plans = list()

    for path in required_libraries(records):
        basename = os.path.basename(path)
        plans.append(
            LibraryPlan(
                source=path,
                target=str(Path(output_dir).joinpath(basename)),
                copy=True,
                install_name=rpath_reference(basename),
                changes=_changes(records, path),
            )
        )

    for path in _sysroot_libraries(records, roots):
        plans.append(LibraryPlan(source=path, target=path, changes=_changes(records, path)))

    return plans


def _copy(source: str, target: str):
    target_path = Path(target)
    try:
        if target_path.exists() or target_path.is_symlink():
            target_path.unlink()
        shutil.copy2(source, target_path, follow_symlinks=True)
        # package cache files are usually read-only, install_name_tool needs to write
        target_path.chmod(target_path.stat().st_mode | stat.S_IWUSR)
    except OSError as e:
        raise PlanError(f"Failed copying {source} to {target}: {e}") from e


def apply_plan(
    plans: List[LibraryPlan],
    toolchain: Toolchain,
    identity: str,
    output_dir: str,
    dry_run: bool = False,
) -> None:
    """
    Copies, rewrites and signs according to the plans. Nothing is rolled back on failure.

    :param plans: The output of :func:`plan_rewrites`.
    :param toolchain: Performs the load command rewrites and signing.
    :param identity: The code signing identity.
    :param output_dir: Created if it doesn't exist.
    :param dry_run: Only log the copies; pass a DryRunToolchain to skip the rewrites as well.
    """
    if not dry_run:
        try:
            Path(output_dir).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PlanError(f"Can't create output directory {output_dir}: {e}") from e

    for plan in plans:
        LOGGER.info(f"Processing {plan.source}")
        if plan.copy:
            if dry_run:
                LOGGER.info(f"[dry-run] copy {plan.source} -> {plan.target}")
            else:
                LOGGER.info(f"Copying {plan.source} -> {plan.target}")
                _copy(plan.source, plan.target)

        if plan.install_name:
            toolchain.set_id(plan.target, plan.install_name)
        for old, new in plan.changes:
            LOGGER.debug(f"Changing {old} -> {new} in {plan.target}")
            toolchain.change(plan.target, old, new)
        toolchain.sign(plan.target, identity)
