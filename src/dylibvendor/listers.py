"""
Dependency listers: given a binary and an architecture, return the binary's direct dependency
references, or None if the binary doesn't exist for that architecture.
"""

import logging
import os
import re
import struct
import subprocess
from typing import Callable, List, Optional, Tuple

from macholib.MachO import MachO
from macholib.mach_o import (
    ARM64_SUBTYPE,
    ARM_SUBTYPE,
    CPU_TYPE_NAMES,
    INTEL64_SUBTYPE,
    INTEL_SUBTYPE,
    LC_LOAD_DYLIB,
    LC_LOAD_UPWARD_DYLIB,
    LC_LOAD_WEAK_DYLIB,
    LC_REEXPORT_DYLIB,
)

from .errors import DependencyListingError

__all__ = ["Lister", "DyldInfoLister", "MachOLister", "parse_dyld_info", "LISTERS"]

LOGGER = logging.getLogger(__name__)

Lister = Callable[[str, str], Optional[List[str]]]

# the line after which every line names one dependency in its last column
DYLD_INFO_HEADER_RE = re.compile(r"^\s*attributes\s+load path\s*$", re.MULTILINE)
# if this shows up as a dependency, the report layout isn't the one we parse
DYLD_INFO_FLAG_TOKEN = "-dependents:"
DYLD_INFO_NOT_FOUND = "file not found"

_CPU_TYPES_BY_NAME = {name: cputype for cputype, name in CPU_TYPE_NAMES.items()}
# the high byte of cpusubtype carries capability bits, e.g. the pointer auth ABI of arm64e
CPU_SUBTYPE_MASK = 0xFF000000


def _cpu(type_name: str, subtypes: dict, subtype_name: str) -> Tuple[int, int]:
    return _CPU_TYPES_BY_NAME[type_name], next(k for k, v in subtypes.items() if v == subtype_name)


# arch name as passed on the command line -> (cputype, cpusubtype)
CPU_TYPES = {
    "i386": _cpu("i386", INTEL_SUBTYPE, "CPU_SUBTYPE_I386_ALL"),
    "x86_64": _cpu("x86_64", INTEL64_SUBTYPE, "CPU_SUBTYPE_X86_64_ALL"),
    "x86_64h": _cpu("x86_64", INTEL64_SUBTYPE, "CPU_SUBTYPE_X86_64_H"),
    "armv7": _cpu("ARM", ARM_SUBTYPE, "CPU_SUBTYPE_ARM_V7"),
    "arm64": _cpu("ARM64", ARM64_SUBTYPE, "CPU_SUBTYPE_ARM64_ALL"),
    "arm64e": _cpu("ARM64", ARM64_SUBTYPE, "CPU_SUBTYPE_ARM64E"),
}
DYLIB_LOAD_COMMANDS = (LC_LOAD_DYLIB, LC_LOAD_WEAK_DYLIB, LC_REEXPORT_DYLIB, LC_LOAD_UPWARD_DYLIB)


def parse_dyld_info(stdout: str, stderr: str, path: str) -> Optional[List[str]]:
    """
    Parses the report of 'dyld_info -dependents'.

    :param stdout: The tool's standard output.
    :param stderr: The tool's diagnostics, used to detect a missing binary.
    :param path: The inspected binary, only used in error messages.
    """
    if stderr.strip().endswith(DYLD_INFO_NOT_FOUND):
        return None

    match = DYLD_INFO_HEADER_RE.search(stdout)
    if not match:
        message = f"No dependency table in dyld_info output for {path}"
        if stderr.strip():
            message += f": {stderr.strip()}"
        raise DependencyListingError(message)

    deps = list()
    for line in stdout[match.end():].splitlines():
        tokens = line.split()
        if not tokens:
            continue
        if tokens[-1] == DYLD_INFO_FLAG_TOKEN:
            raise DependencyListingError(f"Unexpected dyld_info output layout for {path}")
        deps.append(tokens[-1])

    return deps


class DyldInfoLister:
    """Lists dependencies with Apple's dyld_info tool."""

    def __init__(self, tool: str = "dyld_info"):
        self.tool = tool

    def __call__(self, path: str, arch: str) -> Optional[List[str]]:
        cmd = [self.tool, "-arch", arch, "-dependents", str(path)]
        LOGGER.debug(f"Running {' '.join(cmd)}")
        try:
            proc = subprocess.run(cmd, capture_output=True)
        except OSError as e:
            raise DependencyListingError(f"Can't run {self.tool} on {path}: {e}") from e

        try:
            stdout = proc.stdout.decode("utf-8")
            stderr = proc.stderr.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DependencyListingError(f"{self.tool} produced non-text output for {path}") from e

        return parse_dyld_info(stdout, stderr, path)


class MachOLister:
    """Lists dependencies by reading the dylib load commands with macholib."""

    def __call__(self, path: str, arch: str) -> Optional[List[str]]:
        if arch not in CPU_TYPES:
            raise DependencyListingError(f"Unsupported architecture '{arch}' for {path}")
        if not os.path.isfile(path):
            return None

        try:
            macho = MachO(str(path))
        except (ValueError, struct.error) as e:
            raise DependencyListingError(f"Can't parse Mach-O file {path}: {e}") from e

        header = self._select_slice(macho.headers, *CPU_TYPES[arch])
        if header is None:
            LOGGER.debug(f"{path} has no {arch} slice")
            return None

        deps = list()
        for cmd in header.commands:
            if cmd[0].cmd in DYLIB_LOAD_COMMANDS:
                # cmd[2] is the NULL padded library path
                deps.append(cmd[2].decode("utf-8").rstrip("\x00"))
        return deps

    @staticmethod
    def _select_slice(headers, cputype: int, cpusubtype: int):
        """The slice with the exact subtype if there is one, else the first of the same cputype."""
        candidates = [h for h in headers if h.header.cputype == cputype]
        for header in candidates:
            if header.header.cpusubtype & ~CPU_SUBTYPE_MASK == cpusubtype:
                return header
        return candidates[0] if candidates else None


LISTERS = {
    "dyld_info": DyldInfoLister,
    "macholib": MachOLister,
}
