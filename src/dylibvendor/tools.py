import logging
import subprocess
from typing import List

from .errors import RewriteError, SigningError

__all__ = ["Toolchain", "DryRunToolchain", "rpath_reference"]

LOGGER = logging.getLogger(__name__)


def rpath_reference(basename: str) -> str:
    return f"@rpath/{basename}"


def _run(cmd: List[str], path: str, error_cls) -> str:
    LOGGER.debug(f"Running {' '.join(cmd)}")
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True)
    except OSError as e:
        raise error_cls(cmd, path, str(e)) from e
    if proc.returncode != 0:
        raise error_cls(cmd, path, proc.stderr)
    return proc.stderr


class Toolchain:
    """Rewrites load commands with install_name_tool and re-signs with codesign."""

    def __init__(self, install_name_tool: str = "install_name_tool", codesign: str = "codesign"):
        self.install_name_tool = install_name_tool
        self.codesign = codesign

    def set_id(self, path: str, install_name: str) -> None:
        _run([self.install_name_tool, "-id", install_name, str(path)], path, RewriteError)

    def change(self, path: str, old: str, new: str) -> None:
        _run([self.install_name_tool, "-change", old, new, str(path)], path, RewriteError)

    def sign(self, path: str, identity: str) -> None:
        # -f replaces any existing signature
        stderr = _run([self.codesign, "-s", identity, "-f", str(path)], path, SigningError)
        if stderr.strip():
            LOGGER.debug(stderr.strip())


class DryRunToolchain(Toolchain):
    """Logs what would be done instead of doing it."""

    def set_id(self, path: str, install_name: str) -> None:
        LOGGER.info(f"[dry-run] set id of {path} to {install_name}")

    def change(self, path: str, old: str, new: str) -> None:
        LOGGER.info(f"[dry-run] change {old} -> {new} in {path}")

    def sign(self, path: str, identity: str) -> None:
        LOGGER.info(f"[dry-run] sign {path} as '{identity}'")


