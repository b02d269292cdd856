__all__ = [
    "DylibVendorError",
    "ConfigError",
    "EnumerationError",
    "DependencyListingError",
    "BinaryNotFoundError",
    "PlanError",
    "ToolError",
    "RewriteError",
    "SigningError",
]


class DylibVendorError(Exception):
    """Base class for every condition that aborts a run."""


class ConfigError(DylibVendorError):
    pass


class EnumerationError(DylibVendorError):
    """A library search root couldn't be listed; a partial index is never used."""


class DependencyListingError(DylibVendorError):
    """The dependency lister produced output we can't make sense of."""


class BinaryNotFoundError(DylibVendorError):
    """A library already classified as present doesn't exist for the target architecture."""

    def __init__(self, path: str, arch: str):
        super().__init__(f"Library {path} classified as present doesn't exist for arch {arch}")
        self.path = path
        self.arch = arch


class PlanError(DylibVendorError):
    pass


class ToolError(DylibVendorError):
    """An external tool exited non-zero or couldn't be run at all."""

    def __init__(self, cmd, path, stderr: str = ""):
        message = f"'{' '.join(cmd)}' failed on {path}"
        if stderr.strip():
            message += f": {stderr.strip()}"
        super().__init__(message)
        self.cmd = cmd
        self.path = path
        self.stderr = stderr


class RewriteError(ToolError):
    pass


class SigningError(ToolError):
    pass
