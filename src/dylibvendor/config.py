from dataclasses import dataclass, field, fields
import json
from pathlib import Path
from typing import List, Union

from .errors import ConfigError

__all__ = ["Config", "DEFAULT_ARCH", "CODESIGN_IDENTITY_ENV"]

DEFAULT_ARCH = "arm64"
CODESIGN_IDENTITY_ENV = "CODESIGN_IDENTITY"


@dataclass
class Config:
    """
    Where the three library universes live and the fixed rule tables of the classifier.

    The defaults describe an Apple Silicon Homebrew installation.
    """

    # files we index, by name suffix
    suffixes: List[str] = field(default_factory=lambda: [".dylib", ".so"])
    # directory scanned for the system tier of the index
    system_lib_dir: str = "/usr/lib"
    # absolute references below any of these are provided by the OS
    system_prefixes: List[str] = field(default_factory=lambda: ["/System", "/Library", "/usr/lib"])
    # absolute references below this are looked up in the package cache
    package_prefix: str = "/opt/homebrew"
    # directory scanned for the package tier of the index
    package_cache_dir: str = "/opt/homebrew/Cellar"
    # absolute references treated as satisfied by the OS
    legacy_system_paths: List[str] = field(default_factory=lambda: ["/usr/local/lib/libobjc-env.dylib"])
    # basenames of marker-relative references always present on the OS, though in no index
    system_basenames: List[str] = field(default_factory=lambda: ["libc++.1.dylib", "libz.1.dylib"])

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "Config":
        """
        Returns the default configuration with the keys of the JSON object at ``path`` applied on top.

        :param path: Path to a JSON file holding a (partial) object with the same keys as :class:`Config`.
        """
        path = Path(path)
        try:
            with path.open(encoding="utf-8") as f:
                overrides = json.load(f)
        except FileNotFoundError:
            raise ConfigError(f"Config file doesn't exist: {path}")
        except json.JSONDecodeError as e:
            raise ConfigError(f"Config file {path} isn't valid JSON: {e}")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(f"Can't read config file {path}: {e}")

        return cls.from_dict(overrides, source=str(path))

    @classmethod
    def from_dict(cls, overrides: dict, source: str = "<dict>") -> "Config":
        if not isinstance(overrides, dict):
            raise ConfigError(f"Config in {source} must be a JSON object, not {type(overrides).__name__}")

        config = cls()
        known = {f.name: f for f in fields(cls)}
        for key, value in overrides.items():
            if key not in known:
                raise ConfigError(f"Unknown config key '{key}' in {source}")
            default = getattr(config, key)
            if isinstance(default, list):
                if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                    raise ConfigError(f"Config key '{key}' in {source} must be a list of strings")
            elif not isinstance(value, str):
                raise ConfigError(f"Config key '{key}' in {source} must be a string")
            setattr(config, key, value)

        return config
