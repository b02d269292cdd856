from typing import Dict, List, Optional

from dylibvendor.index import LibraryIndex
from dylibvendor.tools import Toolchain

SYSROOT = "/work/MyApp.app/Contents"
LIB1 = SYSROOT + "/Frameworks/lib1.dylib"
LIB2 = SYSROOT + "/Frameworks/lib2.dylib"
LIBSYSTEM = "/usr/lib/libSystem.B.dylib"


class FakeLister:
    """Returns canned dependency lists and remembers every call."""

    def __init__(self, deps: Dict[str, List[str]]):
        self.deps = deps
        self.calls = list()

    def __call__(self, path: str, arch: str) -> Optional[List[str]]:
        self.calls.append((path, arch))
        deps = self.deps.get(path)
        return list(deps) if deps is not None else None

    def count(self, path: str) -> int:
        return len([c for c in self.calls if c[0] == path])


class RecordingToolchain(Toolchain):
    def __init__(self):
        super().__init__()
        self.actions = list()

    def set_id(self, path, install_name):
        self.actions.append(("id", path, install_name))

    def change(self, path, old, new):
        self.actions.append(("change", path, old, new))

    def sign(self, path, identity):
        self.actions.append(("sign", path, identity))


def make_index(sysroot_libraries=(LIB1, LIB2), system=None, package=None) -> LibraryIndex:
    return LibraryIndex(list(sysroot_libraries), system or dict(), package or dict())
