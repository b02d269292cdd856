from .__version__ import __version__
from .collect import collect_dependencies
from .config import Config
from .errors import DylibVendorError
from .index import LibraryIndex
from .plan import apply_plan, plan_rewrites
from .resolve import Classification, ResolvedLibrary, Resolver, classify

__all__ = [
    "Classification",
    "Config",
    "DylibVendorError",
    "LibraryIndex",
    "ResolvedLibrary",
    "Resolver",
    "apply_plan",
    "classify",
    "collect_dependencies",
    "plan_rewrites",
    "__version__",
]
