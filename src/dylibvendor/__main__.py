import argparse
import json
import logging
import os
from pathlib import Path
import sys

from . import __version__
from .collect import DependencyRecords, collect_dependencies
from .config import CODESIGN_IDENTITY_ENV, DEFAULT_ARCH, Config
from .errors import DylibVendorError, PlanError
from .index import LibraryIndex
from .listers import LISTERS
from .plan import apply_plan, plan_rewrites
from .resolve import Resolver
from .tools import DryRunToolchain, Toolchain

description = """Vendors the third-party dylibs the libraries of a macOS sysroot depend on into an output
directory, rewrites their load paths to @rpath/<name> and re-signs everything it touched."""

# set up the logger basics
LOGGER = logging.getLogger("dylibvendor")
handler = logging.StreamHandler()
handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)5s: %(message)s"))
LOGGER.addHandler(handler)


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dylibvendor", description=description)
    parser.add_argument(
        "-s",
        "--codesign-identity",
        help=f"The code signing identity, defaults to ${CODESIGN_IDENTITY_ENV}.",
        default=os.environ.get(CODESIGN_IDENTITY_ENV),
    )
    parser.add_argument("-a", "--arch", help=f"The architecture to inspect, default '{DEFAULT_ARCH}'.", default=DEFAULT_ARCH)
    parser.add_argument("-o", "--output-path", help="Where to copy the vendored libraries to.", type=Path, required=True)
    parser.add_argument("-c", "--config", help="JSON file overriding the library search configuration.", type=Path)
    parser.add_argument("--lister", help="How to list dependencies.", choices=sorted(LISTERS), default="dyld_info")
    parser.add_argument("--report", help="Write the collected dependency records as JSON to this file.", type=Path)
    parser.add_argument("--dry-run", help="Only log what would be copied, rewritten and signed.", action="store_true")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", help="Log every classified reference.", action="store_true")
    verbosity.add_argument("-q", "--quiet", help="Only log warnings and errors.", action="store_true")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("root_path", help="The sysroot, i.e. the directory holding the bundle's libraries.")
    return parser


def write_report(records: DependencyRecords, path: Path):
    report = {
        library: {ref: {"classification": res.classification.value, "path": res.path} for ref, res in record.items()}
        for library, record in sorted(records.items())
    }
    try:
        with path.open("w") as f:
            json.dump(report, f, indent=2, sort_keys=True)
    except OSError as e:
        raise PlanError(f"Can't write dependency report to {path}: {e}") from e
    LOGGER.info(f"Wrote dependency report to {path}")


def run(args: argparse.Namespace):
    config = Config.from_json(args.config) if args.config else Config()
    sysroot = os.path.abspath(args.root_path)
    output_path = str(args.output_path.absolute())

    LOGGER.info(f"Vendoring for sysroot {sysroot} ({args.arch}) into {output_path}")

    index = LibraryIndex.build(sysroot, config)
    resolver = Resolver(sysroot, index, config)
    records = collect_dependencies(resolver.roots, resolver, LISTERS[args.lister](), args.arch)

    if args.report:
        write_report(records, args.report)

    plans = plan_rewrites(records, resolver.roots, output_path)
    LOGGER.info(f"Vendoring {sum(p.copy for p in plans)} libraries, rewriting {len(plans)} in total")

    toolchain = DryRunToolchain() if args.dry_run else Toolchain()
    apply_plan(plans, toolchain, args.codesign_identity, output_path, dry_run=args.dry_run)


def main(argv=None):
    parser = get_parser()
    args = parser.parse_args(argv)
    if not args.codesign_identity:
        parser.error(f"a code signing identity is required, use -s/--codesign-identity or ${CODESIGN_IDENTITY_ENV}")

    # set the right logger level
    if args.quiet:
        LOGGER.setLevel(logging.WARNING)
    elif args.verbose:
        LOGGER.setLevel(logging.DEBUG)
    else:
        LOGGER.setLevel(logging.INFO)

    try:
        run(args)
    except DylibVendorError as e:
        LOGGER.critical(str(e))
        sys.exit(1)

    LOGGER.info("Done.")


if __name__ == "__main__":
    main()
