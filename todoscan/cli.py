import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .core.loader import ModuleFilter, TargetError, collect_modules, loaded_modules
from .core.reporting import ConsoleReporter, write_json_report
from .core.scanner import TodoScanner, configure_logging


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="todoscan",
        description="Find declarations marked with @Todo and fail the build while any remain.",
    )
    p.add_argument(
        "targets",
        nargs="*",
        help="Module names, .py files or directories to scan. Without targets the modules already loaded in this process are scanned.",
    )
    p.add_argument("--exclude", default="", help="Extra module prefixes to skip, comma-separated (case-insensitive).")
    p.add_argument("--no-default-excludes", action="store_true", help="Do not skip the built-in platform/tooling module prefixes.")
    p.add_argument("--json", type=Path, default=None, help="Also write the report as JSON to this path.")
    p.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    p.add_argument("--verbose", action="store_true", help="Enable verbose logging output.")
    return p


def run_scan(args: argparse.Namespace) -> int:
    logger = configure_logging(verbose=args.verbose)
    module_filter = ModuleFilter(
        [e.strip() for e in args.exclude.split(",") if e.strip()],
        include_defaults=not args.no_default_excludes,
    )

    if args.targets:
        try:
            units = collect_modules(args.targets, module_filter)
        except TargetError as exc:
            print(f"todoscan: {exc}", file=sys.stderr)
            return 2
    else:
        units = loaded_modules(module_filter)

    if not units:
        logger.warning("Nothing to scan after applying exclusions")

    scanner = TodoScanner(
        units,
        ConsoleReporter(),
        logger=logger,
        verbose=args.verbose,
        show_progress=not args.no_progress,
    )
    report = scanner.scan()

    if args.json is not None:
        write_json_report(report, args.json)
    return report.exit_code


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    return run_scan(args)


if __name__ == "__main__":
    raise SystemExit(main())
