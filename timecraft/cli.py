"""
timecraft - static timing checker for statically scheduled hardware.

Usage:
    timecraft check design.yml
    timecraft check design.yml --json --jobs 4
    timecraft check design.yml --export verified.yml
    timecraft list-primitives Register

Subcommands:
    check             Check every component of a design file
    list-primitives   List the bundled primitive signatures
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from timecraft.checker import DesignChecker
from timecraft.generator.report_generator import DiagnosticReportGenerator
from timecraft.generator.yaml.verified_yaml_generator import VerifiedYamlGenerator
from timecraft.parser import ParseError, YamlDesignParser
from timecraft.primitives import get_primitive_library

logger = logging.getLogger("timecraft")


def cmd_check(args) -> int:
    """Check a design file; returns 1 when any component is rejected."""
    try:
        design = YamlDesignParser().parse_file(args.input)
    except (ParseError, OSError) as e:
        if args.json:
            print(json.dumps({"success": False, "error": str(e)}))
        else:
            print(f"Error: {e}")
        return 1

    report = DesignChecker(jobs=args.jobs).check(design)

    if args.export:
        path = VerifiedYamlGenerator().write(report, args.export)
        logger.info(f"Wrote verified intervals to {path}")

    if args.json:
        print(json.dumps({"success": report.ok, **report.to_dict()}, indent=2))
    else:
        print(DiagnosticReportGenerator(show_verified=not args.quiet).generate(report), end="")

    return 0 if report.ok else 1


def cmd_list_primitives(args) -> int:
    """List available primitive signatures from the bundled library."""
    library = get_primitive_library()

    if args.json:
        print(json.dumps({"success": True, "primitives": library.get_all_info()}))
        return 0

    if args.name:
        info = library.get_info(args.name)
        if info is None:
            print(f"Error: Unknown primitive: {args.name}")
            print(f"Available: {', '.join(library.list_primitives())}")
            return 1
        print(f"\n{info['name']} - {info['description']}")
        print(f"\n  {info['signature']}")
        return 0

    print("\nAvailable primitives:")
    for name in library.list_primitives():
        info = library.get_info(name)
        print(f"  {name:12} - {info['description']}")
    print("\nUse 'list-primitives <NAME>' for the full signature")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="timecraft", description="Static timing checker for hardware compositions"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # check subcommand
    check_parser = subparsers.add_parser("check", help="Check a design file")
    check_parser.add_argument("input", help="Design YAML file")
    check_parser.add_argument("--json", action="store_true", help="JSON output")
    check_parser.add_argument("--export", help="Write verified port intervals to this YAML file")
    check_parser.add_argument(
        "--jobs", "-j", type=int, default=1, help="Components checked in parallel (default: 1)"
    )
    check_parser.add_argument(
        "--quiet", "-q", action="store_true", help="Only list rejected components"
    )
    check_parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    check_parser.set_defaults(func=cmd_check)

    # list-primitives subcommand
    prim_parser = subparsers.add_parser("list-primitives", help="List primitive signatures")
    prim_parser.add_argument("name", nargs="?", help="Primitive to show details for")
    prim_parser.add_argument("--json", action="store_true", help="JSON output")
    prim_parser.set_defaults(func=cmd_list_primitives)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if getattr(args, "verbose", False) else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if getattr(args, "jobs", 1) < 1:
        print("Error: --jobs must be at least 1")
        return 1
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
