"""
=============================================================================
ROUTECHAIN CLI ENTRY POINT
=============================================================================

Try path templates out from the shell.

=============================================================================
USAGE
=============================================================================

    # Show the regex a template compiles to
    python -m routechain compile "/users/:id/files/:path*"

    # Match a concrete path (prints JSON, exit status 0 / 1)
    python -m routechain match "/users/:id" /users/42
    python -m routechain match "/users/{id}" /users/42 -f handlebar

    # Case-sensitive matching
    python -m routechain match "/abc" /ABC --case-sensitive

Exit status:
    0   success / matched
    1   no match
    2   invalid template or option

=============================================================================
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from . import __version__
from .errors import RouterError
from .routing.path_parser import DEFAULT_PARAM_FORMAT, PARAM_FORMATS, compile_path


EXIT_OK = 0
EXIT_NO_MATCH = 1
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m routechain",
        description="Compile and test routechain path templates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m routechain compile "/users/:id"
  python -m routechain match "/users/:id" /users/42
  python -m routechain match "/files/:path*" /files/a/b/c
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"routechain {__version__}",
    )

    # ─────────────────────────────────────────────────────────────────────
    # COMMANDS
    # ─────────────────────────────────────────────────────────────────────

    template_options = argparse.ArgumentParser(add_help=False)
    template_options.add_argument("template", help="Path template, e.g. /users/:id")
    template_options.add_argument(
        "--format", "-f",
        dest="param_format",
        choices=PARAM_FORMATS,
        default=DEFAULT_PARAM_FORMAT,
        help=f"Parameter token format (default: {DEFAULT_PARAM_FORMAT})",
    )
    template_options.add_argument(
        "--case-sensitive",
        action="store_true",
        help="Match letters exactly (default: case-insensitive)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser(
        "compile",
        parents=[template_options],
        help="Print the regex and parameter names for a template",
    )

    match = commands.add_parser(
        "match",
        parents=[template_options],
        help="Match a path against a template and print the parameters",
    )
    match.add_argument("path", help="Concrete request path, e.g. /users/42")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the CLI and return the exit status."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        matcher = compile_path(
            args.template,
            param_format=args.param_format,
            case_sensitive=args.case_sensitive,
        )
    except RouterError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if args.command == "compile":
        print(f"regex:  {matcher.pattern.pattern}")
        print(f"params: {', '.join(matcher.param_names) or '(none)'}")
        return EXIT_OK

    params = matcher(args.path)
    if params is None:
        print("no match")
        return EXIT_NO_MATCH

    print(json.dumps(params, sort_keys=True))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
