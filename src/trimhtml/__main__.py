"""Command line interface: ``python -m trimhtml``.

Reads markup from FILE (or stdin) and writes the sanitized document to stdout.

Examples:
    python -m trimhtml page.html -r p -r a -r "a|href"
    python -m trimhtml --rules-file rules.txt < page.html
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .errors import EnvironmentUnavailableError
from .policy import DEFAULT_MAX_PASSES, SanitizerConfig, compile_rules
from .sanitize import sanitize_with_policy


def read_rules_file(path: str) -> list[str]:
    """One rule per line; blank lines and lines starting with '#' are skipped."""
    rules = []
    for line in Path(path).read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if stripped and not stripped.startswith("#"):
            rules.append(stripped)
    return rules


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trimhtml",
        description="Reduce HTML to the subset allowed by a list of rules",
    )
    parser.add_argument("file", nargs="?", help="Input HTML file (default: stdin)")
    parser.add_argument(
        "-r",
        "--rule",
        dest="rules",
        action="append",
        default=[],
        metavar="RULE",
        help="Allow rule: TAG, TAG|ATTR or style|SELECTOR|PROPERTY (repeatable)",
    )
    parser.add_argument("--rules-file", metavar="PATH", help="Read additional rules from PATH, one per line")
    parser.add_argument(
        "--allow-common-attributes",
        action="store_true",
        help="Also allow class/id everywhere and common link/image attributes",
    )
    parser.add_argument(
        "--allow-javascript",
        action="store_true",
        help="Keep allowed scripts and event handlers, skip URL checks",
    )
    parser.add_argument(
        "--max-passes",
        type=int,
        default=DEFAULT_MAX_PASSES,
        help=f"Maximum number of filtering passes (default: {DEFAULT_MAX_PASSES})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    rules = list(args.rules)
    if args.rules_file:
        try:
            rules.extend(read_rules_file(args.rules_file))
        except OSError as exc:
            parser.error(f"cannot read rules file: {exc}")

    if args.file:
        try:
            html = Path(args.file).read_text(encoding="utf-8")
        except OSError as exc:
            parser.error(f"cannot read input: {exc}")
    else:
        html = sys.stdin.read()

    config = SanitizerConfig(
        allow_common_attributes=args.allow_common_attributes,
        allow_javascript=args.allow_javascript,
        max_passes=args.max_passes,
    )

    try:
        output = sanitize_with_policy(html, compile_rules(rules, config))
    except EnvironmentUnavailableError as exc:
        print(f"trimhtml: {exc}", file=sys.stderr)
        return 1

    sys.stdout.write(output)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
