"""
Command-line interface: parse a timetable or substitution plan and export to file.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path

from . import __version__
from .class_link import ClassMismatchError, resolve_class_link
from .export import export
from .schedule_html import parse_schedule
from .substitution_fetch import FetchError, fetch_substitution_plan
from .substitution_html import parse_substitution_plan


def _parse_day(value: str | None, flag: str) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{flag} must be YYYY-MM-DD, got {value!r}")


def _read(path: str) -> str:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"File not found: {p}")
    return p.read_text(encoding="utf-8", errors="ignore")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description=(
            "Export a school timetable or substitution plan to ICS / CSV / JSON.\n"
            "- Timetable mode: parse a saved HTML page or extracted PDF text.\n"
            "- Substitution mode: fetch a plan URL or parse a saved plan page."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-o",
        "--output",
        default="stundenplan",
        help="Output path (without extension). Default: stundenplan",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["ics", "csv", "json"],
        default="ics",
        help="Export format. Default: ics",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--schedule-html",
        metavar="HTML_PATH",
        help="Saved timetable page.",
    )
    mode.add_argument(
        "--schedule-text",
        metavar="TEXT_PATH",
        help="Text extracted from a timetable PDF (pages separated by form feeds).",
    )
    mode.add_argument(
        "--substitution-url",
        metavar="URL",
        help="Substitution plan URL: daily page, class page, or index page (needs --class).",
    )
    mode.add_argument(
        "--substitution-html",
        metavar="HTML_PATH",
        help="Saved substitution plan page.",
    )
    mode.add_argument(
        "--resolve-link",
        metavar="INDEX_HTML_PATH",
        help="Print the detail-page link for --class found on a saved index page, then exit.",
    )

    parser.add_argument("--class", dest="class_name", default="", help="Class name, e.g. 12Fo-b.")
    parser.add_argument(
        "--daily",
        action="store_true",
        help="(--substitution-html) The page lists all classes; keep only rows of --class.",
    )
    parser.add_argument(
        "--source-url",
        default="",
        help="(--substitution-html) URL the saved page came from; used for entry ids.",
    )
    parser.add_argument(
        "--base-url",
        default="",
        help="(--resolve-link) URL of the index page, to make relative links absolute.",
    )
    parser.add_argument(
        "--term-start",
        metavar="YYYY-MM-DD",
        help="(ICS) First school day; weekly lessons start from here. Default: today.",
    )
    parser.add_argument(
        "--term-end",
        metavar="YYYY-MM-DD",
        help="(ICS) Last school day; weekly lessons repeat until here.",
    )
    parser.add_argument(
        "--diagnostics",
        action="store_true",
        help="Print parse diagnostics (JSON) to stderr; included in JSON output.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log fetch steps.")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        term_start = _parse_day(args.term_start, "--term-start")
        term_end = _parse_day(args.term_end, "--term-end")
    except argparse.ArgumentTypeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        if args.resolve_link:
            if not args.class_name:
                print("Error: --resolve-link requires --class.", file=sys.stderr)
                return 1
            resolution = resolve_class_link(_read(args.resolve_link), args.class_name, args.base_url)
            if not resolution.resolved:
                print(f"No link found for {args.class_name} ({resolution.strategy})", file=sys.stderr)
                return 1
            print(resolution.url)
            print(f"strategy: {resolution.strategy}", file=sys.stderr)
            return 0

        if args.schedule_html or args.schedule_text:
            if args.schedule_html:
                result = parse_schedule(html=_read(args.schedule_html))
            else:
                result = parse_schedule(text=_read(args.schedule_text).split("\f"))
        elif args.substitution_url:
            print(f"Fetching {args.substitution_url} ...")
            result = fetch_substitution_plan(args.substitution_url, args.class_name)
        elif args.substitution_html:
            result = parse_substitution_plan(
                _read(args.substitution_html),
                args.source_url or Path(args.substitution_html).name,
                args.class_name,
                is_daily_page=args.daily,
            )
        else:
            print(
                "No mode specified. Use --schedule-html, --schedule-text, --substitution-url, "
                "--substitution-html or --resolve-link.",
                file=sys.stderr,
            )
            return 1
    except (ClassMismatchError, FetchError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    diagnostics = result.diagnostics.to_dict()
    if args.diagnostics:
        print(json.dumps(diagnostics, indent=2, ensure_ascii=False), file=sys.stderr)

    ext = {"ics": ".ics", "csv": ".csv", "json": ".json"}[args.format]
    out_path = Path(args.output).with_suffix(ext) if Path(args.output).suffix else Path(args.output + ext)
    count = export(
        result.entries,
        out_path,
        args.format,
        term_start=term_start,
        term_end=term_end,
        diagnostics=diagnostics if args.diagnostics else None,
    )
    print(f"Exported {count} entr{'y' if count == 1 else 'ies'} to {out_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
