"""
Guidance Rx: Command Line Entry Point
========================================
Weekly AI prescriptions for the guidance office, plus ungated category plans.

Usage:
  python main.py serve                              # Run the HTTP API (uvicorn)
  python main.py check                              # Can we prescribe this week?
  python main.py prescribe --issue "Rising absenteeism in Grade 10" \
                           --context '{"grade": "10", "cases": 14}'
  python main.py history                            # List past prescriptions
  python main.py category --category Bullying --trend increasing
  python main.py report --week 2025-W7 --docx       # Markdown (+ Word) report
"""

import argparse
import json
import logging
import os
import sys
from datetime import datetime

from config import HOST, LOG_DIR, PORT, REPORTS_PATH
from history_store import HistoryStore
from llm_client import GatewayError, LLMClient
from pipeline.category_prescriber import CategoryPrescriber, format_category_prescription
from pipeline.request_validation import ValidationError
from pipeline.response_parser import ParseError
from pipeline.weekly_prescriber import AdmissionDenied, WeeklyPrescriber
from report_renderer import render_docx, render_report


def _setup_logger(tag: str, verbose: bool = False) -> logging.Logger:
    """Configure file + console logging for the guidance_rx namespace.

    File handler always uses UTF-8 and records DEBUG (raw model output).
    Console handler shows INFO, or DEBUG with --verbose.
    """
    os.makedirs(LOG_DIR, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_path = os.path.join(LOG_DIR, f"{tag}_{timestamp}.log")

    logger = logging.getLogger("guidance_rx")
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    fh = logging.FileHandler(log_path, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname)-5s | %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    ))
    logger.addHandler(fh)

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)
    ch.setFormatter(logging.Formatter("  [LOG] %(message)s"))
    logger.addHandler(ch)

    logger.debug(f"Log file: {log_path}")
    return logger


def _print_json(data):
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _weekly(store: HistoryStore) -> WeeklyPrescriber:
    return WeeklyPrescriber(store, LLMClient())


# ----------------------------------------------------------------------
#  Commands
# ----------------------------------------------------------------------

def cmd_serve(args) -> int:
    import uvicorn
    from server import create_app

    try:
        app = create_app()
    except ValueError as e:
        print(f"  Cannot start server: {e}", file=sys.stderr)
        return 2
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def cmd_check(args) -> int:
    store = HistoryStore()
    store.load()
    _print_json(_weekly(store).check_availability())
    return 0


def cmd_prescribe(args) -> int:
    try:
        context = json.loads(args.context) if args.context else {}
    except json.JSONDecodeError as e:
        print(f"  --context is not valid JSON: {e}", file=sys.stderr)
        return 2

    store = HistoryStore()
    store.load()
    try:
        _print_json(_weekly(store).prescribe(args.issue, context, created_by=args.user))
    except ValidationError as e:
        print(f"  Invalid request: {e}", file=sys.stderr)
        return 2
    except AdmissionDenied as e:
        _print_json(e.payload)
        return 1
    except ParseError as e:
        print(f"  Failed to parse AI response: {e}", file=sys.stderr)
        _print_json(e.debug())
        return 1
    except GatewayError as e:
        print(f"  LLM request failed: {e}", file=sys.stderr)
        return 1
    return 0


def cmd_history(args) -> int:
    store = HistoryStore()
    store.load()
    prescriptions = store.newest_first()
    if args.json:
        _print_json({"prescriptions": prescriptions, "total": len(prescriptions)})
        return 0

    print(f"\n  {'WEEK':<10} {'SEVERITY':<9} {'CREATED':<25} ISSUE")
    print("  " + "-" * 76)
    for p in prescriptions:
        severity = (p.get("solution") or {}).get("severity", "?")
        print(f"  {p.get('weekKey', '?'):<10} {severity:<9} {p.get('timestamp', '?'):<25} "
              f"{p.get('issue', '')[:40]}")
    print(f"\n  Total: {len(prescriptions)}\n")
    return 0


def cmd_category(args) -> int:
    stats = {"trend": args.trend, "setting": args.setting, "timeframe": args.timeframe}
    if args.referrals:
        stats["totalReferrals"] = args.referrals
    if args.grades:
        stats["affectedGrades"] = [g.strip() for g in args.grades.split(",") if g.strip()]

    try:
        result = CategoryPrescriber(LLMClient()).generate(args.category, stats)
    except ValidationError as e:
        print(f"  Invalid request: {e}", file=sys.stderr)
        return 2
    except GatewayError as e:
        print(f"  LLM request failed: {e}", file=sys.stderr)
        return 1

    print(format_category_prescription(result))
    return 0


def cmd_report(args) -> int:
    store = HistoryStore()
    store.load()
    if args.week:
        record = store.find_week(args.week)
        if record is None:
            print(f"  No prescription recorded for {args.week}", file=sys.stderr)
            return 1
        records = [record]
    else:
        records = store.prescriptions

    count = 0
    for record in records:
        md_path = render_report(record, args.output)
        print(f"  [Report] {md_path}")
        if args.docx:
            print(f"  [Report] {render_docx(md_path)}")
        count += 1
    print(f"\nReports: {count} generated → {args.output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Guidance Rx: weekly AI intervention prescriptions")
    parser.add_argument("--verbose", action="store_true", help="Show DEBUG logs on the console")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("serve", help="Run the HTTP API")
    p.add_argument("--host", default=HOST)
    p.add_argument("--port", type=int, default=PORT)
    p.set_defaults(func=cmd_serve)

    p = sub.add_parser("check", help="Show whether a prescription is allowed this week")
    p.set_defaults(func=cmd_check)

    p = sub.add_parser("prescribe", help="Create this week's prescription")
    p.add_argument("--issue", required=True, help="Trending issue description")
    p.add_argument("--context", default="", help="Optional JSON object with extra context")
    p.add_argument("--user", default=None, help="Identifier recorded as createdBy")
    p.set_defaults(func=cmd_prescribe)

    p = sub.add_parser("history", help="List past prescriptions (newest first)")
    p.add_argument("--json", action="store_true", help="Print raw JSON")
    p.set_defaults(func=cmd_history)

    p = sub.add_parser("category", help="Sectioned plan for a referral category (ungated)")
    p.add_argument("--category", required=True)
    p.add_argument("--trend", default="increasing", choices=["increasing", "stable", "decreasing"])
    p.add_argument("--setting", default="school")
    p.add_argument("--timeframe", default="this week")
    p.add_argument("--referrals", type=int, default=0, help="Total referrals in timeframe")
    p.add_argument("--grades", default="", help="Comma-separated affected grades")
    p.set_defaults(func=cmd_category)

    p = sub.add_parser("report", help="Render Markdown (and Word) reports")
    p.add_argument("--week", default="", help="Week key, e.g. 2025-W7 (default: all)")
    p.add_argument("--output", default=REPORTS_PATH)
    p.add_argument("--docx", action="store_true", help="Also generate Word report")
    p.set_defaults(func=cmd_report)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    _setup_logger(args.command, verbose=args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
