from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from cninfo_watch import monitor, watcher
from cninfo_watch.collector import CollectorOptions, ReportCollector
from cninfo_watch.config import Settings
from cninfo_watch.context import RunContext
from cninfo_watch.errors import CninfoError
from cninfo_watch.retry import NO_RETRY, WATCHER_MAIL

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _add_common_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--codes", help="Comma-separated stock codes, e.g. 000001,000002.")
    parser.add_argument("--data-dir", type=Path, help="Directory for stored history files.")
    parser.add_argument("--smtp-addr", help="Notification SMTP relay as host:port.")
    parser.add_argument("--smtp-user", help="Notification SMTP user (also the recipient).")
    parser.add_argument("--smtp-pass", help="Notification SMTP password.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cninfo-watch",
        description="Track cninfo announcements and dividends for listed stocks.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    watch = commands.add_parser("watch", help="Diff stored history against cninfo once.")
    _add_common_flags(watch)
    watch.add_argument("--stock", action="store_true", help="Refresh the stock list file.")
    watch.add_argument("--report", action="store_true", help="Check annual-report announcements.")
    watch.add_argument("--dividend", action="store_true", help="Check dividend records.")

    mon = commands.add_parser("monitor", help="Check dividends of the configured stocks.")
    _add_common_flags(mon)
    mon.add_argument(
        "--loop",
        action="store_true",
        help="Keep running and check every day at the trigger hour.",
    )

    collect = commands.add_parser("collect", help="Collect annual reports into a JSON database.")
    _add_common_flags(collect)
    span = collect.add_mutually_exclusive_group()
    span.add_argument("--since-2000", action="store_true", help="Search since year 2000.")
    span.add_argument(
        "--latest-three-years",
        action="store_true",
        help="Search the latest three years (default).",
    )
    span.add_argument("--years", type=int, nargs="+", default=[], help="Report years to collect.")
    collect.add_argument("--db", type=Path, help="Database file.")
    collect.add_argument("--download", action="store_true", help="Download report PDFs.")
    collect.add_argument("--download-dir", type=Path, help="Directory for downloaded PDFs.")
    collect.add_argument(
        "--check-interval",
        type=int,
        help="Seconds before a stock's annual reports are checked again.",
    )
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    overrides: dict[str, object] = {}
    if args.codes:
        overrides["codes"] = tuple(
            dict.fromkeys(code.strip() for code in args.codes.split(",") if code.strip())
        )
    if args.smtp_addr:
        overrides["smtp_addr"] = args.smtp_addr
    if args.smtp_user:
        overrides["smtp_user"] = args.smtp_user
    if args.smtp_pass:
        overrides["smtp_pass"] = args.smtp_pass
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    if getattr(args, "db", None):
        overrides["db_path"] = args.db
    if getattr(args, "download_dir", None):
        overrides["download_dir"] = args.download_dir
    if getattr(args, "check_interval", None) is not None:
        overrides["check_interval_seconds"] = args.check_interval
    return replace(settings, **overrides)


def run_watch(settings: Settings, args: argparse.Namespace) -> str:
    ctx = RunContext.build(settings, mail_retry=WATCHER_MAIL)
    listing = watcher.refresh_stock_list(ctx) if args.stock else None
    if not args.report and not args.dividend:
        if listing is None:
            return "nothing to do, pass --stock, --report or --dividend."
        return f"stock list refreshed. count={len(listing)}"

    stocks = watcher.load_watch_list(ctx, listing)
    if not stocks:
        return "no watch stock."
    ctx = replace(ctx, stocks=stocks)

    messages: list[str] = []
    if args.report:
        messages.append("report " + watcher.run_reports(ctx).message)
    if args.dividend:
        messages.append("dividend " + watcher.run_dividends(ctx).message)
    return "; ".join(messages)


def run_monitor(settings: Settings, args: argparse.Namespace) -> str:
    ctx = RunContext.build(settings, mail_retry=NO_RETRY)
    ticks = monitor.run(ctx, loop=args.loop)
    return f"dividend check done. ticks={ticks}"


def run_collect(settings: Settings, args: argparse.Namespace) -> str:
    ctx = RunContext.build(settings)
    options = CollectorOptions(
        since_2000=args.since_2000,
        years=tuple(args.years),
        download=args.download,
    )
    return ReportCollector(ctx, options).run().message


COMMANDS = {
    "watch": run_watch,
    "monitor": run_monitor,
    "collect": run_collect,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = apply_overrides(Settings.from_env(data_dir=args.data_dir), args)
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    try:
        message = COMMANDS[args.command](settings, args)
    except CninfoError as exc:
        print(f"[error] {exc}", file=sys.stderr)
        return 1

    print(f"[{args.command}] {message}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
