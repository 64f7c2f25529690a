"""healthdash -- command-line front end for the BioHealth dashboard widgets.

Usage:
    healthdash ask "What's my heart rate?"
    healthdash chat
    healthdash report --days 7 --output-dir reports
    healthdash chart "Heart Rate"
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from charts import ReportError
from dashboard import ChatMessage, DashboardContext, HealthBotSession, ScanningReports
from metrics import DEFAULT_METRICS, compute_summary
from rules import QUICK_COMMANDS, respond
from settings import DEFAULT_DAYS, OUTPUT_DIR, WELCOME_STEP_DELAYS_S

logger = logging.getLogger("healthdash")

QUIT_WORDS = {"quit", "exit", "bye"}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="%H:%M:%S",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _summary_table(reports: ScanningReports) -> Table:
    t = Table(title="Scanning Reports – Metric Summary", show_lines=True)
    t.add_column("Metric", no_wrap=True)
    t.add_column("Unit", no_wrap=True)
    t.add_column("Days", justify="right", no_wrap=True)
    t.add_column("Min", justify="right", no_wrap=True)
    t.add_column("Max", justify="right", no_wrap=True)
    t.add_column("Mean", justify="right", no_wrap=True)
    t.add_column("Latest", justify="right", no_wrap=True)
    for r in compute_summary(reports.series):
        t.add_row(
            r["metric"],
            r["unit"],
            str(r["days"]),
            f"{r['min']:.1f}",
            f"{r['max']:.1f}",
            f"{r['mean']:.1f}",
            f"{r['latest']:.1f}",
        )
    return t


def _context(args: argparse.Namespace) -> DashboardContext:
    return DashboardContext.create(
        output_dir=Path(args.output_dir),
        metrics=tuple(args.metric or DEFAULT_METRICS),
        days=args.days,
        seed=args.seed,
    )


# -------------------------
# Subcommands
# -------------------------

def cmd_ask(args: argparse.Namespace, console: Console) -> int:
    console.print(respond(" ".join(args.text)))
    return 0


async def _chat_loop(console: Console) -> None:
    ctx = DashboardContext.create()

    def show(message: ChatMessage) -> None:
        if message.kind == "typing":
            console.print("[dim]BioHealth Assistant is typing…[/dim]")
        elif message.sender == "bot":
            console.print(f"[cyan]bot>[/cyan] {message.content}")

    session = HealthBotSession(ctx, on_change=show)
    session.start()
    await asyncio.sleep(ctx.welcome_delay + max(WELCOME_STEP_DELAYS_S) + 0.05)
    console.print(f"[dim]Quick commands: {', '.join(QUICK_COMMANDS)}. Type 'quit' to leave.[/dim]")

    try:
        while True:
            try:
                text = await asyncio.to_thread(console.input, "[bold]you>[/bold] ")
            except EOFError:
                break
            if text.strip().lower() in QUIT_WORDS:
                break
            if session.send(text):
                await asyncio.sleep(ctx.reply_delay + 0.05)
    finally:
        session.teardown()


def cmd_chat(args: argparse.Namespace, console: Console) -> int:
    try:
        asyncio.run(_chat_loop(console))
    except KeyboardInterrupt:
        console.print()
    return 0


def cmd_report(args: argparse.Namespace, console: Console) -> int:
    reports = ScanningReports(_context(args))
    try:
        reports.refresh()
        console.print(_summary_table(reports))
        path = reports.download_all()
    finally:
        reports.teardown()
    if path is None:
        console.print("[red]No report written.[/red]")
        return 1
    console.print(f"PDF generated: {path}")
    return 0


def cmd_chart(args: argparse.Namespace, console: Console) -> int:
    args.metric = [args.name]
    reports = ScanningReports(_context(args))
    try:
        reports.refresh()
        path = reports.download_chart(args.name)
    finally:
        reports.teardown()
    if path is None:
        console.print(f"[red]No chart rendered for {args.name!r}.[/red]")
        return 1
    console.print(f"Chart saved: {path}")
    return 0


def _positive_int(value: str) -> int:
    days = int(value)
    if days < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {days}")
    return days


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="healthdash",
        description="BioHealth dashboard -- assistant chat and scanning reports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  healthdash ask "What's my heart rate?"
  healthdash report --days 7 --seed 42
  healthdash chart "Oxygen Level" --output-dir /tmp/charts
""",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_ask = sub.add_parser("ask", help="Print the assistant's reply to one message")
    p_ask.add_argument("text", nargs="+")
    p_ask.set_defaults(func=cmd_ask)

    p_chat = sub.add_parser("chat", help="Interactive assistant session")
    p_chat.set_defaults(func=cmd_chat)

    def add_report_options(p: argparse.ArgumentParser) -> None:
        p.add_argument("--days", type=_positive_int, default=DEFAULT_DAYS, help=f"Days per series (default: {DEFAULT_DAYS})")
        p.add_argument("--seed", type=int, default=None, help="Seed for reproducible values")
        p.add_argument(
            "--output-dir", type=str, default=str(OUTPUT_DIR),
            help="Where exported files are written (default: reports/)",
        )

    p_report = sub.add_parser("report", help="Generate all charts and export the PDF report")
    add_report_options(p_report)
    p_report.add_argument(
        "--metric", action="append",
        help="Metric to include (repeatable; default: all tracked metrics)",
    )
    p_report.set_defaults(func=cmd_report)

    p_chart = sub.add_parser("chart", help="Export a single metric chart as PNG")
    p_chart.add_argument("name", help="Metric name, e.g. 'Heart Rate'")
    add_report_options(p_chart)
    p_chart.set_defaults(func=cmd_chart)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    console = Console()
    logger.debug("Running %s", args.command)
    try:
        return args.func(args, console)
    except ReportError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        console.print(f"[red]{exc}[/red]")
        return 1


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
