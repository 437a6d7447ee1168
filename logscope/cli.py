"""Command-line entry point: read a log file, then report or show the dashboard."""

from __future__ import annotations

import argparse
import base64
import curses
import logging
import os
import sys
import threading
from pathlib import Path

from .app import App, Key
from .log_data import LogData
from .screen import Screen
from .tailing import tail_file

logger = logging.getLogger(__name__)

DEFAULT_REGEX = r'^(\S+) - ".+" \[(.*?)\] \d+\.\d+ "(\S+)" "(\S+) (\S+?)(?:\?.*?)? '
DEFAULT_DATE_FORMAT = "%d/%b/%Y:%H:%M:%S %z"
LOG_FILE = "app.log"
POLL_MILLISECONDS = 100
FOLLOW_INTERVAL_SECONDS = 1.0

_SPECIAL_KEYS = {
    curses.KEY_UP: Key.UP,
    curses.KEY_DOWN: Key.DOWN,
    curses.KEY_LEFT: Key.LEFT,
    curses.KEY_RIGHT: Key.RIGHT,
    curses.KEY_ENTER: Key.ENTER,
    curses.KEY_BACKSPACE: Key.BACKSPACE,
    "\n": Key.ENTER,
    "\r": Key.ENTER,
    "\t": Key.TAB,
    "\x7f": Key.BACKSPACE,
    "\b": Key.BACKSPACE,
}


def load_regex(value: str) -> str:
    """Return the contents of the file named ``value``, or ``value`` itself.

    Raises ``OSError`` when the file exists but cannot be read.
    """
    if os.path.exists(value):
        return Path(value).read_text(encoding="utf-8")
    return value


def _report_row(first: object, second: object, third: object, width: int) -> str:
    return f"{first!s:<{width}} | {second!s:<10} | {third!s:<10}"


def _report_rule(width: int) -> str:
    return f"{'-' * width}-+-{'-' * 10}-+-{'-' * 10}"


def render_report(log_data: LogData, top: int, show_urls: bool, show_ips: bool) -> str:
    """Plain-text tables of the busiest URLs and/or IPs."""
    top_ips, top_urls = log_data.get_top_n(top)
    unique_ips, unique_urls = log_data.get_unique_counts()
    lines: list[str] = []

    if show_urls:
        lines += [
            "",
            f"Top {top} URLs (total unique: {unique_urls}):",
            _report_row("URL", "Requests", "Type", 50),
            _report_rule(50),
        ]
        lines += [_report_row(url, entry.count, entry.request_type, 50) for url, entry in top_urls]

    if show_ips:
        lines += [
            "",
            f"Top {top} IPs (total unique: {unique_ips}):",
            _report_row("IP", "Requests", "Type", 15),
            _report_rule(15),
        ]
        lines += [_report_row(ip, entry.count, entry.request_type, 15) for ip, entry in top_ips]

    return "\n".join(lines) + "\n" if lines else ""


def osc52_clipboard(text: str) -> None:
    """Ask the terminal to put ``text`` on the clipboard (OSC 52 sequence)."""
    payload = base64.b64encode(text.encode("utf-8")).decode("ascii")
    sys.stdout.write(f"\x1b]52;c;{payload}\x07")
    sys.stdout.flush()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="logscope",
        description="A tool to analyze Nginx access logs.",
    )
    parser.add_argument("file", type=Path, help="Path to the log file")
    parser.add_argument(
        "-c",
        "--count",
        type=int,
        default=0,
        help="Number of lines to read from the end of the file "
        "(0 to start from the end, -1 to read the entire file)",
    )
    parser.add_argument(
        "-r",
        "--regex",
        default=DEFAULT_REGEX,
        help="Regular expression to parse the log entries or path to a file containing the regex",
    )
    parser.add_argument(
        "-d",
        "--date-format",
        default=DEFAULT_DATE_FORMAT,
        help="Date format to parse the log entries",
    )
    parser.add_argument(
        "-t", "--top", type=int, default=10, help="Number of top entries to display"
    )
    parser.add_argument(
        "--no-clear", action="store_true", help="Disable clearing of outdated entries"
    )
    parser.add_argument("--show-urls", action="store_true", help="Show top URLs in console")
    parser.add_argument("--show-ips", action="store_true", help="Show top IPs in console")
    parser.add_argument("--log-to-file", action="store_true", help="Enable logging to a file")
    return parser


def _configure_logging(log_to_file: bool) -> None:
    if log_to_file:
        handler = logging.FileHandler(LOG_FILE, mode="w", encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        root = logging.getLogger()
        root.addHandler(handler)
        root.setLevel(logging.INFO)
    else:
        logging.basicConfig(level=logging.ERROR)


def _print_progress(progress: float) -> None:
    sys.stderr.write(f"\rReading file: {progress * 100.0:.1f}%")
    sys.stderr.flush()


def _translate_key(key: str | int) -> tuple[Key | str, bool] | None:
    """Turn a curses key into an ``App.handle_input`` argument pair."""
    if key == "\x03":
        return "c", True
    special = _SPECIAL_KEYS.get(key)
    if special is not None:
        return special, False
    if isinstance(key, str) and key.isprintable():
        return key, False
    return None


def _run_dashboard(window, app: App, args: argparse.Namespace, regex_pattern: str) -> None:
    try:
        curses.curs_set(0)
    except curses.error:
        pass
    curses.raw()
    window.keypad(True)
    window.timeout(POLL_MILLISECONDS)
    screen = Screen(window)
    stop = threading.Event()

    def follow() -> None:
        last_line: int | None = None
        while not stop.is_set():
            try:
                with app.lock:
                    last_line = tail_file(
                        args.file,
                        0,
                        regex_pattern,
                        args.date_format,
                        app.log_data,
                        args.no_clear,
                        last_line,
                        app.set_progress,
                    )
            except (OSError, ValueError) as exc:
                logger.error("Error reading file: %s", exc)
            stop.wait(FOLLOW_INTERVAL_SECONDS)

    follower = threading.Thread(target=follow, name="log-follower", daemon=True)
    follower.start()
    try:
        while not app.should_quit:
            window.erase()
            app.draw(screen)
            window.refresh()
            try:
                key = window.get_wch()
            except curses.error:
                continue
            translated = _translate_key(key)
            if translated is not None:
                app.handle_input(*translated)
    finally:
        stop.set()
        follower.join()


def main(argv: list[str] | None = None) -> int:
    """Run the command; returns the process exit status."""
    args = _build_parser().parse_args(argv)

    try:
        _configure_logging(args.log_to_file)
    except OSError as exc:
        print(f"Error: Unable to create log file: {exc}", file=sys.stderr)
        return 1

    try:
        regex_pattern = load_regex(args.regex)
    except OSError as exc:
        print(f"Error: Could not read regex file: {exc}", file=sys.stderr)
        return 1

    log_data = LogData()
    try:
        tail_file(
            args.file,
            args.count,
            regex_pattern,
            args.date_format,
            log_data,
            args.no_clear,
            None,
            _print_progress,
        )
    except (OSError, ValueError) as exc:
        print(f"Error: Error reading file: {exc}", file=sys.stderr)
        return 1

    if args.show_urls or args.show_ips:
        sys.stdout.write(render_report(log_data, args.top, args.show_urls, args.show_ips))
        return 0

    app = App(log_data, args.top, osc52_clipboard)
    try:
        curses.wrapper(_run_dashboard, app, args, regex_pattern)
    except curses.error as exc:
        print(f"Error: Failed to run terminal interface: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())