"""Reading access-log files and feeding matching lines into ``LogData``."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Callable
from datetime import datetime, timezone
from functools import lru_cache
from typing import BinaryIO, Optional

from .log_data import LogData

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]

_FALLBACK_DATE_FORMAT = "%d/%b/%Y:%H:%M %S"


@lru_cache(maxsize=32)
def _compile(pattern: str) -> re.Pattern[str]:
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise ValueError(f"invalid regular expression {pattern!r}: {exc}") from exc


def _report(
    progress: Optional[ProgressCallback], done: float, total: float, cap: float
) -> None:
    """Send the ratio ``done / total``, capped at ``cap``, to ``progress`` if set."""
    if progress is None:
        return
    ratio = cap if total <= 0 else min(done / total, cap)
    progress(ratio)


def _read_lines(reader: BinaryIO):
    """Yield each remaining line (newline kept) with its size in bytes."""
    for raw in iter(reader.readline, b""):
        yield raw.decode("utf-8"), len(raw)


def parse_datetime(datetime_str: str, date_format: str) -> datetime:
    """Parse a timestamp that carries a UTC offset.

    A format that yields no offset is not accepted. When neither the given
    format nor the fallback matches, the current UTC time is returned.
    """
    for fmt in (date_format, _FALLBACK_DATE_FORMAT):
        try:
            parsed = datetime.strptime(datetime_str, fmt)
        except ValueError:
            continue
        if parsed.tzinfo is not None:
            return parsed
    return datetime.now(timezone.utc)


def process_line(
    line: str,
    regex_pattern: str,
    date_format: str,
    log_data: LogData,
    no_clear: bool,
) -> None:
    """Parse one log line and record it; lines that do not match are logged.

    Capture groups 1-5 are the IP, the date, the domain, the request type and
    the URL. Raises ``ValueError`` if ``regex_pattern`` is not a valid
    expression.
    """
    match = _compile(regex_pattern).search(line)
    if match is None:
        logger.error("No match for line: %s", line)
        return

    groups = [group or "" for group in match.groups()[:5]]
    groups += [""] * (5 - len(groups))
    ip, datetime_str, request_domain, request_type, url = groups

    moment = parse_datetime(datetime_str, date_format)
    log_data.add_entry(
        ip,
        url,
        line,
        int(moment.timestamp()),
        request_type,
        request_domain,
        no_clear,
    )


def tail_file(
    file_path: str | os.PathLike[str],
    count: int,
    regex_pattern: str,
    date_format: str,
    log_data: LogData,
    no_clear: bool,
    last_processed_line: int | None = None,
    progress_callback: ProgressCallback | None = None,
) -> int | None:
    """Read a log file into ``log_data`` and return the last line number read.

    With ``last_processed_line`` set, lines up to it are skipped. Otherwise a
    positive ``count`` reads that many lines from the end, ``-1`` reads the
    whole file, and any other value only notes where the file ends. In every
    case lines after the starting point are then processed.
    """
    progress = progress_callback

    with open(file_path, "rb") as reader:
        file_size = float(os.fstat(reader.fileno()).st_size)
        last_processed = last_processed_line

        if last_processed_line is not None:
            _skip_lines(reader, last_processed_line, progress, file_size)
        elif count > 0:
            last_processed = _process_last_n_lines(
                reader, count, regex_pattern, date_format, log_data, no_clear, progress
            )
        elif count == -1:
            reader.seek(0)
            last_processed = _process_lines(
                reader, 0, regex_pattern, date_format, log_data, no_clear, progress, file_size
            )
        else:
            last_processed = _count_lines(reader)

        new_last = _process_lines(
            reader,
            last_processed or 0,
            regex_pattern,
            date_format,
            log_data,
            no_clear,
            progress,
            file_size,
        )
    return new_last if new_last is not None else last_processed


def _count_lines(reader: BinaryIO) -> int:
    reader.seek(0)
    text = reader.read().decode("utf-8")
    return text.count("\n") + (1 if text and not text.endswith("\n") else 0)


def _skip_lines(
    reader: BinaryIO,
    line_count: int,
    progress: Optional[ProgressCallback],
    file_size: float,
) -> None:
    processed_bytes = 0
    for _ in range(line_count):
        raw = reader.readline()
        if not raw:
            break
        processed_bytes += len(raw)
        _report(progress, processed_bytes, file_size, 100.0)


def _process_last_n_lines(
    reader: BinaryIO,
    count: int,
    regex_pattern: str,
    date_format: str,
    log_data: LogData,
    no_clear: bool,
    progress: Optional[ProgressCallback],
) -> int | None:
    lines = [line for line, _ in _read_lines(reader)]
    total = len(lines)
    start = max(total - count, 0)
    last_processed: int | None = None

    for processed, line in enumerate(lines[start:], start=1):
        process_line(line, regex_pattern, date_format, log_data, no_clear)
        _report(progress, processed, total, 1.0)
        last_processed = start + processed

    reader.seek(0)
    for _ in range(last_processed or 0):
        reader.readline()
    return last_processed


def _process_lines(
    reader: BinaryIO,
    line_number: int,
    regex_pattern: str,
    date_format: str,
    log_data: LogData,
    no_clear: bool,
    progress: Optional[ProgressCallback],
    file_size: float,
) -> int | None:
    """Process lines from the current position; return the new line number."""
    processed_bytes = 0
    last_processed: int | None = None
    for line, size in _read_lines(reader):
        process_line(line, regex_pattern, date_format, log_data, no_clear)
        processed_bytes += size
        _report(progress, processed_bytes, file_size, 1.0)
        line_number += 1
        last_processed = line_number
    return last_processed