"""In-memory aggregation of parsed access-log requests."""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field

MAX_LAST_REQUESTS = 10
CLEANUP_THRESHOLD = 10_000
OUTDATED_AFTER_SECONDS = 1200


def _recent_requests() -> deque[str]:
    return deque(maxlen=MAX_LAST_REQUESTS)


@dataclass
class LogEntry:
    """Aggregated statistics for one IP address or one URL."""

    count: int = 0
    last_update: float = field(default_factory=time.time)
    last_requests: deque[str] = field(default_factory=_recent_requests)
    request_type: str = ""
    request_domain: str = ""
    full_url: str = ""

    def record(self, log_line: str, now: float) -> None:
        """Count one more request and remember its line, newest first."""
        self.count += 1
        self.last_update = now
        self.last_requests.appendleft(log_line)


@dataclass
class LogData:
    """Request counters keyed by IP, by URL and by timestamp."""

    by_ip: dict[str, LogEntry] = field(default_factory=dict)
    by_url: dict[str, LogEntry] = field(default_factory=dict)
    total_requests: int = 0
    requests_per_interval: dict[int, int] = field(default_factory=dict)

    def add_entry(
        self,
        ip: str,
        url: str,
        log_line: str,
        timestamp: int,
        request_type: str,
        request_domain: str,
        no_clear: bool,
    ) -> None:
        """Record one request.

        Once more than ``CLEANUP_THRESHOLD`` IPs are tracked, entries not
        updated within ``OUTDATED_AFTER_SECONDS`` are dropped unless
        ``no_clear`` is set.
        """
        now = time.time()

        ip_entry = self.by_ip.get(ip)
        if ip_entry is None:
            ip_entry = LogEntry(
                last_update=now,
                request_type=request_type,
                request_domain=request_domain,
            )
            self.by_ip[ip] = ip_entry
        ip_entry.record(log_line, now)

        url_entry = self.by_url.get(url)
        if url_entry is None:
            url_entry = LogEntry(
                last_update=now,
                request_type=request_type,
                request_domain=request_domain,
            )
            self.by_url[url] = url_entry
        url_entry.record(log_line, now)
        url_entry.full_url = url

        self.total_requests += 1

        if len(self.by_ip) > CLEANUP_THRESHOLD and not no_clear:
            self.clear_outdated_entries()

        self.requests_per_interval[timestamp] = (
            self.requests_per_interval.get(timestamp, 0) + 1
        )

    def clear_outdated_entries(self) -> None:
        """Drop IP and URL entries not updated in the last twenty minutes."""
        threshold = time.time() - OUTDATED_AFTER_SECONDS
        self.by_ip = {k: v for k, v in self.by_ip.items() if v.last_update >= threshold}
        self.by_url = {k: v for k, v in self.by_url.items() if v.last_update >= threshold}

    def get_top_n(
        self, n: int
    ) -> tuple[list[tuple[str, LogEntry]], list[tuple[str, LogEntry]]]:
        """Return the ``n`` busiest IPs and URLs, highest count first."""

        def top(entries: dict[str, LogEntry]) -> list[tuple[str, LogEntry]]:
            ranked = sorted(entries.items(), key=lambda item: item[1].count, reverse=True)
            return ranked[:n]

        return top(self.by_ip), top(self.by_url)

    def get_unique_counts(self) -> tuple[int, int]:
        """Return the number of distinct IPs and distinct URLs."""
        return len(self.by_ip), len(self.by_url)

    def get_last_requests(self, ip: str) -> list[str]:
        """Return the most recent log lines for ``ip``, newest first."""
        entry = self.by_ip.get(ip)
        return list(entry.last_requests) if entry is not None else []