"""Dashboard state: tabs, selections, search and keyboard handling."""

from __future__ import annotations

import enum
import logging
import math
import textwrap
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from .log_data import LogData, LogEntry
from .widgets import (
    ListState,
    Rect,
    format_ip_item,
    format_timestamp,
    format_url_item,
    generate_heatmap_cells,
    sparkline_bounds,
)

logger = logging.getLogger(__name__)

TAB_TITLES = ("Overview", "Requests", "Detailed", "Sparkline", "Heatmap")
PAGE_SIZE = 100
MODAL_SECONDS = 1.5

Clipboard = Callable[[str], None]


class Key(enum.Enum):
    """Non-character keys the dashboard reacts to."""

    UP = enum.auto()
    DOWN = enum.auto()
    LEFT = enum.auto()
    RIGHT = enum.auto()
    ENTER = enum.auto()
    TAB = enum.auto()
    BACKSPACE = enum.auto()


@dataclass
class _Modal:
    message: str
    show_until: float


def _inset(area: Rect, margin: int) -> Rect:
    width = max(area.width - 2 * margin, 0)
    height = max(area.height - 2 * margin, 0)
    return Rect(area.x + margin, area.y + margin, width, height)


def _split_top(area: Rect, height: int) -> tuple[Rect, Rect]:
    h = min(height, area.height)
    return (
        Rect(area.x, area.y, area.width, h),
        Rect(area.x, area.y + h, area.width, area.height - h),
    )


def _columns(area: Rect, percents: tuple[int, ...]) -> list[Rect]:
    rects = []
    x = area.x
    used = 0
    for index, percent in enumerate(percents):
        used += percent
        end = area.x + area.width if index == len(percents) - 1 else area.x + area.width * used // 100
        rects.append(Rect(x, area.y, end - x, area.height))
        x = end
    return rects


def _wrap(text: str, area: Rect) -> str:
    width = max(int(area.width * 0.7) - 5, 1)
    return "\n".join(textwrap.wrap(text, width))


def _utc(timestamp: int) -> datetime:
    return datetime.fromtimestamp(timestamp, timezone.utc)


class App:
    """Holds what the dashboard shows and reacts to key presses.

    ``lock`` guards ``log_data``; whoever feeds new lines into it from another
    thread should hold the same lock. ``clipboard`` receives copied text and
    may raise ``OSError`` when copying fails; with ``None`` nothing is copied.
    """

    def __init__(self, log_data: LogData, top_n: int, clipboard: Clipboard | None = None) -> None:
        self.log_data = log_data
        self.top_n = top_n
        self.clipboard = clipboard
        self.lock = threading.RLock()
        self.should_quit = False
        self.current_tab = 0
        self.last_requests_state = ListState()
        self.ip_list_state = ListState()
        self.request_list_state = ListState()
        self.top_ip_state = ListState()
        self.top_url_state = ListState()
        self.search_input = ""
        self.current_page = 0
        self.total_pages = 0
        self.progress = 0.0
        self.overview_panel = 0
        self.modal: _Modal | None = None

    def set_progress(self, progress: float) -> None:
        """Store loading progress, kept within 0..100."""
        self.progress = min(max(progress, 0.0), 100.0)

    # -- input ------------------------------------------------------------

    def handle_input(self, key: Key | str, ctrl: bool = False) -> None:
        """React to one key press; ``key`` is a ``Key`` or a typed character."""
        if key == "q" or (key == "c" and ctrl):
            self.should_quit = True
        elif key is Key.ENTER:
            if self.current_tab == 0:
                self._copy_selected()
        elif key is Key.UP:
            self._move(forward=False)
        elif key is Key.DOWN:
            self._move(forward=True)
        elif key is Key.TAB or key == "t":
            self.current_tab = (self.current_tab + 1) % len(TAB_TITLES)
        elif key is Key.LEFT:
            self._on_left()
        elif key is Key.RIGHT:
            self._on_right()
        elif key is Key.BACKSPACE:
            self.last_requests_state.select(None)
            self.search_input = self.search_input[:-1]
        elif isinstance(key, str) and key:
            self.last_requests_state.select(None)
            self.search_input += key

    def _move(self, forward: bool) -> None:
        if self.current_tab == 0:
            state = self.top_ip_state if self.overview_panel == 0 else self.top_url_state
        elif self.current_tab == 1:
            state = self.last_requests_state
        elif self.current_tab == 2:
            if self.request_list_state.selected is not None:
                state = self.request_list_state
            else:
                state = self.ip_list_state
        else:
            return
        if forward:
            state.select_next()
        else:
            state.select_previous()

    def _on_left(self) -> None:
        if self.current_tab == 0:
            if self.overview_panel > 0:
                self.overview_panel -= 1
                self.top_url_state.select(None)
                self.top_ip_state.select(0)
        elif self.current_tab == 1:
            if self.current_page > 0:
                self.current_page -= 1
                self.last_requests_state.select_first()
        elif self.current_tab == 2:
            self.request_list_state.select(None)

    def _on_right(self) -> None:
        if self.current_tab == 0:
            if self.overview_panel < 1:
                self.overview_panel += 1
                self.top_ip_state.select(None)
                self.top_url_state.select(0)
        elif self.current_tab == 1:
            if self.current_page + 1 < self.total_pages:
                self.current_page += 1
                self.last_requests_state.select_first()
        elif self.current_tab == 2:
            if self.ip_list_state.selected is not None:
                self.request_list_state.select(0)

    def _copy_selected(self) -> None:
        with self.lock:
            top_ips, top_urls = self.log_data.get_top_n(self.top_n)
            if self.overview_panel == 0:
                chosen = self._pick(top_ips, self.top_ip_state)
                if chosen is None:
                    return
                ip, entry = chosen
                text = (
                    f"IP: {ip}\nRequests: {entry.count}\n"
                    f"Last Update: {format_timestamp(entry.last_update)}"
                )
                message = f"IP address copied: {ip}"
            elif self.overview_panel == 1:
                chosen = self._pick(top_urls, self.top_url_state)
                if chosen is None:
                    return
                url, entry = chosen
                text = (
                    f"URL: {url}\nType: {entry.request_type}\n"
                    f"Domain: {entry.request_domain}\nRequests: {entry.count}\n"
                    f"Last Update: {format_timestamp(entry.last_update)}"
                )
                message = f"URL copied\n{url}"
            else:
                return

        if self.clipboard is None:
            return
        try:
            self.clipboard(text)
        except OSError as exc:
            logger.error("Clipboard copy failed: %s", exc)
            return
        self.modal = _Modal(message, time.monotonic() + MODAL_SECONDS)

    @staticmethod
    def _pick(
        items: list[tuple[str, LogEntry]], state: ListState
    ) -> tuple[str, LogEntry] | None:
        selected = state.selected
        if selected is None or selected <= 0 or selected - 1 >= len(items):
            return None
        return items[selected - 1]

    # -- data -------------------------------------------------------------

    def summary_text(self) -> str:
        """Header line with totals and the current local time."""
        with self.lock:
            unique_ips, unique_urls = self.log_data.get_unique_counts()
            total = self.log_data.total_requests
        now = datetime.now()
        return (
            f"Requests: {total} | Unique IPs: {unique_ips} | "
            f"Unique URLs: {unique_urls} | Update: {now:%Y-%m-%d %H:%M:%S}"
        )

    def search_results(self) -> list[str]:
        """Recent request lines of every IP, filtered by the search text."""
        with self.lock:
            lines = [
                request
                for entry in self.log_data.by_ip.values()
                for request in entry.last_requests
            ]
        if self.search_input:
            return [line for line in lines if self.search_input in line]
        return lines

    # -- drawing ----------------------------------------------------------

    def draw(self, screen) -> None:
        """Draw the header, the current tab and any pending popup."""
        inner = _inset(screen.area(), 1)
        header, body = _split_top(inner, 3)
        tabs_rect, summary_rect, progress_rect = _columns(header, (30, 60, 10))

        screen.draw_tabs(list(TAB_TITLES), self.current_tab, "Navigation", tabs_rect)
        screen.draw_summary(self.summary_text(), summary_rect)
        screen.draw_progress_bar(self.progress, progress_rect)

        drawers = (
            self._draw_overview,
            self._draw_last_requests,
            self._draw_detailed_requests,
            self._draw_sparkline,
            self._draw_heatmap,
        )
        drawers[self.current_tab](screen, body)

        if self.modal is not None:
            if time.monotonic() > self.modal.show_until:
                self.modal = None
            else:
                screen.draw_modal(self.modal.message)

    def _draw_overview(self, screen, area: Rect) -> None:
        with self.lock:
            top_ips, top_urls = self.log_data.get_top_n(self.top_n)
            ip_items = [format_ip_item(ip, entry) for ip, entry in top_ips]
            url_items = [(format_url_item(url, entry), entry) for url, entry in top_urls]
        screen.draw_overview(
            area,
            ip_items,
            url_items,
            self.overview_panel,
            self.top_ip_state,
            self.top_url_state,
        )

    def _draw_last_requests(self, screen, area: Rect) -> None:
        results = self.search_results()
        self.total_pages = math.ceil(len(results) / PAGE_SIZE)
        start = self.current_page * PAGE_SIZE
        items = [_wrap(request, area) for request in results[start:start + PAGE_SIZE]]
        screen.draw_last_requests(
            area,
            items,
            self.search_input,
            self.current_page,
            self.total_pages,
            self.last_requests_state,
        )

    def _draw_detailed_requests(self, screen, area: Rect) -> None:
        with self.lock:
            top_ips = sorted(
                self.log_data.get_top_n(self.top_n)[0],
                key=lambda item: item[1].count,
                reverse=True,
            )
            ip_items = [format_ip_item(ip, entry) for ip, entry in top_ips]
            selected = self.ip_list_state.selected
            selected_ip = (
                top_ips[selected][0]
                if selected is not None and 0 <= selected < len(top_ips)
                else None
            )
            request_items = (
                [_wrap(request, area) for request in self.log_data.get_last_requests(selected_ip)]
                if selected_ip is not None
                else []
            )
        screen.draw_detailed_requests(
            area,
            ip_items,
            request_items,
            selected_ip,
            self.ip_list_state,
            self.request_list_state,
        )
        if self.ip_list_state.selected is None:
            self.ip_list_state.select(0)

    def _draw_sparkline(self, screen, area: Rect) -> None:
        with self.lock:
            sorted_data = sorted(self.log_data.requests_per_interval.items(), reverse=True)
        data = [value for _, value in sorted_data][: max(area.width, 0)]
        if not data:
            return
        min_value, max_value, start_time, end_time = sparkline_bounds(data, sorted_data)
        screen.draw_requests_sparkline(area, data, min_value, max_value, start_time, end_time)

    def _draw_heatmap(self, screen, area: Rect) -> None:
        with self.lock:
            sorted_data = list(self.log_data.requests_per_interval.items())

        def slot(item: tuple[int, int]):
            moment = _utc(item[0])
            return moment.date(), moment.hour

        sorted_data.sort(key=slot)
        values = [value for _, value in sorted_data]
        min_value = min(values, default=0)
        max_value = max(values, default=1)
        unique_dates = sorted({_utc(timestamp).date() for timestamp, _ in sorted_data})

        cells = generate_heatmap_cells(sorted_data, min_value, max_value, unique_dates)
        x_labels = [(hour + 1.7, f"{hour:02}:00") for hour in range(24)]
        y_labels = [
            (index + 1.0, day.strftime("%Y-%m-%d")) for index, day in enumerate(unique_dates)
        ]
        screen.render_heatmap(area, cells, x_labels, y_labels, min_value, max_value)