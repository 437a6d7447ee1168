"""Curses rendering of the log dashboard panels."""

from __future__ import annotations

import curses
import textwrap
from collections.abc import Sequence
from dataclasses import dataclass
from itertools import accumulate

from .log_data import LogEntry
from .widgets import (
    ACCENT_COLOR,
    GRID_COLOR,
    HEADER_COLOR,
    INACTIVE_COLOR,
    RGB,
    SELECTED_BG_COLOR,
    TEXT_COLOR,
    HeatCell,
    ListState,
    Rect,
    format_ip_header,
    format_url_header,
    heatmap_color,
    heatmap_info,
    popup_area,
    sparkline_stats,
    sparkline_title,
)

WHITE: RGB = (255, 255, 255)
GAUGE_COLOR: RGB = (0, 255, 0)
MODAL_SUBTEXT_COLOR: RGB = (200, 200, 200)

BAR_LEVELS = " ▁▂▃▄▅▆▇█"
HEATMAP_X_MAX = 25.5

Row = tuple[str, int]


class _Palette:
    """Turns RGB colours into curses attributes, degrading when colour is absent."""

    def __init__(self) -> None:
        self._pairs: dict[tuple[int, int], int] = {}
        self._enabled = False
        self._colors = 8
        self._pair_limit = 0
        self._default_fg = curses.COLOR_WHITE
        self._default_bg = curses.COLOR_BLACK
        try:
            if curses.has_colors():
                curses.start_color()
                try:
                    curses.use_default_colors()
                    self._default_fg = self._default_bg = -1
                except curses.error:
                    pass
                self._colors = curses.COLORS
                self._pair_limit = curses.COLOR_PAIRS
                self._enabled = True
        except curses.error:
            self._enabled = False

    def _index(self, rgb: RGB | None, default: int) -> int:
        if rgb is None:
            return default
        r, g, b = rgb
        if self._colors >= 256:

            def level(value: int) -> int:
                if value < 48:
                    return 0
                if value < 115:
                    return 1
                return (value - 35) // 40

            return 16 + 36 * level(r) + 6 * level(g) + level(b)
        return (r > 127) | ((g > 127) << 1) | ((b > 127) << 2)

    def attr(self, fg: RGB | None = None, bg: RGB | None = None, bold: bool = False) -> int:
        base = curses.A_BOLD if bold else curses.A_NORMAL
        if not self._enabled:
            return base | (curses.A_REVERSE if bg is not None else 0)
        key = (self._index(fg, self._default_fg), self._index(bg, self._default_bg))
        pair = self._pairs.get(key)
        if pair is None:
            pair = len(self._pairs) + 1
            if pair >= self._pair_limit:
                return base
            try:
                curses.init_pair(pair, *key)
            except curses.error:
                return base
            self._pairs[key] = pair
        return base | curses.color_pair(pair)


@dataclass(frozen=True)
class _Canvas:
    """Maps chart coordinates (origin bottom-left) onto character cells."""

    rect: Rect
    x_max: float
    y_max: float

    def locate(self, x: float, y: float) -> tuple[int, int] | None:
        if not (0.0 <= x <= self.x_max and 0.0 <= y <= self.y_max):
            return None
        col = self.rect.x + int(x / self.x_max * (self.rect.width - 1))
        row = self.rect.y + self.rect.height - 1 - int(y / self.y_max * (self.rect.height - 1))
        return row, col


def _split_top(area: Rect, height: int) -> tuple[Rect, Rect]:
    h = min(height, area.height)
    return (
        Rect(area.x, area.y, area.width, h),
        Rect(area.x, area.y + h, area.width, area.height - h),
    )


def _split_bottom(area: Rect, height: int) -> tuple[Rect, Rect]:
    h = min(height, area.height)
    return (
        Rect(area.x, area.y, area.width, area.height - h),
        Rect(area.x, area.y + area.height - h, area.width, h),
    )


def _split_columns(area: Rect, percents: Sequence[int]) -> list[Rect]:
    edges = [area.x + area.width * p // 100 for p in accumulate(percents)]
    edges[-1] = area.x + area.width
    starts = [area.x, *edges[:-1]]
    return [Rect(s, area.y, e - s, area.height) for s, e in zip(starts, edges)]


def _chunk(rect: Rect, offset: int, height: int) -> Rect:
    start = min(offset, rect.height)
    h = max(0, min(height, rect.height - start))
    return Rect(rect.x, rect.y + start, rect.width, h)


def _adjusted(state: ListState, offset: int, count: int) -> int | None:
    """Selection shifted past ``offset`` header rows and kept inside the list."""
    if state.selected is None or count == 0:
        return None
    return min(state.selected + offset, count - 1)


def _write_back(state: ListState, index: int | None, offset: int) -> None:
    if index is not None:
        state.select(index - offset if index >= offset else None)


def _scroll_offset(heights: Sequence[int], selected: int | None, room: int) -> int:
    if selected is None:
        return 0
    offset = 0
    while offset < selected and sum(heights[offset:selected + 1]) > room:
        offset += 1
    return offset


class Screen:
    """Draws dashboard panels onto a curses window."""

    def __init__(self, window) -> None:
        self._window = window
        palette = _Palette()
        self._border = palette.attr(HEADER_COLOR)
        self._title = palette.attr(HEADER_COLOR, bold=True)
        self._selected = palette.attr(WHITE, SELECTED_BG_COLOR, bold=True)
        self._highlight = palette.attr(WHITE, SELECTED_BG_COLOR)
        self._active = palette.attr(WHITE, bold=True)
        self._inactive = palette.attr(INACTIVE_COLOR)
        self._text = palette.attr(TEXT_COLOR)
        self._column_header = palette.attr(ACCENT_COLOR, bold=True)
        self._white = palette.attr(WHITE)
        self._gauge = palette.attr(GAUGE_COLOR)
        self._spark = palette.attr(ACCENT_COLOR)
        self._grid = palette.attr(GRID_COLOR)
        self._modal_subtext = palette.attr(MODAL_SUBTEXT_COLOR)
        self._palette = palette

    def area(self) -> Rect:
        """The whole window as a rectangle."""
        height, width = self._window.getmaxyx()
        return Rect(0, 0, width, height)

    # -- primitives -------------------------------------------------------

    def _put(self, y: int, x: int, text: str, attr: int = 0, limit: int | None = None) -> None:
        height, width = self._window.getmaxyx()
        if y < 0 or y >= height or x >= width or not text:
            return
        if x < 0:
            text = text[-x:]
            x = 0
        room = width - x if limit is None else min(width - x, limit)
        if room <= 0 or not text:
            return
        try:
            self._window.addnstr(y, x, text, room, attr)
        except curses.error:
            # curses reports an error after writing the bottom-right cell.
            pass

    def _fill(self, rect: Rect, attr: int = 0) -> None:
        if rect.width <= 0:
            return
        for row in range(rect.y, rect.y + rect.height):
            self._put(row, rect.x, " " * rect.width, attr, rect.width)

    def _box(
        self,
        rect: Rect,
        title: str = "",
        title_attr: int | None = None,
        centered: bool = False,
        attr: int | None = None,
    ) -> Rect:
        """Draw a rounded border and return the area inside it."""
        attr = self._border if attr is None else attr
        if rect.width < 2 or rect.height < 2:
            return Rect(rect.x, rect.y, 0, 0)
        inner_width = rect.width - 2
        bottom = rect.y + rect.height - 1
        self._put(rect.y, rect.x, "╭" + "─" * inner_width + "╮", attr, rect.width)
        for row in range(rect.y + 1, bottom):
            self._put(row, rect.x, "│", attr, 1)
            self._put(row, rect.x + rect.width - 1, "│", attr, 1)
        self._put(bottom, rect.x, "╰" + "─" * inner_width + "╯", attr, rect.width)
        if title:
            shown = title[:inner_width]
            offset = (inner_width - len(shown)) // 2 if centered else 0
            self._put(
                rect.y,
                rect.x + 1 + offset,
                shown,
                attr if title_attr is None else title_attr,
                inner_width - offset,
            )
        return Rect(rect.x + 1, rect.y + 1, inner_width, rect.height - 2)

    def _paragraph(
        self, rect: Rect, text: str, attr: int, centered: bool = False, wrap: bool = False
    ) -> None:
        if rect.width <= 0 or rect.height <= 0:
            return
        lines = textwrap.wrap(text, rect.width) if wrap else text.split("\n")
        for row, line in zip(range(rect.y, rect.y + rect.height), lines):
            x = rect.x + max((rect.width - len(line)) // 2, 0) if centered else rect.x
            self._put(row, x, line, attr, rect.x + rect.width - x)

    def _tabs(self, rect: Rect, labels: Sequence[str], selected: int, title: str) -> None:
        inner = self._box(rect, title, self._title)
        if inner.width <= 0 or inner.height <= 0:
            return
        x = inner.x
        right = inner.x + inner.width
        for index, label in enumerate(labels):
            if x >= right:
                break
            if index:
                self._put(inner.y, x, "|", self._title, right - x)
                x += 1
            text = f" {label} "
            attr = self._highlight if index == selected else self._title
            self._put(inner.y, x, text, attr, right - x)
            x += len(text)

    def _list(self, rect: Rect, title: str, rows: Sequence[Row], selected: int | None) -> None:
        inner = self._box(rect, title, self._title)
        if inner.width <= 0 or inner.height <= 0:
            return
        heights = [len(text.split("\n")) for text, _ in rows]
        offset = _scroll_offset(heights, selected, inner.height)
        y = inner.y
        bottom = inner.y + inner.height
        for index, (text, attr) in enumerate(rows[offset:], start=offset):
            is_selected = index == selected
            for line in text.split("\n"):
                if y >= bottom:
                    return
                shown = line.ljust(inner.width) if is_selected else line
                self._put(y, inner.x, shown, self._selected if is_selected else attr, inner.width)
                y += 1

    def _scrollbar(self, count: int, position: int, rect: Rect) -> None:
        if count <= 0 or rect.height < 3 or rect.width < 1:
            return
        col = rect.x + rect.width - 1
        track = rect.height - 2
        thumb = min(position, count - 1) * (track - 1) // max(count - 1, 1)
        self._put(rect.y, col, "↑", self._border, 1)
        for step in range(track):
            self._put(rect.y + 1 + step, col, "█" if step == thumb else "║", self._border, 1)
        self._put(rect.y + rect.height - 1, col, "↓", self._border, 1)

    def _item_attr(self, state: ListState) -> int:
        return self._active if state.selected is not None else self._inactive

    # -- header widgets ---------------------------------------------------

    def draw_tabs(self, tabs: Sequence[str], selected: int, title: str, area: Rect) -> None:
        """Tab bar with the selected tab highlighted."""
        self._tabs(area, tabs, selected, title)

    def draw_summary(self, summary: str, area: Rect) -> None:
        """Bordered summary line."""
        inner = self._box(area, "Summary", self._title)
        self._paragraph(inner, summary, self._title)

    def draw_progress_bar(self, progress: float, area: Rect) -> None:
        """Gauge filled to ``progress`` (0..1) with a percentage label."""
        ratio = min(max(progress, 0.0), 1.0)
        inner = self._box(area, "Loading Progress", self._title)
        if inner.width <= 0 or inner.height <= 0:
            return
        filled = int(inner.width * ratio)
        for row in range(inner.y, inner.y + inner.height):
            self._put(row, inner.x, "█" * filled, self._gauge, inner.width)
        label = f"{int(ratio * 100 + 0.5)}%"
        middle = inner.y + (inner.height - 1) // 2
        x = inner.x + max((inner.width - len(label)) // 2, 0)
        self._put(middle, x, label, self._title, inner.x + inner.width - x)

    # -- tabs -------------------------------------------------------------

    def draw_overview(
        self,
        area: Rect,
        ip_items: Sequence[str],
        url_items: Sequence[tuple[str, LogEntry]],
        overview_panel: int,
        ip_list_state: ListState,
        url_list_state: ListState,
    ) -> None:
        """Top IP and URL lists side by side, with the full selected URL below.

        ``overview_panel`` names the focused list; focus is shown through the
        list selections.
        """
        main, bottom = _split_bottom(area, 3)
        ip_rect, url_rect = _split_columns(main, (30, 70))

        ip_attr = self._item_attr(ip_list_state)
        url_attr = self._item_attr(url_list_state)
        ip_rows = [(format_ip_header(), self._column_header)]
        ip_rows += [(text, ip_attr) for text in ip_items]
        url_rows = [(format_url_header(), self._column_header)]
        url_rows += [(text, url_attr) for text, _ in url_items]

        ip_selected = _adjusted(ip_list_state, 1, len(ip_rows))
        url_selected = _adjusted(url_list_state, 1, len(url_rows))

        self._list(ip_rect, "IP List", ip_rows, ip_selected)
        self._list(url_rect, "URL List", url_rows, url_selected)
        self._scrollbar(len(ip_rows), ip_selected or 0, ip_rect)
        self._scrollbar(len(url_rows), url_selected or 0, url_rect)

        if url_selected:
            entry = url_items[url_selected - 1][1]
            inner = self._box(bottom, "Full URL")
            self._paragraph(inner, entry.full_url, self._white)

        _write_back(ip_list_state, ip_selected, 1)
        _write_back(url_list_state, url_selected, 1)

    def draw_last_requests(
        self,
        area: Rect,
        items: Sequence[str],
        search_input: str,
        current_page: int,
        total_pages: int,
        list_state: ListState,
    ) -> None:
        """Search field, page tabs and one page of request lines."""
        header, body = _split_top(area, 3)
        search_rect, pages_rect = _split_columns(header, (50, 50))

        search_inner = self._box(search_rect, "Search", self._title)
        self._paragraph(search_inner, search_input, self._white)
        self._tabs(pages_rect, [str(page) for page in range(1, total_pages + 1)], current_page, "Pages")

        list_state.clamp(len(items))
        self._list(body, "Requests", [(text, self._text) for text in items], list_state.selected)
        self._scrollbar(len(items), list_state.selected or 0, body)

    def draw_detailed_requests(
        self,
        area: Rect,
        ip_items: Sequence[str],
        request_items: Sequence[str],
        selected_ip: str | None,
        ip_list_state: ListState,
        request_list_state: ListState,
    ) -> None:
        """IP list beside the recent requests of the selected IP."""
        ip_rect, request_rect = _split_columns(area, (30, 70))

        ip_attr = self._item_attr(ip_list_state)
        ip_rows = [(format_ip_header(), self._column_header)]
        ip_rows += [(text, ip_attr) for text in ip_items]

        request_rows: list[Row] = []
        if selected_ip is not None:
            request_rows.append((f"Requests for IP: {selected_ip}", self._title))
        request_rows += [(text, self._text) for text in request_items]
        request_offset = 1 if selected_ip is not None else 0

        ip_selected = _adjusted(ip_list_state, 1, len(ip_rows))
        request_selected = _adjusted(request_list_state, request_offset, len(request_rows))

        self._list(ip_rect, "IP List", ip_rows, ip_selected)
        self._list(request_rect, "Request Details", request_rows, request_selected)
        self._scrollbar(len(ip_rows), ip_selected or 0, ip_rect)
        self._scrollbar(len(request_rows), request_selected or 0, request_rect)

        _write_back(ip_list_state, ip_selected, 1)
        _write_back(request_list_state, request_selected, request_offset)

    def draw_requests_sparkline(
        self,
        area: Rect,
        data: Sequence[int],
        min_value: int,
        max_value: int,
        start_time: int,
        end_time: int,
    ) -> None:
        """Bar timeline drawn right to left, newest value at the right edge."""
        chart, stats = _split_bottom(area, 3)
        title = sparkline_title(start_time, end_time, min_value, max_value)
        inner = self._box(chart, title, self._title, centered=True)
        peak = max(data, default=0) or 1
        if inner.width > 0 and inner.height > 0:
            bottom = inner.y + inner.height - 1
            for offset, value in enumerate(data[:inner.width]):
                col = inner.x + inner.width - 1 - offset
                eighths = min(value, peak) * inner.height * 8 // peak
                for row in range(inner.height):
                    level = min(max(eighths - row * 8, 0), 8)
                    if level:
                        self._put(bottom - row, col, BAR_LEVELS[level], self._spark, 1)

        stats_inner = self._box(stats)
        self._paragraph(stats_inner, sparkline_stats(list(data), max_value), self._title, centered=True)

    def _chart_rect(
        self, canvas: _Canvas, x: float, y: float, width: float, height: float, fill: str, attr: int
    ) -> None:
        x0, x1 = max(x, 0.0), min(x + width, canvas.x_max)
        y0, y1 = max(y, 0.0), min(y + height, canvas.y_max)
        if x0 > x1 or y0 > y1:
            return
        top_left = canvas.locate(x0, y1)
        bottom_right = canvas.locate(x1, y0)
        if top_left is None or bottom_right is None:
            return
        (top, left), (bottom, right) = top_left, bottom_right
        for row in range(top, bottom + 1):
            self._put(row, left, fill * (right - left + 1), attr, right - left + 1)

    def _chart_print(self, canvas: _Canvas, x: float, y: float, text: str) -> None:
        position = canvas.locate(x, y)
        if position is None:
            return
        row, col = position
        self._put(row, col, text, self._title, canvas.rect.x + canvas.rect.width - col)

    def render_heatmap(
        self,
        area: Rect,
        cells: Sequence[HeatCell],
        x_labels: Sequence[tuple[float, str]],
        y_labels: Sequence[tuple[float, str]],
        min_value: int,
        max_value: int,
    ) -> None:
        """Requests by hour and date, with a legend line below."""
        chart, info = _split_bottom(area, 3)
        inner = self._box(chart, "Heatmap (Requests by Hour)", self._title, centered=True)
        if inner.width > 1 and inner.height > 1:
            y_max = len(y_labels) + 1.0
            canvas = _Canvas(inner, HEATMAP_X_MAX, y_max)
            for hour in range(24):
                self._chart_rect(canvas, hour + 1.3, 0.0, 0.8, y_max, "░", self._grid)
            for cell in cells:
                attr = self._palette.attr(cell.color)
                self._chart_rect(canvas, cell.x, cell.y, cell.width, cell.height, "█", attr)
            for x, text in x_labels:
                self._chart_print(canvas, x, 0.0, text)
            for y, text in y_labels:
                self._chart_print(canvas, 0.0, y, text)

            legend_y = y_max + 0.5
            self._chart_print(canvas, 1.0, legend_y, "Legend: Low → High")
            for step in range(20):
                attr = self._palette.attr(heatmap_color(step / 19.0))
                self._chart_rect(canvas, 20.0 + step * 0.3, legend_y, 0.3, 0.5, "█", attr)

        info_inner = self._box(info)
        self._paragraph(info_inner, heatmap_info(min_value, max_value), self._title, centered=True)

    def draw_modal(self, message: str) -> None:
        """Centred success popup; the first line is the headline, the second a detail."""
        popup = popup_area(self.area(), 40, 20)
        if popup.width <= 0 or popup.height <= 0:
            return
        self._fill(popup)
        self._box(popup, "Success", self._white, attr=self._white)

        lines = message.split("\n")
        self._paragraph(_chunk(popup, 4, 3), f"✓ {lines[0]}", self._title, centered=True, wrap=True)
        if len(lines) > 1:
            rest = _chunk(popup, 8, popup.height - 8)
            self._paragraph(rest, lines[1], self._modal_subtext, centered=True, wrap=True)