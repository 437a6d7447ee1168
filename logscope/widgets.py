"""Terminal-independent building blocks for the log dashboard.

Selection state, geometry, text formatting and heatmap/sparkline data are
kept here so that drawing code only has to put them on screen.
"""

from __future__ import annotations

import math
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone

from .log_data import LogEntry

RGB = tuple[int, int, int]

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
URL_COLUMN_WIDTH = 25

HEADER_COLOR: RGB = (144, 238, 144)
ACCENT_COLOR: RGB = (0, 191, 255)
SELECTED_BG_COLOR: RGB = (0, 95, 135)
INACTIVE_COLOR: RGB = (169, 169, 169)
TEXT_COLOR: RGB = (158, 158, 158)
SHADOW_COLOR: RGB = (20, 20, 20)
GRID_COLOR: RGB = (40, 40, 40)

_LAST = sys.maxsize


@dataclass(frozen=True)
class Rect:
    """A rectangular screen area in character cells."""

    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class HeatCell:
    """One filled rectangle of the heatmap, in chart coordinates."""

    x: float
    y: float
    width: float
    height: float
    color: RGB


@dataclass
class ListState:
    """Selected row of a scrollable list, or ``None`` when nothing is selected.

    Moving up from no selection selects the last row; the exact index is
    settled by ``clamp`` once the number of rows is known.
    """

    selected: int | None = None

    def select(self, index: int | None) -> None:
        """Select ``index``, or clear the selection with ``None``."""
        self.selected = index

    def select_next(self) -> None:
        """Move one row down, starting at the first row."""
        self.selected = 0 if self.selected is None else min(self.selected + 1, _LAST)

    def select_previous(self) -> None:
        """Move one row up, starting at the last row."""
        self.selected = _LAST if self.selected is None else max(self.selected - 1, 0)

    def select_first(self) -> None:
        """Select the first row."""
        self.selected = 0

    def clamp(self, item_count: int) -> None:
        """Keep the selection inside a list of ``item_count`` rows."""
        if item_count <= 0:
            self.selected = None
        elif self.selected is not None and self.selected >= item_count:
            self.selected = item_count - 1


def format_timestamp(epoch_seconds: float) -> str:
    """Format whole seconds since the epoch as local ``YYYY-mm-dd HH:MM:SS``."""
    return datetime.fromtimestamp(int(epoch_seconds)).strftime(TIMESTAMP_FORMAT)


def truncate_url(url: str, max_length: int) -> str:
    """Shorten ``url`` to ``max_length`` characters, ending in an ellipsis."""
    if len(url) <= max_length:
        return url
    if max_length < 3:
        raise ValueError(f"max_length must be at least 3, got {max_length}")
    return f"{url[:max_length - 3]}..."


def format_ip_item(ip: str, entry: LogEntry) -> str:
    """One row of the IP list: address, request count and last update."""
    return f"{ip:<15} │ {entry.count:<12} │ {format_timestamp(entry.last_update)}"


def format_url_item(url: str, entry: LogEntry) -> str:
    """One row of the URL list, with the URL cut to its column width."""
    shown = truncate_url(url, URL_COLUMN_WIDTH)
    return (
        f"{shown:<25} │ {entry.request_type:<20} │ {entry.request_domain:<10} │ "
        f"{entry.count:<12} │ {format_timestamp(entry.last_update)}"
    )


def format_ip_header() -> str:
    """Column titles of the IP list."""
    return f"{'IP':<15} │ {'Requests':<12} │ Last Update"


def format_url_header() -> str:
    """Column titles of the URL list."""
    return (
        f"{'URL':<25} │ {'Type':<20} │ {'Domain':<10} │ {'Requests':<12} │ Last Update"
    )


def _channel(value: float) -> int:
    if math.isnan(value):
        return 0
    return max(0, min(255, int(value)))


def heatmap_color(normalized_value: float) -> RGB:
    """Map 0..1 onto a blue → green → red gradient."""
    if normalized_value < 0.5:
        t = normalized_value * 2.0
        return 0, _channel(t * 255.0), _channel((1.0 - t) * 255.0)
    t = (normalized_value - 0.5) * 2.0
    return _channel(t * 255.0), _channel((1.0 - t) * 255.0), 0


def generate_heatmap_cells(
    sorted_data: Sequence[tuple[int, int]],
    min_value: int,
    max_value: int,
    unique_dates: Sequence[date],
) -> list[HeatCell]:
    """Build a shadow and a coloured cell for each (timestamp, count) pair.

    Cells sit at the UTC hour on the x axis and at the index of the UTC date
    in ``unique_dates`` on the y axis. Raises ``ValueError`` if a timestamp's
    date is not in ``unique_dates``.
    """
    cells: list[HeatCell] = []
    for timestamp, value in sorted_data:
        if max_value == min_value:
            normalized = 0.5
        else:
            normalized = (value - min_value) / (max_value - min_value)
        color = heatmap_color(normalized)

        moment = datetime.fromtimestamp(timestamp, timezone.utc)
        hour = float(moment.hour)
        row = float(list(unique_dates).index(moment.date()))

        cells.append(HeatCell(hour + 1.4, row + 1.0, 0.8, 0.75, SHADOW_COLOR))
        cells.append(HeatCell(hour + 1.3, row + 0.9, 0.8, 0.75, color))
    return cells


def sparkline_bounds(
    data: Sequence[int], sorted_data: Sequence[tuple[int, int]]
) -> tuple[int, int, int, int]:
    """Return min and max of ``data`` and the oldest and newest timestamps.

    ``sorted_data`` is ordered newest first.
    """
    min_value = min(data, default=0)
    max_value = max(data, default=0)
    start_time = sorted_data[-1][0] if sorted_data else 0
    end_time = sorted_data[0][0] if sorted_data else 0
    return min_value, max_value, start_time, end_time


def sparkline_title(start_time: int, end_time: int, min_value: int, max_value: int) -> str:
    """Title of the requests timeline, with the UTC time range it covers."""
    start = datetime.fromtimestamp(start_time, timezone.utc)
    end = datetime.fromtimestamp(end_time, timezone.utc)
    time_range = f"{start:%H:%M:%S} - {end:%H:%M:%S}"
    return (
        f"Requests Timeline | {time_range} | Min: {min_value} | Max: {max_value} | "
        f"Range: {end_time - start_time}"
    )


def sparkline_stats(data: Sequence[int], max_value: int) -> str:
    """Summary line below the timeline; ``data`` is ordered newest first."""
    total = sum(data)
    average = f"{total / len(data):.1f}" if data else "NaN"
    current = data[0] if data else 0
    return (
        f"Total Requests: {total} | Avg: {average} | Peak: {max_value} | "
        f"Current: {current}"
    )


def heatmap_info(min_value: int, max_value: int) -> str:
    """Legend line below the heatmap."""
    return (
        f"Min: {min_value} requests | Max: {max_value} requests | "
        "Scale: Blue (Low) → Green → Red (High)"
    )


def popup_area(area: Rect, percent_x: int, percent_y: int) -> Rect:
    """A rectangle of the given percentage size centred in ``area``."""
    width = int(area.width * (percent_x / 100.0))
    height = int(area.height * (percent_y / 100.0))
    x = area.x + max(area.width - width, 0) // 2
    y = area.y + max(area.height - height, 0) // 2
    return Rect(x, y, width, height)