import time

import pytest

from logscope.app import App, Key
from logscope.log_data import LogData
from logscope.widgets import Rect


class FakeScreen:
    def __init__(self, width=200, height=50):
        self.width = width
        self.height = height
        self.calls = {}

    def area(self):
        return Rect(0, 0, self.width, self.height)

    def _record(self, name, *args):
        self.calls.setdefault(name, []).append(args)

    def draw_tabs(self, *args):
        self._record("tabs", *args)

    def draw_summary(self, *args):
        self._record("summary", *args)

    def draw_progress_bar(self, *args):
        self._record("progress", *args)

    def draw_overview(self, *args):
        self._record("overview", *args)

    def draw_last_requests(self, *args):
        self._record("last_requests", *args)

    def draw_detailed_requests(self, *args):
        self._record("detailed", *args)

    def draw_requests_sparkline(self, *args):
        self._record("sparkline", *args)

    def render_heatmap(self, *args):
        self._record("heatmap", *args)

    def draw_modal(self, *args):
        self._record("modal", *args)


def add(log_data, ip, url, line, timestamp=0, request_type="GET"):
    log_data.add_entry(ip, url, line, timestamp, request_type, "example.com", False)


@pytest.fixture
def sample():
    log_data = LogData()
    add(log_data, "10.0.0.1", "/a", "GET /a one", 0)
    add(log_data, "10.0.0.1", "/a", "GET /a two", 0)
    add(log_data, "10.0.0.2", "/b", "POST /b three", 3600 * 25, "POST")
    return log_data


def test_set_progress_clamps():
    app = App(LogData(), 10)
    app.set_progress(-5.0)
    assert app.progress == 0.0
    app.set_progress(150.0)
    assert app.progress == 100.0
    app.set_progress(42.5)
    assert app.progress == 42.5


def test_quit_keys():
    app = App(LogData(), 10)
    app.handle_input("c")
    assert not app.should_quit
    assert app.search_input == "c"
    app.handle_input("c", ctrl=True)
    assert app.should_quit

    other = App(LogData(), 10)
    other.handle_input("q")
    assert other.should_quit


def test_tab_cycles_through_all_tabs():
    app = App(LogData(), 10)
    seen = []
    for _ in range(5):
        app.handle_input(Key.TAB)
        seen.append(app.current_tab)
    assert seen == [1, 2, 3, 4, 0]
    app.handle_input("t")
    assert app.current_tab == 1


def test_typing_and_backspace_edit_search():
    app = App(LogData(), 10)
    app.last_requests_state.select(3)
    app.handle_input("a")
    app.handle_input("b")
    assert app.search_input == "ab"
    assert app.last_requests_state.selected is None
    app.last_requests_state.select(2)
    app.handle_input(Key.BACKSPACE)
    assert app.search_input == "a"
    assert app.last_requests_state.selected is None


def test_search_results_filters(sample):
    app = App(sample, 10)
    assert sorted(app.search_results()) == sorted(["GET /a one", "GET /a two", "POST /b three"])
    for ch in "POST":
        app.handle_input(ch)
    assert app.search_results() == ["POST /b three"]


def test_summary_text(sample):
    app = App(sample, 10)
    text = app.summary_text()
    assert text.startswith("Requests: 3 | Unique IPs: 2 | Unique URLs: 2 | Update: ")


def test_overview_panel_switching():
    app = App(LogData(), 10)
    app.handle_input(Key.RIGHT)
    assert app.overview_panel == 1
    assert app.top_ip_state.selected is None
    assert app.top_url_state.selected == 0
    app.handle_input(Key.RIGHT)
    assert app.overview_panel == 1
    app.handle_input(Key.LEFT)
    assert app.overview_panel == 0
    assert app.top_url_state.selected is None
    assert app.top_ip_state.selected == 0


def test_copy_ip_uses_source_offset(sample):
    copied = []
    app = App(sample, 10, copied.append)
    app.handle_input(Key.DOWN)
    app.handle_input(Key.ENTER)
    assert copied == []
    app.handle_input(Key.DOWN)
    app.handle_input(Key.ENTER)
    assert len(copied) == 1
    assert copied[0].startswith("IP: 10.0.0.1\nRequests: 2\nLast Update: ")
    assert app.modal.message == "IP address copied: 10.0.0.1"


def test_copy_url(sample):
    copied = []
    app = App(sample, 10, copied.append)
    app.handle_input(Key.RIGHT)
    app.handle_input(Key.DOWN)
    app.handle_input(Key.ENTER)
    assert copied[0].startswith(
        "URL: /a\nType: GET\nDomain: example.com\nRequests: 2\nLast Update: "
    )
    assert app.modal.message == "URL copied\n/a"


def test_copy_failure_shows_no_modal(sample):
    def broken(text):
        raise OSError("no clipboard")

    app = App(sample, 10, broken)
    app.top_ip_state.select(1)
    app.handle_input(Key.ENTER)
    assert app.modal is None


def test_modal_drawn_then_expires(sample):
    app = App(sample, 10, lambda text: None)
    app.top_ip_state.select(1)
    app.handle_input(Key.ENTER)
    screen = FakeScreen()
    app.draw(screen)
    assert screen.calls["modal"] == [("IP address copied: 10.0.0.1",)]

    app.modal.show_until = time.monotonic() - 1
    later = FakeScreen()
    app.draw(later)
    assert "modal" not in later.calls
    assert app.modal is None


def test_draw_header_and_overview(sample):
    app = App(sample, 10)
    screen = FakeScreen()
    app.draw(screen)
    tabs = screen.calls["tabs"][0]
    assert tabs[0] == ["Overview", "Requests", "Detailed", "Sparkline", "Heatmap"]
    assert tabs[1] == 0
    assert tabs[2] == "Navigation"
    overview = screen.calls["overview"][0]
    ip_items, url_items = overview[1], overview[2]
    assert len(ip_items) == 2
    assert ip_items[0].startswith("10.0.0.1")
    assert [entry.full_url for _, entry in url_items] == ["/a", "/b"]


def test_last_requests_pagination():
    log_data = LogData()
    for index in range(15):
        for request in range(10):
            add(log_data, f"10.0.1.{index}", "/x", f"line {index}-{request}")
    app = App(log_data, 10)
    app.handle_input(Key.TAB)
    screen = FakeScreen()
    app.draw(screen)
    first = screen.calls["last_requests"][-1]
    assert len(first[1]) == 100
    assert app.total_pages == 2

    app.handle_input(Key.RIGHT)
    assert app.current_page == 1
    assert app.last_requests_state.selected == 0
    app.draw(screen)
    assert len(screen.calls["last_requests"][-1][1]) == 50

    app.handle_input(Key.RIGHT)
    assert app.current_page == 1
    app.handle_input(Key.LEFT)
    assert app.current_page == 0


def test_detailed_selects_first_ip(sample):
    app = App(sample, 10)
    app.current_tab = 2
    screen = FakeScreen()
    app.draw(screen)
    assert screen.calls["detailed"][0][3] is None
    assert app.ip_list_state.selected == 0

    app.draw(screen)
    call = screen.calls["detailed"][1]
    assert call[3] == "10.0.0.1"
    assert call[2] == sample.get_last_requests("10.0.0.1")

    app.handle_input(Key.RIGHT)
    assert app.request_list_state.selected == 0
    app.handle_input(Key.DOWN)
    assert app.request_list_state.selected == 1
    app.handle_input(Key.LEFT)
    assert app.request_list_state.selected is None


def test_sparkline_newest_first(sample):
    app = App(sample, 10)
    app.current_tab = 3
    screen = FakeScreen()
    app.draw(screen)
    _, data, min_value, max_value, start_time, end_time = screen.calls["sparkline"][0]
    assert data == [1, 2]
    assert (min_value, max_value) == (1, 2)
    assert (start_time, end_time) == (0, 3600 * 25)


def test_sparkline_skipped_without_data():
    app = App(LogData(), 10)
    app.current_tab = 3
    screen = FakeScreen()
    app.draw(screen)
    assert "sparkline" not in screen.calls


def test_heatmap_labels_and_cells(sample):
    app = App(sample, 10)
    app.current_tab = 4
    screen = FakeScreen()
    app.draw(screen)
    _, cells, x_labels, y_labels, min_value, max_value = screen.calls["heatmap"][0]
    assert len(x_labels) == 24
    assert x_labels[0] == (1.7, "00:00")
    assert y_labels == [(1.0, "1970-01-01"), (2.0, "1970-01-02")]
    assert len(cells) == 4
    assert (min_value, max_value) == (1, 2)


def test_heatmap_defaults_when_empty():
    app = App(LogData(), 10)
    app.current_tab = 4
    screen = FakeScreen()
    app.draw(screen)
    _, cells, _, y_labels, min_value, max_value = screen.calls["heatmap"][0]
    assert cells == []
    assert y_labels == []
    assert (min_value, max_value) == (0, 1)