from datetime import datetime, timedelta, timezone

import pytest

from logscope.log_data import LogData
from logscope.tailing import parse_datetime, process_line, tail_file

REGEX = r'^(\S+) - \S+ \[(.*?)\] \d+\.\d+ "(\S+)" "(\S+) (\S+?)(?:\?.*?)? '
DATE_FORMAT = "%d/%b/%Y:%H:%M:%S %z"
LINE1 = '127.0.0.1 - - [10/Oct/2023:13:55:36 +0000] 0.000 "GET" "GET /test1 HTTP/1.1" '
LINE2 = '127.0.0.2 - - [10/Oct/2023:13:55:37 +0000] 0.000 "GET" "GET /test2 HTTP/1.1" '
LINE3 = '127.0.0.3 - - [10/Oct/2023:13:55:38 +0000] 0.000 "GET" "GET /test3 HTTP/1.1" '


@pytest.fixture
def log_file(tmp_path):
    path = tmp_path / "access.log"
    path.write_text(f"{LINE1}\n{LINE2}\n", encoding="utf-8")
    return path


def test_process_line():
    log_data = LogData()
    line = '127.0.0.1 - - [10/Oct/2023:13:55:36 +0000] 0.000 "GET" "GET /test HTTP/1.1" '
    process_line(line, REGEX, DATE_FORMAT, log_data, False)

    assert log_data.total_requests == 1
    assert "127.0.0.1" in log_data.by_ip
    assert "/test" in log_data.by_url
    expected = int(datetime(2023, 10, 10, 13, 55, 36, tzinfo=timezone.utc).timestamp())
    assert log_data.requests_per_interval == {expected: 1}


def test_process_line_captures_type_and_domain():
    log_data = LogData()
    line = '10.1.1.1 - - [10/Oct/2023:13:55:36 +0000] 0.000 "example.com" "POST /api?x=1 HTTP/1.1" '
    process_line(line, REGEX, DATE_FORMAT, log_data, False)
    entry = log_data.by_url["/api"]
    assert entry.request_type == "POST"
    assert entry.request_domain == "example.com"


def test_process_line_invalid_format():
    log_data = LogData()
    process_line("invalid log line format", REGEX, DATE_FORMAT, log_data, False)
    assert log_data.total_requests == 0


def test_process_line_invalid_regex():
    with pytest.raises(ValueError):
        process_line(LINE1, "([unclosed", DATE_FORMAT, LogData(), False)


def test_tail_file_count_0(log_file):
    log_data = LogData()
    result = tail_file(log_file, 0, REGEX, DATE_FORMAT, log_data, False, None, lambda _: None)
    assert log_data.total_requests == 0
    assert result == 2


def test_tail_file_count_minus_1(log_file):
    log_data = LogData()
    result = tail_file(log_file, -1, REGEX, DATE_FORMAT, log_data, False, None, lambda _: None)
    assert log_data.total_requests == 2
    assert "127.0.0.1" in log_data.by_ip
    assert "127.0.0.2" in log_data.by_ip
    assert result == 2


def test_tail_file_count_1(log_file):
    log_data = LogData()
    result = tail_file(log_file, 1, REGEX, DATE_FORMAT, log_data, False, None, lambda _: None)
    assert log_data.total_requests == 1
    assert "127.0.0.2" in log_data.by_ip
    assert "127.0.0.1" not in log_data.by_ip
    assert result == 2


def test_tail_file_count_larger_than_file(log_file):
    log_data = LogData()
    result = tail_file(log_file, 50, REGEX, DATE_FORMAT, log_data, False)
    assert log_data.total_requests == 2
    assert result == 2


def test_tail_file_with_last_processed_line(log_file):
    with open(log_file, "a", encoding="utf-8") as handle:
        handle.write(f"{LINE3}\n")

    log_data = LogData()
    result = tail_file(log_file, 0, REGEX, DATE_FORMAT, log_data, False, 2, lambda _: None)

    assert log_data.total_requests == 1
    assert "127.0.0.3" in log_data.by_ip
    assert "127.0.0.1" not in log_data.by_ip
    assert "127.0.0.2" not in log_data.by_ip
    assert result == 3


def test_tail_file_follow_up_reads_only_new_lines(log_file):
    log_data = LogData()
    position = tail_file(log_file, 0, REGEX, DATE_FORMAT, log_data, False)
    with open(log_file, "a", encoding="utf-8") as handle:
        handle.write(f"{LINE3}\n")
    position = tail_file(log_file, 0, REGEX, DATE_FORMAT, log_data, False, position)
    assert position == 3
    assert list(log_data.by_ip) == ["127.0.0.3"]


def test_tail_file_reports_progress(log_file):
    seen = []
    tail_file(log_file, -1, REGEX, DATE_FORMAT, LogData(), False, None, seen.append)
    assert len(seen) == 2
    assert all(0 < value <= 1.0 for value in seen)
    assert seen[-1] == pytest.approx(1.0)


def test_tail_file_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        tail_file(tmp_path / "absent.log", -1, REGEX, DATE_FORMAT, LogData(), False)


def test_tail_file_empty_file(tmp_path):
    path = tmp_path / "empty.log"
    path.write_bytes(b"")
    assert tail_file(path, 0, REGEX, DATE_FORMAT, LogData(), False) == 0
    assert tail_file(path, 5, REGEX, DATE_FORMAT, LogData(), False) is None


def test_parse_datetime_with_offset():
    parsed = parse_datetime("10/Oct/2023:13:55:36 +0200", DATE_FORMAT)
    assert parsed == datetime(2023, 10, 10, 11, 55, 36, tzinfo=timezone.utc)


def test_parse_datetime_invalid_falls_back_to_now():
    before = datetime.now(timezone.utc)
    parsed = parse_datetime("not a date", DATE_FORMAT)
    after = datetime.now(timezone.utc)
    assert before - timedelta(seconds=1) <= parsed <= after + timedelta(seconds=1)


def test_parse_datetime_without_offset_is_rejected():
    before = datetime.now(timezone.utc)
    parsed = parse_datetime("10/Oct/2023:13:55:36", "%d/%b/%Y:%H:%M:%S")
    assert parsed >= before - timedelta(seconds=1)
    assert parsed.tzinfo is not None