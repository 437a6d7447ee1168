# logscope

`logscope` follows an Nginx access log and shows live statistics in your
terminal: the busiest client IPs and URLs, the most recent requests with a
search box, per-IP request details, a timeline of request volume and an
hour-by-day heatmap.

## Installation

```
pip install .
```

The package has no third-party runtime dependencies; the interface is drawn
with the standard library's `curses` module, so it needs a platform where
`curses` is available (Linux, macOS and other POSIX systems).

## Usage

```
logscope /var/log/nginx/access.log
```

The file is first read according to `--count` (a `Reading file: N%` progress
line is written to standard error), then the dashboard starts and the file is
re-read every second, picking up lines added since the last read. By default
`logscope` starts at the end of the file and only counts lines written after
it starts.

If the log file or a regex file cannot be read, or the pattern is not a valid
regular expression, an error is printed and the command exits with status 1.

### Options

| Option | Meaning |
| --- | --- |
| `file` | Path of the log file (required). |
| `-c`, `--count N` | Lines to read from the end of the file before following it. `0` (the default) starts at the end, `-1` reads the whole file. |
| `-r`, `--regex PATTERN` | Regular expression that parses a line, or the path of a file holding it. |
| `-d`, `--date-format FORMAT` | `strptime` format of the timestamp field. Default: `%d/%b/%Y:%H:%M:%S %z`. |
| `-t`, `--top N` | How many entries the top lists show. Default: `10`. |
| `--no-clear` | Keep every entry. Without it, once more than 10,000 IPs are tracked, IP and URL entries not updated in the last 20 minutes are dropped. |
| `--show-urls` | Print the top URLs as a table and exit instead of starting the interface. |
| `--show-ips` | Print the top IPs as a table and exit instead of starting the interface. |
| `--log-to-file` | Write diagnostic messages (level INFO and above) to `app.log` in the current directory. Otherwise errors go to standard error. |

The default pattern expects lines of this shape:

```
^(\S+) - ".+" \[(.*?)\] \d+\.\d+ "(\S+)" "(\S+) (\S+?)(?:\?.*?)? 
```

Its five groups are, in order: client IP, timestamp, domain, request method
and URL (the query string is left out). A custom pattern must keep that group
order; missing groups count as empty. Lines that do not match are skipped and
reported through logging.

The timestamp is only accepted if the date format yields a UTC offset (so it
should contain `%z`). A timestamp that cannot be parsed this way is replaced
with the current time.

### One-off reports

```
logscope access.log --count -1 --show-urls --show-ips --top 20
```

reads the whole file, prints the top 20 URLs and IPs with their request
counts and request methods, and exits.

## The interface

Five tabs are available:

- **Overview** – top IPs on the left, top URLs on the right, with the full
  URL of the selected entry shown below.
- **Requests** – the most recent lines of every IP, 100 per page, filtered by
  the search text.
- **Detailed** – pick an IP to see its last ten requests, newest first.
- **Sparkline** – request volume per timestamp, newest on the right, with
  total, average, peak and current values.
- **Heatmap** – requests per UTC hour for each UTC day, from blue (few)
  through green to red (many).

A header shows the tab bar, a summary (total requests, unique IPs and URLs,
and the time of the last redraw) and the loading progress.

### Keys

| Key | Action |
| --- | --- |
| `Tab` or `t` | Next tab |
| `Up` / `Down` | Move the selection |
| `Left` / `Right` | Switch panel (Overview), change page (Requests), leave or enter the request list (Detailed) |
| `Enter` | On the Overview tab, copy details of the selected IP or URL to the clipboard and show a short confirmation |
| any other printable character | Add to the search text used by the Requests tab |
| `Backspace` | Remove the last search character |
| `q` or `Ctrl+C` | Quit |

## Using it as a library

```python
from logscope.log_data import LogData
from logscope.tailing import tail_file

data = LogData()
tail_file(
    "access.log",
    -1,
    r'^(\S+) - \S+ \[(.*?)\] \d+\.\d+ "(\S+)" "(\S+) (\S+?)(?:\?.*?)? ',
    "%d/%b/%Y:%H:%M:%S %z",
    data,
    False,
    None,
    lambda progress: None,
)

top_ips, top_urls = data.get_top_n(5)
for ip, entry in top_ips:
    print(ip, entry.count)
```

`tail_file` returns the number of the last line it processed; pass it back as
`last_processed_line` on the next call to pick up only new lines. Single lines
can be fed in with `logscope.tailing.process_line`. `LogData` also offers
`get_unique_counts()`, `get_last_requests(ip)` and `clear_outdated_entries()`.

`logscope.cli.render_report(log_data, top, show_urls, show_ips)` returns the
same tables that `--show-urls` and `--show-ips` print.

## Limitations

- Copying only sends the terminal an OSC 52 escape sequence; there is no
  access to a system clipboard. It works over SSH, but only in terminals that
  support OSC 52.
- Windows is not supported, since the standard library has no `curses` there.
- Data is kept in memory only; nothing is stored between runs.

## Running the tests

```
pip install .[test]
pytest
```