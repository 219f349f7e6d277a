# healthwatch

`healthwatch` lets the parts of a distributed system grade their own health,
gathers those reports into one system-wide status, and narrows a flood of
warnings down to the nodes most likely to be their cause. It also carries a
small strided-matrix type and a closed-form eigen solver for symmetric 3×3
matrices.

## A first check

```python
from healthwatch.health_checker import HealthChecker
from healthwatch.messages import ErrorLevel
from healthwatch.params import ParamServer

# Only keys present under "health_checker" are checked.
server = ParamServer({"health_checker/battery": "default"})

with HealthChecker(server, node_name="/battery_monitor") as checker:
    level = checker.check_min_value("battery", 3.5, 6, 4, 2, "battery low")
    assert level is ErrorLevel.ERROR
    status = checker.build_node_status()
```

## Checking values inside a node — `healthwatch.health_checker`

A `HealthChecker` belongs to one node. Each check takes a key, a description
and thresholds for three levels of trouble, and returns an `ErrorLevel`
(`OK`, `WARN`, `ERROR`, `FATAL`). It returns `UNDEFINED` when the key is not
configured in the parameters, or when a status carries a level other than
those four.

- `check_min_value` — a value below a threshold gives that level; the most
  severe threshold crossed wins.
- `check_max_value` — the same for values above the thresholds.
- `check_range` — each level has a `(min, max)` pair; leaving the pair gives
  that level.
- `check_true` — records a boolean with the level you pass in.
- `check_value` — your `check_func` picks the level and your
  `value_json_func` returns a dict that is stored as JSON.
- `check_rate` — call it once per event. Once a full window (0.5 s) has passed,
  `build_node_status` reports the measured rate and grades it: a rate below the
  fatal, error or warn threshold gives that level.
- `set_diag_status` — buffers a ready-made `DiagnosticStatus`.

Parameters are read from the `ParamServer` when the checker is created. A
threshold configured as `health_checker/<key>/<min|max|rate>/<warn|error|fatal>`
takes precedence over the value given in the call.

`build_node_status` returns a `NodeStatus` with the rate results first and then
the buffered diagnostics of each key (oldest first); the buffers are emptied
as they are read. `node_activate`, `node_deactivate` and `node_activated` set
and report whether the node is doing its work. `enable` starts a background
thread that builds a status ten times a second and passes it to the
`publisher` callable given to the constructor; while the clock stands still
nothing is published. `close`, or leaving the `with` block, stops it.

`value_to_json(value)` renders a value as the JSON object `{"value": "<value>"}`
that every status stores.

## Building blocks

- `healthwatch.messages` — the status records (`DiagnosticStatus`,
  `DiagnosticStatusArray`, `NodeStatus`, `HardwareStatus`, `TopicStatistics`,
  `SystemStatus`), the `ErrorLevel` and `ErrorType` enumerations, the timing
  constants `BUFFER_DURATION`, `NODE_STATUS_UPDATE_RATE` and
  `SYSTEM_UPDATE_RATE`, and two clocks: `SystemClock` for wall-clock time and
  `ManualClock` (with `advance` and `set`) for tests and simulations. Every
  time-dependent class takes a `clock` argument.
- `healthwatch.params` — `ParamServer`, an in-memory store with
  `/`-separated names (`get`, `set`, `has`); `ParamManager`, which caches one
  namespace (`refresh`), tells whether a key is configured (`is_not_found`,
  `is_not_found_in`) and, through `publish_candidates`, registers keys seen
  for the first time under `diag_reference/<key>`; `ValueManager`, which
  resolves thresholds from the parameters or falls back to defaults
  (`set_default_value`, `get_value`).
- `healthwatch.rate_checker` — `RateChecker`, a sliding-window event counter
  with `check`, `rate`, `error_level_and_rate`, `error_level` and `set_rate`.
- `healthwatch.diag_buffer` — `DiagBuffer`, which keeps recent statuses per
  level, drops those older than its duration, returns them oldest first with
  `get_and_clear_data`, and reports the most severe live level with
  `error_level`.

## Watching the whole system

- `healthwatch.status_monitor` — `StatusMonitor.update_stamp` restarts the
  timer of a named source; `monitor_status` returns a `NodeStatus` with one
  diagnostic per source, at level `ERROR` once it has been silent longer than
  its timeout. `TimeoutManager` holds one such timer.
- `healthwatch.health_aggregator` — `HealthAggregator` merges node reports
  (`node_status_callback`) and hardware reports (`diagnostic_array_callback`,
  taking a `DiagnosticArray` of `HardwareDiagnostic` entries) into one
  `SystemStatus`. Hardware values are kept only when
  `health_checker/<hardware>/<key>` is configured. `update_connection_status`
  records the running nodes, and `publish_system_status` returns the status and
  hands it, plus one `OverlayText` per level, to the `system_status_publisher`
  and `text_publisher` callables. The helpers `change_to_key_format`,
  `valid_name`, `is_valid_graph_name`, `convert_hardware_level`,
  `filter_node_status`, `generate_text` and `generate_overlay_text` can be used
  on their own.
- `healthwatch.system_status_subscriber` — `SystemStatusSubscriber` passes
  each status given to `system_status_callback` to every callback registered
  with `add_callback`; each callback receives its own copy.
- `healthwatch.health_analyzer` — `HealthAnalyzer` builds a graph from the
  topic statistics of a status (an edge from each subscriber to its
  publisher) and `filter_system_status` keeps only the warning nodes that
  depend on no other warning node, setting `detect_too_match_warning` when the
  number of `WARN` diagnostics reaches `warn_nodes_count_threshold`
  (30 by default). `system_status_callback` does both and passes the summary
  to the `publisher`. `count_warn`, `find_warning_nodes` and
  `find_error_nodes` work on a single status; `to_dot` and `write_dot` export
  the graph in Graphviz format.

## Small linear algebra

- `healthwatch.matrix` — `Matrix`, a rows × cols view into a flat list with a
  stride (`offset`) and a start index. It offers `zeros`, indexing by
  `(row, col)` or by a single index, `row` and `col` views, `copy_to`,
  `transpose`, in-place `*=` and `/=`, `inverse` for sizes 1 to 3 (raising
  `ZeroDivisionError` for a singular matrix) and `tolist`.
- `healthwatch.eigen_solver` — `SymmetricEigensolver3x3` takes a batch of
  symmetric 3×3 matrices, stores them interleaved, and runs each stage of the
  closed-form algorithm per matrix; `solve` runs them all, and `eigenvalues`
  and `eigenvectors` read the results. `solve_symmetric_3x3` handles a single
  matrix.

```python
from healthwatch.eigen_solver import solve_symmetric_3x3

values, vectors = solve_symmetric_3x3([[2, 1, 0], [1, 2, 0], [0, 0, 3]])
```

## What it does not do

The package has no messaging transport and no command-line programs. Statuses
are passed in through method calls and handed out through the callables you
supply; nothing is sent over a network, and no process runs on its own.
Which nodes are running is whatever you pass to
`HealthAggregator.update_connection_status`. Apart from the publishing thread
of `HealthChecker.enable`, nothing happens on a timer: you decide when to call
`publish_system_status`, `ParamManager.refresh` or `publish_candidates`.

## Requirements

Python 3.10 or later. The package has no third-party dependencies; the tests
use pytest, available through the `test` extra.