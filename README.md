# kperfkit

kperfkit provides building blocks for benchmarking a Kubernetes API server.
It has five modules:

- `kperfkit.requests` defines the request kinds that make up weighted traffic:
  stale and quorum gets and lists, watch lists, puts, patches, pod log reads and
  post-delete requests. Each kind checks its own fields. Invalid input raises
  `ValidationError`, a subclass of `ValueError`.
- `kperfkit.metrics` collects latencies, failures and received bytes in a
  thread-safe `ResponseMetric`. It sorts failures into HTTP, HTTP/2 protocol,
  connection and unknown errors. It also computes percentile latencies and
  error counts.
- `kperfkit.report` holds `ResponseError`, `ResponseStats`,
  `RunnerMetricReport` and `HTTPError`. Each of them can produce a
  JSON-ready form.
- `kperfkit.values` merges nested configuration mappings. It can also apply
  `a.b.c=1` style path assignments and YAML overlays.
- `kperfkit.cliutils` parses `KEY=VALUE[,VALUE]` labels, flow-control
  settings (`PriorityLevel:MatchingPrecedence`) and verbosity levels. It finds
  the default kubeconfig path and splits a node count into node-pool batches.

## Validating requests

```python
from kperfkit.requests import ValidationError, parse_weighted_request

request = parse_weighted_request({
    "shares": 100,
    "staleGet": {"version": "v1", "resource": "pods",
                 "namespace": "default", "name": "example-pod"},
})
request.validate()

try:
    parse_weighted_request({"shares": 100}).validate()
except ValidationError as exc:
    print(exc)  # empty request value
```

`RequestPatch.validate()` also checks that the patch type is `json`, `merge` or
`strategic-merge`. It checks that the body is valid JSON, and stores the body
with surrounding whitespace removed.

## Collecting metrics

```python
from datetime import datetime, timezone

from kperfkit.metrics import (
    APIStatusError,
    ResponseMetric,
    build_error_stats_group_by_type,
    build_percentile_latencies,
)

metric = ResponseMetric()
metric.observe_latency("GET", "/api/v1/pods", 0.012)
metric.observe_failure("GET", "/api/v1/pods", datetime.now(timezone.utc), 0.5,
                       APIStatusError(429, "TooManyRequests"))
metric.observe_failure("GET", "/api/v1/pods", datetime.now(timezone.utc), 0.5,
                       ConnectionRefusedError())
metric.observe_received_bytes(2048)
stats = metric.gather()

build_error_stats_group_by_type(stats.errors)
# {"http/429": 1, "connection/connection refused": 1}

build_percentile_latencies([0.01, 0.02, 0.05])
# [(0.0, 0.01), (0.5, 0.02), (0.9, 0.05), (0.95, 0.05), (0.99, 0.05), (1.0, 0.05)]
```

Failures are classified in this order:

1. An HTTP status code, from `APIStatusError`.
2. An HTTP/2 error: `HTTP2ConnectionError`, `HTTP2StreamError`,
   `HTTP2GoAwayError`, or a lost client connection.
3. A connection error: a timeout, a refused or reset connection, an unexpected
   EOF, or a TLS handshake timeout.
4. Anything else is unknown.

Wrapped exceptions are followed through `__cause__` and `__context__`.

## Building a report

```python
from kperfkit.report import RunnerMetricReport

report = RunnerMetricReport(total=3, duration="1.5s",
                            percentile_latencies=[(0.5, 0.02), (1.0, 0.05)])
report.to_dict()
# {"total": 3, "duration": "1.5s", "totalReceivedBytes": 0,
#  "percentileLatencies": [[0.5, 0.02], [1.0, 0.05]]}
```

`to_dict()` leaves out the optional fields that are empty.

## Merging values

```python
from kperfkit.values import (
    apply_values, build_values, string_path_values_applier, yaml_values_applier,
)

to = {"foo": "bar2", "baz": {"name": "bob", "age": "18"}}
apply_values(to, {"foo": "bar1", "baz": {"name": "alice"}})
# to == {"foo": "bar1", "baz": {"name": "alice", "age": "18"}}

build_values({"a": {"b": 1}},
             string_path_values_applier("a.c=2,tags={x,y}"),
             yaml_values_applier("d: true"))
# {"a": {"b": 1, "c": 2}, "tags": ["x", "y"], "d": True}
```

`build_values` works on a copy of the defaults, so the defaults are never
changed.

## Command-line style options

```python
from kperfkit.cliutils import (
    key_values_map, parse_flow_control, parse_verbosity, plan_nodepool_batches,
)

key_values_map(["zone=a,b"])             # {"zone": ["a", "b"]}
parse_flow_control("workload-low:1000")  # ("workload-low", 1000)
parse_verbosity("2")                     # 2
plan_nodepool_batches("pool", 650, 300)
# [("pool-0", 300), ("pool-1", 300), ("pool-2", 50)]
```

## What the package does not do

- It has no command-line program.
- It does not read whole load profiles or execution-mode settings from files.
- It does not send any traffic to an API server.
- It does not deploy runner groups or virtual node pools, and it does not
  report their status.

It gives you the pieces to validate requests, measure responses and summarise
the results. Driving the requests is left to the caller.

## Running the tests

Install the `test` extra, then run `pytest` from the project root.