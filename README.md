# kuberhealthy

Building blocks for running synthetic health checks against a Kubernetes
cluster and describing what they find. Only the standard library is needed.

## What is inside

- **Workload records.** `kuberhealthy.khstate`, `kuberhealthy.khcheck` and
  `kuberhealthy.khjob` hold the custom resources that describe checks, jobs
  and their last known state: `WorkloadDetails`, `KuberhealthyState`,
  `KuberhealthyStateList`, `CheckConfig`, `KuberhealthyCheck`,
  `KuberhealthyCheckList`, `JobConfig` (with `JobPhase`), `KuberhealthyJob`
  and `KuberhealthyJobList`. Each converts to and from plain dictionaries
  with `to_dict()` / `from_dict()`; the resources and configs can be copied
  with `deep_copy()`. Helper constructors are `new_workload_details`,
  `new_kuberhealthy_state`, `new_kuberhealthy_check` and
  `new_kuberhealthy_job`. `kuberhealthy.meta` provides `ObjectMeta` and
  `GroupVersion`.
- **Cluster state.** `kuberhealthy.health.new_state()` builds a healthy
  top-level status document; `State.add_error(...)` records non-blank
  errors, `State.to_json()` renders it as indented JSON and
  `State.write_http_status_response(writer)` writes that JSON to a binary
  writer. `CheckResult.success()` and `CheckResult.failure(errors)` are the
  outcomes returned by the checks below.
- **Metrics.** `kuberhealthy.metrics.generate_metrics(state)` renders a state
  in the Prometheus text format; `error_state_metrics(state)` and
  `write_metric_error(writer, state)` give the fallback output that marks
  Kuberhealthy itself as failing. `MetricsClient` is the abstract base for
  metric sinks.
- **InfluxDB.** `kuberhealthy.influx.InfluxClient(database, InfluxConfig(...))`
  pushes points to an InfluxDB server's HTTP `/write` endpoint (over HTTP,
  HTTPS or a Unix socket) and raises `InfluxError` when the write is
  rejected. `build_line_protocol(points, tags)` renders the body.
- **Master election.** `kuberhealthy.master.calculate_master(client, namespace)`
  picks the running Kuberhealthy pod whose name comes first alphabetically;
  `i_am_master(client, namespace)` compares it with the `POD_NAME`
  environment variable. `debug_always_master_on()` makes every query answer
  yes.
- **Checks.**
  - `kuberhealthy.pod_status`: `find_pods_not_running(...)` lists pods in
    `Pending`, `Failed` or `Unknown` that are older than a skip duration;
    `run_pod_status_check(client)` reads `TARGET_NAMESPACE` and
    `SKIP_DURATION`.
  - `kuberhealthy.pod_restarts`: `PodRestartsChecker(client, settings).run()`
    reports pods with more `BackOff` warning events than allowed;
    `settings_from_env()` reads `POD_NAMESPACE` and `MAX_FAILURES_ALLOWED`.
  - `kuberhealthy.resource_quota`: `run_resource_quota_check(client, settings)`
    reports namespaces whose CPU or memory quota usage has reached a
    threshold; `parse_settings()` reads `DEBUG`, `BLACKLIST`, `WHITELIST`
    and `THRESHOLD`.
  - `kuberhealthy.network`: `NetworkConnectionChecker(settings).run()` checks
    that a `tcp://` or `udp://` target (TCP by default) can be dialled;
    `settings_from_env()` reads `CONNECTION_TARGET` and
    `CONNECTION_TARGET_UNREACHABLE`.
- **Helpers.** `kuberhealthy.durations.parse_duration` reads durations such
  as `10m` or `1h30m`; `kuberhealthy.quantity.parse_quantity` and
  `milli_value` read Kubernetes resource quantities such as `500m` or `2Gi`.

## Cluster clients

The checks and the master election do not talk to a cluster themselves.
They take a client object you supply, which returns resources as plain
JSON-shaped mappings:

- `list_pods(namespace, label_selector="", field_selector="")` for
  `master` and `pod_status`;
- `list_events(namespace, field_selector="")` and
  `get_pod(namespace, name)` (raising `LookupError` when the pod is gone)
  for `pod_restarts`;
- `list_namespaces()` and `list_resource_quotas(namespace)` for
  `resource_quota`.

## Example

```python
from kuberhealthy.health import new_state
from kuberhealthy.khstate import KHWorkload, new_workload_details
from kuberhealthy.metrics import generate_metrics

state = new_state()
details = new_workload_details(KHWorkload.KHCHECK)
details.ok = True
details.namespace = "kuberhealthy"
details.run_duration = "1.5s"
state.check_details["dns-status"] = details

print(generate_metrics(state))
```

## Generating CRD manifests

The package installs one command, which runs `controller-gen` for the
`khcheck`, `khjob` and `khstate` resource definitions, writing into
`./generated` and working from the `../pkg/apis/<resource>/v1` directories:

```
kuberhealthy-generate-crds --controller-gen /usr/local/bin/controller-gen
```

The `controller-gen` binary must be installed separately; its path defaults
to `controller-gen` on the `PATH`. The command exits with status 1 on the
first failure.

## What this package does not do

- It contains no Kubernetes API client; you pass in your own (see above).
- The checks return a `CheckResult`; they do not send it anywhere, and
  there are no commands that run them.
- It does not serve the status page or the metrics over HTTP; it only
  produces the text and writes it to a writer you give it.

## Running the tests

```
pip install -e .[test]
pytest
```