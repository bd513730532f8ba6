# lagwatch_http

The HTTP interface of a consumer-lag monitoring service. It answers JSON
requests about clusters, topics and consumer groups, reports the configured
modules, lets an operator change the log level at run time, and publishes lag
figures in the Prometheus text exposition format. It has no dependencies
outside the standard library.

## What it does not do

This package is the HTTP front end only. It holds no offset storage and does
no lag evaluation. Cluster, topic and consumer data come from whatever answers
the two queues on `lagwatch_http.messages.ApplicationContext`:

- `storage_channel` receives `StorageRequest` objects; the answer (a list of
  names, a list of offsets, a mapping of topic to `ConsumerPartition` lists,
  or `None` for "not found") is put on the request's `reply` queue.
- `evaluator_channel` receives `EvaluatorRequest` objects; a
  `ConsumerGroupStatus` is put on the request's `reply` queue.

Handlers block until a reply arrives. The `lagwatch-http` command starts
nothing that answers these queues, so on its own it serves the health,
configuration and log-level endpoints, while the `/v3/kafka...` and
`/metrics` endpoints wait for a reply that never comes.

## Running the server

```
lagwatch-http --config settings.toml
```

`--config` is optional and names a TOML file. Listeners come from the
`httpserver` section; when none is configured a default one is opened on a
free port (`:0`) and its address is logged. Each listener has an `address`
(`host:port`, host may be blank), a `timeout` in seconds (300 unless set,
used as the connection timeout and keep-alive idle time), and may name a
`tls` profile whose `certfile` and `keyfile` are required and whose `cafile`
is optional. An invalid address or missing certificate raises `ValueError`;
unreadable TLS files raise `RuntimeError`. `logging.level` sets the starting
log level.

```toml
[general]
access-control-allow-origin = "*"

[httpserver.main]
address = ":8000"
timeout = 60

[storage.default]
class-name = "inmemory"
```

## Endpoints

Health and readiness:

- `GET /burrow/admin` returns `GOOD`
- `GET /burrow/admin/ready` returns `READY`, or `STARTING` with status 503
  while `ApplicationContext.app_ready` is false
- `GET /metrics` returns the metrics described below

Cluster and consumer data:

- `GET /v3/kafka` lists clusters
- `GET /v3/kafka/{cluster}` shows a cluster's configuration
- `GET /v3/kafka/{cluster}/topic` lists topics
- `GET /v3/kafka/{cluster}/topic/{topic}` gives the latest offset per partition
- `GET /v3/kafka/{cluster}/topic/{topic}/consumers` lists the groups reading a topic
- `GET /v3/kafka/{cluster}/consumer` lists consumer groups
- `GET /v3/kafka/{cluster}/consumer/{group}` gives stored offsets for a group
- `GET /v3/kafka/{cluster}/consumer/{group}/status` gives the group status as
  evaluated without `show_all`
- `GET /v3/kafka/{cluster}/consumer/{group}/lag` gives the group status with
  `show_all` set
- `DELETE /v3/kafka/{cluster}/consumer/{group}` asks storage to remove a group

Configuration:

- `GET /v3/config`
- `GET /v3/config/storage`, `/v3/config/storage/{name}`
- `GET /v3/config/evaluator`, `/v3/config/evaluator/{name}`
- `GET /v3/config/cluster`, `/v3/config/cluster/{cluster}`
- `GET /v3/config/consumer`, `/v3/config/consumer/{name}`
- `GET /v3/config/notifier`, `/v3/config/notifier/{name}`; the detail shape
  depends on the notifier's `class-name` (`http`, `email`, `slack`, `null`),
  and any other class gives an empty 200 response

Administration:

- `GET /v3/admin/loglevel` returns the current level (`debug`, `info`,
  `warn`, `error` or `fatal`)
- `POST /v3/admin/loglevel` with a body such as `{"level": "debug"}` sets it;
  `trace` is taken as `debug` and `warning` as `warn`. A body that cannot be
  decoded gives 400, an unknown level gives 404.

Every JSON response carries `error`, `message` and a `request` object with the
requested path (`url`) and the host name. Unknown modules, clusters, topics and
groups answer with 404. If `general.access-control-allow-origin` is set, its
value is sent in the `Access-Control-Allow-Origin` header. Unmatched paths give
a 404 JSON error; a path that differs only by a trailing slash is redirected; a
known path with the wrong method gives 405 with an `Allow` header.

## Metrics

`/metrics` exposes these gauges:

- `burrow_kafka_consumer_lag_total{cluster, consumer_group}`
- `burrow_kafka_consumer_status{cluster, consumer_group}`, an index into
  NOTFOUND, OK, WARN, ERR, STOP, STALL, REWIND
- `burrow_kafka_consumer_partition_lag{cluster, consumer_group, topic, partition}`
- `burrow_kafka_consumer_current_offset{cluster, consumer_group, topic, partition}`,
  only for partitions whose `complete` is 1.0
- `burrow_kafka_topic_partition_offset{cluster, topic, partition}`

Groups whose status is not found are left out. Values are kept in a
`lagwatch_http.metrics.MetricsRegistry` and updated on each scrape.

## Using it from Python

Settings are a nested, case-insensitive mapping addressed with dotted keys:

```python
from lagwatch_http.settings import Settings

settings = Settings.from_mapping({"general": {"access-control-allow-origin": "*"}})
settings.set("storage.default.class-name", "inmemory")
settings.get_string("storage.default.class-name")   # "inmemory"
settings.get_string_map("storage")                 # {"default": {"class-name": "inmemory"}}
```

`Settings.load_toml` reads the same structure from a file.

`lagwatch_http.coordinator.Coordinator` builds the routes with `configure`,
binds and serves its listeners in background threads with `start` (returning
each listener's bound address), closes them with `stop`, answers a single
request with `dispatch`, and can be mounted in any WSGI server through
`wsgi_app`:

```python
import threading

from lagwatch_http.coordinator import Coordinator
from lagwatch_http.messages import ApplicationContext

app = ApplicationContext()
coordinator = Coordinator(app=app)
coordinator.configure()

def answer_storage():
    request = app.storage_channel.get()
    request.reply.put(["main"])

threading.Thread(target=answer_storage).start()
response = coordinator.dispatch("GET", "/v3/kafka")
response.status                # 200
response.json()["clusters"]    # ["main"]
```