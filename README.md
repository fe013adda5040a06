# geyser-tools

Building blocks for services that take account, slot, transaction and block
updates from a Geyser gRPC stream and relay them to Kafka or Google Pub/Sub.

The package holds the parts of such a relay that do not depend on a
particular broker or gRPC client:

- **Configuration** (`geyser_tools.config`): `load(path)` reads a YAML
  (`.yaml`, `.yml`) or JSON (`.json`) file and returns its data; any other
  extension raises `ValueError`. `ConfigGrpcRequest.from_dict` validates the
  subscription request section and `to_proto()` turns it into the plain
  dictionary structure of a `SubscribeRequest`. `parse_usize_str` accepts
  integers or strings with `_` separators, such as `"9_500_000"`;
  `parse_duration_ms_str` does the same for milliseconds and returns a
  `timedelta`; `parse_socket_addr` turns `"127.0.0.1:8873"` or
  `"[::1]:8873"` into a `(host, port)` pair.
- **Kafka settings** (`geyser_tools.kafka.config`): `Config` with its
  `dedup`, `grpc2kafka` and `kafka2grpc` sections. The queue size defaults
  to 10 000 and the channel capacity to 250 000. The only dedup backend is
  `{"type": "memory"}`, whose `create()` coroutine returns a
  `KafkaDedupMemory`.
- **Pub/Sub settings** (`geyser_tools.pubsub.config`): `Config` with client,
  publisher and batch settings. A batch defaults to at most 10 messages and
  9 500 000 bytes, waits at most 100 ms (`max_wait_ms`), and at most 100
  batches are in flight.
- **Deduplication** (`geyser_tools.kafka.dedup`): `KafkaDedupMemory.allowed`
  is a coroutine that returns `True` the first time it sees a slot and
  32-byte hash. It forgets slots more than 75 below the newest slot it has
  added and rejects updates for slots older than the oldest slot it still
  holds.
- **Record keys** (`geyser_tools.kafka.keys`): `make_message_key` builds
  `<slot>_<sha256 hex of payload>` keys; `parse_message_key` splits one back
  into a `MessageKey(slot, hash_hex, hash)` and raises `ValueError` on a
  malformed key.
- **Metrics** (`geyser_tools.metrics`, `geyser_tools.prom`,
  `geyser_tools.kafka.prom`, `geyser_tools.pubsub.prom`): counters and
  gauges rendered in the Prometheus text format, and a small HTTP server for
  them.
- **Process set-up** (`geyser_tools.runtime`): `setup_tracing()` adds a
  stdout log handler to the root logger, with the level taken from the
  `LOG_LEVEL` environment variable (default `INFO`) and colour only when
  stdout and stderr are terminals; calling it twice raises `RuntimeError`.
  `create_shutdown()`, called inside a running event loop, returns a future
  that completes on the first SIGINT or SIGTERM.
- **Version information** (`geyser_tools.version`): the `VERSION` record,
  `Version.to_json()`, and `get_pkg_version(lockfile_text, pkg_name)`, which
  lists the distinct versions of a package in a Cargo-style lock file,
  comma separated.

## Loading a configuration

```python
from geyser_tools.config import load
from geyser_tools.kafka.config import Config

config = Config.from_dict(load("config.yaml"))
if config.grpc2kafka is not None:
    proto = config.grpc2kafka.request.to_proto()
```

## Building a subscription request

```python
from geyser_tools.config import ConfigGrpcRequest

request = ConfigGrpcRequest.from_dict({
    "slots": {"client": {"filter_by_commitment": True}},
    "transactions": {
        "client": {"vote": False, "failed": False, "account_include": []},
    },
    "blocks_meta": ["client"],
    "commitment": "confirmed",
})
proto = request.to_proto()
```

Account filters take one of three forms, read by
`accounts_filter_from_value` into `MemcmpFilter`, `DataSizeFilter` or
`TokenAccountStateFilter`:

```yaml
accounts:
  client:
    owner: ["owner-address"]
    filters:
      - Memcmp: { offset: 0, base58: "123" }
      - DataSize: 165
      - TokenAccountState
```

`accounts_filter_to_value` writes a filter back in the same form.

## Deduplicating records

```python
from geyser_tools.kafka.dedup import KafkaDedupMemory
from geyser_tools.kafka.keys import make_message_key, parse_message_key

dedup = KafkaDedupMemory()
key = parse_message_key(make_message_key(42, b"encoded update"))
first = await dedup.allowed(key.slot, key.hash)   # True
again = await dedup.allowed(key.slot, key.hash)   # False
```

## Metrics

`geyser_tools.metrics.Registry` holds uniquely named `Counter`, `Gauge`,
`CounterVec` and `GaugeVec` metrics and renders them with
`Registry.encode()`.

`geyser_tools.prom.run_server(address, collectors)` registers the `version`
counter and the given collectors on its first call, then serves `/metrics`
from a background thread and answers every other path with 404. It returns
the `ThreadingHTTPServer`, so the caller can shut it down:

```python
from geyser_tools.kafka import prom as kafka_prom
from geyser_tools.prom import run_server

server = run_server("127.0.0.1:8873", kafka_prom.COLLECTORS)
kafka_prom.recv_inc()
```

`GrpcMessageKind.from_oneof` maps the name of an update field (`"account"`,
`"slot"`, `"block_meta"`, ...) to the kind used as a metrics label.
`geyser_tools.kafka.prom.StatsContext` records per-broker librdkafka
statistics as `kafka_stats` gauges; its `log` and `error` callbacks mark the
first error-or-worse report, and `wait_error()` completes once one has been
made.

## What the package does not do

It has no commands and contains no gRPC, Kafka or Pub/Sub client or server.
It does not subscribe to a Geyser stream, publish or consume records, or
serve updates over gRPC; a relay built on it supplies those parts and uses
the configuration, keys, deduplication and metrics given here.

## Running the tests

The tests use pytest and pytest-asyncio, listed under the `test` extra:

```
pip install -e ".[test]"
pytest
```