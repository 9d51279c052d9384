# vassalo

Building blocks for nodes that take part in event-based (DAG) consensus.
Everything is pure Python with no third-party dependencies.

## Modules

- `vassalo.idx` — big-endian encoding of numeric indexes:
  `uint32_to_bytes`, `bytes_to_uint32`, `uint64_to_bytes`, `bytes_to_uint64`,
  and `max_lamport`.
- `vassalo.hashing` — 32-byte `Hash` and `Event` identifiers. An event id
  keeps its epoch in bytes 0–4 and its Lamport time in bytes 4–8
  (`Event.epoch()`, `Event.lamport()`, `Event.short_id()`). Also provides
  `hash_of` (SHA-256), `bytes_to_hash`, `hex_to_hash`, `big_to_hash`,
  `sort_by_epoch_and_lamport`, random id generators (`fake_hash`,
  `fake_event`, `fake_events`, `fake_peer`) and a process-wide name registry
  that makes ids readable in logs (`set_event_name`, `get_event_name`,
  `set_node_name`, `get_node_name`).
- `vassalo.dag` — `BaseEvent` (epoch, seq, frame, creator, parents, Lamport
  time, id), `Metric` (event count and total size), `events_metric`,
  `events_ids` and `events_to_string`.
- `vassalo.pos` — weighted validator sets. `ValidatorsBuilder` and
  `BigValidatorsBuilder` (which scales arbitrarily large weights down by a
  power of two so the total fits in 31 bits) build a read-only `Validators`;
  validators are ordered by weight descending, then id ascending.
  `Validators.new_counter()` returns a `WeightCounter` that tells when a
  quorum (two thirds of the total weight, plus one) is reached.
- `vassalo.tdag.events` — `NamedEvent` (a `BaseEvent` with a name and an RLP
  encoding via `to_bytes()`), the `ForEachEvent` callbacks and `by_parents`,
  a topological sort.
- `vassalo.tdag.ascii_scheme` — `ascii_scheme_to_dag` and
  `ascii_scheme_for_each` parse a DAG drawn with box characters;
  `dag_to_ascii_scheme` draws events back as such a scheme.
- `vassalo.gossip.dagordering` — `EventsBuffer`, which holds events until
  all their parents are known, then checks and processes them in order,
  spilling the oldest events when over its `Metric` limit. Dropped events
  are reported through the `released` callback with `DuplicateEventError`,
  `AlreadyConnectedEventError`, `SpilledEventError` or the exception raised
  by `check`/`process`.
- `vassalo.gossip.dagprocessor` — `Processor`, which runs parentless checks
  and ordered insertion on worker threads in front of an `EventsBuffer`,
  limits the events in flight and raises `BusyError` when that limit cannot
  be met in time. `default_config()` returns the default `Config`.
- `vassalo.gossip.leecher` — `BaseLeecher`, which rechecks periodically
  that one download session is running with one of its registered peers.
- `vassalo.gossip.peerleecher` — `BasePeerLeecher`, which keeps a fixed
  number of chunk requests in flight with one peer, requesting more as
  received chunks are processed.

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Examples

```python
from vassalo.pos import ValidatorsBuilder

builder = ValidatorsBuilder()
builder.set(1, 10)
builder.set(2, 20)
validators = builder.build()

counter = validators.new_counter()
counter.count(2)
print(counter.sum(), counter.has_quorum())   # 20 False
counter.count(1)
print(counter.sum(), counter.has_quorum())   # 30 True
```

```python
from vassalo.tdag.ascii_scheme import ascii_scheme_to_dag

nodes, events, names = ascii_scheme_to_dag("""
a00 b00
║   ║
a01═╣
""")
print(len(nodes), sorted(names))             # 2 ['a00', 'a01', 'b00']
```

## What it does not do

The package has no networking, storage or command-line tool. It does not
fetch announced items from peers, and it has no seeder that answers stream
requests for ranges of items: the leechers in `vassalo.gossip` only decide
when to start sessions and request chunks, and leave sending, receiving and
storing data to the callbacks you supply.