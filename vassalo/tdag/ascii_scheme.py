"""Drawing DAGs as ASCII schemes and parsing them back, for tests and debugging.

Events are drawn in columns, one column per creator. Joiners
``║ ╬ ╠ ╣ ╫ ╚ ╝ ╩`` link an event to its parents; ``─`` and ``═`` are
optional fillers. A number next to ``║`` is a far reference: the parent is
that many events back in the column.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from vassalo.dag import BaseEvent
from vassalo.hashing import (
    Event,
    get_event_name,
    get_node_name,
    hash_of,
    set_event_name,
    set_node_name,
)
from vassalo.idx import bytes_to_uint32
from vassalo.tdag.events import ForEachEvent, NamedEvent, by_parents

_FILLERS = re.compile("[ ─═]")

_START_CURRENT = frozenset({"╠", "║╠", "╠╫"})
_START_PREV = frozenset({"║╚", "╚"})
_APPEND_CURRENT = frozenset({"╣", "╣║", "╫╣", "╬"})
_APPEND_PREV = frozenset({"╝║", "╝", "╩╫", "╫╩"})
_PASS_THROUGH = frozenset({"╫", "║", "║║"})
_FORK_MARKS = frozenset({"╚", "╝"})


def _pad(links: list[int], col: int) -> None:
    if len(links) < col + 1:
        links.extend([0] * (col + 1 - len(links)))


def _last_links(links: list[list[int]], symbol: str) -> list[int]:
    if not links:
        raise ValueError(f"'{symbol}' has no link to join")
    return links[-1]


@dataclass
class _Line:
    names: list[str] = field(default_factory=list)
    creators: list[int] = field(default_factory=list)
    links: list[list[int]] = field(default_factory=list)
    prev_ref: int = 0


def _parse_line(
    line: str,
    prev_far_refs: dict[int, int],
    cur_far_refs: dict[int, int],
    known_names: dict[str, BaseEvent],
) -> _Line:
    parsed = _Line()
    col = 0
    for raw in _FILLERS.split(line.strip()):
        if not raw:
            continue
        symbol = raw.strip()
        if symbol.startswith("//"):
            break

        if symbol == "":
            col -= 1
        elif symbol in _START_CURRENT:
            refs = [0] * (col + 1)
            refs[col] = 1
            parsed.links.append(refs)
        elif symbol in _START_PREV:
            refs = [0] * (col + 1)
            refs[col] = prev_far_refs.get(col, 2)
            parsed.links.append(refs)
        elif symbol in _APPEND_CURRENT:
            last = _last_links(parsed.links, symbol)
            _pad(last, col)
            last[col] = 1
        elif symbol in _APPEND_PREV:
            last = _last_links(parsed.links, symbol)
            _pad(last, col)
            last[col] = prev_far_refs.get(col, 2)
        elif symbol in _PASS_THROUGH:
            pass
        elif symbol.startswith("║") or symbol.endswith("║"):
            symbol = symbol.strip("║")
            try:
                cur_far_refs[col] = int(symbol)
            except ValueError:
                raise ValueError(f"invalid far reference '{raw}'") from None
        else:
            if symbol in known_names or symbol in parsed.names:
                raise ValueError(f"event '{symbol}' already exists")
            parsed.creators.append(col)
            parsed.names.append(symbol)
            if len(parsed.links) < len(parsed.names):
                parsed.links.append([0] * (col + 1))

        # a fork mark shares its column with the event that follows it
        if symbol not in _FORK_MARKS:
            col += 1
        elif col in prev_far_refs:
            parsed.prev_ref = prev_far_refs[col] - 1
        else:
            parsed.prev_ref = 1
    return parsed


def ascii_scheme_for_each(
    scheme: str,
    callback: Optional[ForEachEvent] = None,
) -> tuple[list[int], dict[int, list[NamedEvent]], dict[str, NamedEvent]]:
    """Parse events from an ASCII scheme.

    Return the node ids in column order, each node's events in order and
    the events by name. Event names are registered for logging.
    """
    callback = callback or ForEachEvent()
    nodes: list[int] = []
    events: dict[int, list[NamedEvent]] = {}
    names: dict[str, NamedEvent] = {}
    cur_far_refs: dict[int, int] = {}

    for line in scheme.strip().split("\n"):
        prev_far_refs, cur_far_refs = cur_far_refs, {}
        parsed = _parse_line(line, prev_far_refs, cur_far_refs, names)

        for name, creator_col, links in zip(parsed.names, parsed.creators, parsed.links):
            if len(nodes) <= creator_col:
                validator = bytes_to_uint32(hash_of(name.encode("utf-8"))[:4])
                nodes.append(validator)
                events[validator] = []
            creator = nodes[creator_col]
            own = events[creator]

            parents: list[Event] = []
            last = len(own) - parsed.prev_ref - 1
            if last >= 0:
                self_parent = own[last]
                seq = self_parent.seq + 1
                parents.append(self_parent.id)
                max_lamport = self_parent.lamport
            else:
                seq = 1
                max_lamport = 0

            for column, ref in enumerate(links):
                if ref < 1:
                    continue
                others = events[nodes[column]]
                position = len(others) - ref
                if position < 0:
                    # the very first event is forked: no more parents
                    break
                parent = others[position]
                if parent.id in parents:
                    continue
                parents.append(parent.id)
                max_lamport = max(max_lamport, parent.lamport)

            event = NamedEvent(
                seq=seq,
                creator=creator,
                parents=parents,
                lamport=max_lamport + 1,
                name=name,
            )
            if callback.build is not None and callback.build(event, name) is False:
                continue
            event.set_id(hashlib.sha256(event.to_bytes()).digest()[:24])

            own.append(event)
            names[name] = event
            set_event_name(event.id, name)
            if callback.process is not None:
                callback.process(event, name)

    for node, node_events in events.items():
        if not node_events:
            continue
        first = str(node_events[0].id)
        letter = first[4:5] if first.startswith("node") else first[0:1]
        set_node_name(node, "node" + letter.upper())

    return nodes, events, names


def ascii_scheme_to_dag(
    scheme: str,
) -> tuple[list[int], dict[int, list[NamedEvent]], dict[str, NamedEvent]]:
    """Parse events from an ASCII scheme without callbacks."""
    return ascii_scheme_for_each(scheme, ForEachEvent())


class _Position(Enum):
    NONE = 0
    PASS = 1
    FIRST = 2
    LEFT = 3
    RIGHT = 4
    LAST = 5


@dataclass(eq=False)
class _Row:
    name: str = ""
    refs: list[int] = field(default_factory=list)
    self: int = 0
    first: int = 0
    last: int = 0

    def position(self, i: int) -> _Position:
        if i < self.self:
            if i < self.first:
                return _Position.NONE
            if i > self.first:
                return _Position.LEFT if self.refs[i] > 0 else _Position.PASS
            return _Position.FIRST
        if i > self.last:
            return _Position.NONE
        if i < self.last:
            if self.refs[i] > 0 or i == self.self:
                return _Position.RIGHT
            return _Position.PASS
        return _Position.LAST


def _nolink(n: int) -> str:
    return " " * n


def _link(n: int) -> str:
    if n < 3:
        return " " * n
    text = "══" * ((n - 1) // 2) + "═"
    if n % 2 == 0:
        text += "═"
    return text


class _Scheme:
    def __init__(self) -> None:
        self.rows: list[_Row] = []
        self.col_width = 0

    def add(self, row: _Row) -> None:
        self.rows.append(row)

    def optimize(self) -> None:
        """Move events up to shorten far references where the drawing allows."""
        rows = self.rows
        for start, row in enumerate(rows):
            curr = start
            for i_ref, ref in enumerate(row.refs):
                if ref < 3:
                    continue
                prev = self._find_swap_target(curr, i_ref)
                if prev is None:
                    continue
                if self._try_swap(row, curr, prev, i_ref, ref):
                    curr = prev

    def _find_swap_target(self, curr: int, i_ref: int) -> Optional[int]:
        rows = self.rows
        prev = curr - 1
        while prev >= 0:
            if rows[prev].self == i_ref:
                return prev
            if rows[curr].self == rows[prev].self:
                return None
            prev -= 1
        return None

    def _try_swap(self, row: _Row, curr: int, prev: int, i_ref: int, ref: int) -> bool:
        rows = self.rows
        prev_row = rows[prev]
        curr_self = rows[curr].self
        row.refs[i_ref] = ref - 1

        if len(prev_row.refs) > curr_self:
            if prev_row.refs[curr_self] != 1:
                row.refs[i_ref] = ref
                return False
            prev_row.refs[curr_self] += 1

        cursor = prev + 1
        for p_ref, value in enumerate(prev_row.refs):
            if cursor == curr:
                break
            if p_ref == prev_row.self or value == 0:
                continue
            if prev_row.self < len(rows[cursor].refs):
                # an event in between refers to prev: the swap would break it
                row.refs[i_ref] = ref
                return False
            while True:
                if p_ref == rows[cursor].self and prev_row.refs[p_ref] < 2:
                    prev_row.refs[p_ref] += 1
                    cursor = prev + 1
                    break
                if cursor < curr:
                    cursor += 1
                    continue
                cursor = prev + 1
                break

        missing = len(rows[curr].refs) - len(prev_row.refs)
        if missing > 0:
            prev_row.refs.extend([0] * missing)

        rows[curr], rows[prev] = rows[prev], rows[curr]
        return True

    def __str__(self) -> str:
        width = self.col_width
        out: list[str] = []
        for row in self.rows:
            for i, ref in enumerate(row.refs):
                pos = row.position(i)
                cell = " ║"
                if ref == 2:
                    if pos in (_Position.FIRST, _Position.LEFT):
                        cell = " ║║"
                    elif pos in (_Position.RIGHT, _Position.LAST):
                        cell = "║║"
                if ref > 2:
                    if pos in (_Position.FIRST, _Position.LEFT):
                        cell = f" ║{ref}"
                    elif pos in (_Position.RIGHT, _Position.LAST):
                        cell = f"{ref}║"
                out.append(cell + _nolink(width - len(cell) + 2))
            out.append("\n")

            for i, ref in enumerate(row.refs):
                out.append(self._event_cell(row, i, ref))
            out.append("\n")
        return "".join(out)

    def _event_cell(self, row: _Row, i: int, ref: int) -> str:
        width = self.col_width
        pos = row.position(i)
        if i == row.self and ref == 0:
            tail = width - len(row.name) + 1
            filler = _link(tail) if pos is _Position.RIGHT else _nolink(tail)
            return " " + row.name + filler
        if i == row.self and ref > 1:
            tail = width - len(row.name)
            if pos is _Position.FIRST:
                return row.name + " ╝" + _link(tail)
            if pos is _Position.LAST:
                return "╚ " + row.name + _nolink(tail)
            return "╚ " + row.name + _link(tail)
        if ref > 1:
            cells = {
                _Position.FIRST: " ║╚" + _link(width - 1),
                _Position.LAST: "╝║" + _nolink(width),
                _Position.LEFT: "─╫╩" + _link(width - 1),
                _Position.RIGHT: "╩╫─" + _link(width - 1),
                _Position.PASS: "─╫─" + _link(width - 1),
            }
        else:
            cells = {
                _Position.FIRST: " ╠" + _link(width),
                _Position.LAST: "═╣" + _nolink(width),
                _Position.LEFT: "═╬" + _link(width),
                _Position.RIGHT: "═╬" + _link(width),
                _Position.PASS: "─╫─" + _link(width - 1),
            }
        return cells.get(pos, " ║" + _nolink(width))


def dag_to_ascii_scheme(events: list[BaseEvent]) -> str:
    """Draw events as an ASCII scheme.

    Raise ValueError if a parent is missing from the events or an event
    has a wrong number of self-parents.
    """
    ordered = by_parents(events)

    scheme = _Scheme()
    processed: dict[bytes, BaseEvent] = {}
    node_cols: dict[int, int] = {}
    event_index: dict[int, dict[bytes, int]] = {}
    creator_last_index: dict[int, int] = {}
    seq_count: dict[int, dict[int, int]] = {}

    for event in ordered:
        creator = event.creator
        counts = seq_count.setdefault(creator, {})
        event_index.setdefault(creator, {})
        counts[event.seq] = counts.get(event.seq, 0) + 1
        creator_last_index[creator] = creator_last_index[creator] + 1 if creator in creator_last_index else 0

        event_id = event.id
        row = _Row()
        if creator not in node_cols:
            node_cols[creator] = len(node_cols)
        row.self = node_cols[creator]

        row.name = get_event_name(event_id)
        if not row.name:
            prefix = get_node_name(creator) or chr(ord("a") + row.self)
            row.name = f"{prefix}{event.seq:03d}"
        scheme.col_width = max(scheme.col_width, len(row.name))

        row.refs = [0] * len(node_cols)
        self_refs = 0
        for parent_id in event.parents:
            parent = processed.get(parent_id)
            if parent is None:
                raise ValueError(f"parent {parent_id} of {event_id} not found")
            if parent.creator == creator:
                self_refs += 1
                # a fork keeps its self reference drawn
                if counts[event.seq] == 1:
                    continue
            shift = 1 if parent.creator != creator else 0
            row.refs[node_cols[parent.creator]] = (
                creator_last_index[parent.creator] - event_index[parent.creator][parent.id] + shift
            )
        if (event.seq <= 1 and self_refs != 0) or (event.seq > 1 and self_refs != 1):
            raise ValueError(f"self-parents count of {event_id} is {self_refs}")

        row.first = len(row.refs)
        for i, ref in enumerate(row.refs):
            if ref == 0:
                continue
            row.first = min(row.first, i)
            row.last = max(row.last, i)

        scheme.add(row)
        processed[event_id] = event
        event_index[creator][event_id] = creator_last_index[creator]

    scheme.optimize()
    scheme.col_width += 3
    return str(scheme)