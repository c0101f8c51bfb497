"""Tracing for temporal flows.

Flows report what happens to their pending trees as trace records:

- push: content offered to a flow, whether a point took it
- branch: ambiguous content split a point into alternatives
- execute: the executor ran a prepared tree
- periodic_fire: a periodic sub-flow re-triggered
- session_start / session_end: a runner session around many ticks

Records go through the process-wide ObservabilityHub to its sinks. Engine
code builds a record only after checking ``hub.enabled``:

    >>> hub = ObservabilityHub.get_instance()
    >>> if hub.enabled:
    ...     hub.emit(PushRecord(content="1", accepted=True))

Tests and the debug command collect records with ``capture``:

    >>> with ObservabilityHub.get_instance().capture() as sink:
    ...     flow.push(1)
    >>> sink.get_counts()
    {'push': 1}
"""

import logging
import threading
from collections import Counter
from contextlib import contextmanager
from enum import IntEnum
from typing import Callable, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)


class TraceLevel(IntEnum):
    """How much of a flow's activity is traced.

    Each level includes the ones below it.
    """
    OFF = 0
    MINIMAL = 1   # session_start / session_end
    NORMAL = 2    # push, branch, execute, periodic_fire
    VERBOSE = 3   # pending tree dumps in push records

    @classmethod
    def from_name(cls, name: str) -> "TraceLevel":
        """Level for a configuration name such as ``"normal"``.

        Raises:
            ValueError: If the name is not a level.
        """
        try:
            return cls[name.upper()]
        except KeyError:
            raise ValueError(f"Unknown trace level: {name!r}") from None


class Sink:
    """Destination for trace records (JSONL file, console, memory)."""

    def write(self, record: "TraceRecord") -> None:
        raise NotImplementedError

    def flush(self) -> None:
        pass

    def close(self) -> None:
        pass


class ObservabilityHub:
    """Process-wide trace dispatcher.

    Holds the trace level and the sinks, drops records above the level
    and counts what was delivered per record type. Use get_instance().
    """

    _instance: Optional["ObservabilityHub"] = None
    _lock = threading.Lock()

    def __init__(self):
        self._level = TraceLevel.OFF
        self._sinks: List[Sink] = []
        self._counts: Counter = Counter()
        self._emit_lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> "ObservabilityHub":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Shut down and forget the hub. For testing only."""
        with cls._lock:
            if cls._instance is not None:
                cls._instance.shutdown()
            cls._instance = None

    def configure(
        self,
        level: TraceLevel = TraceLevel.OFF,
        sinks: Optional[List[Sink]] = None,
    ) -> None:
        """Set the trace level and register additional sinks."""
        self._level = level
        for sink in sinks or []:
            self.add_sink(sink)

    def add_sink(self, sink: Sink) -> None:
        with self._emit_lock:
            self._sinks.append(sink)

    def remove_sink(self, sink: Sink) -> None:
        with self._emit_lock:
            if sink in self._sinks:
                self._sinks.remove(sink)

    def emit(self, record: "TraceRecord") -> None:
        """Deliver a record to every sink if its level is traced."""
        if record.min_level > self._level:
            return
        with self._emit_lock:
            self._counts[record.record_type] += 1
            self._each_sink("write", lambda sink: sink.write(record))

    def flush(self) -> None:
        with self._emit_lock:
            self._each_sink("flush", lambda sink: sink.flush())

    def shutdown(self) -> None:
        """Flush and close every sink, then turn tracing off."""
        with self._emit_lock:
            self._each_sink("close", _flush_and_close)
            self._sinks.clear()
            self._counts.clear()
        self._level = TraceLevel.OFF

    def _each_sink(self, action: str, call: Callable[[Sink], None]) -> None:
        # A failing sink never interrupts the flow that emitted the record
        for sink in self._sinks:
            try:
                call(sink)
            except Exception as e:
                logger.debug("Sink %s failed to %s: %s", type(sink).__name__, action, e)

    @contextmanager
    def capture(
        self,
        level: TraceLevel = TraceLevel.NORMAL,
        max_records: int = 10000,
    ) -> Iterator["MemorySink"]:
        """Collect records into a MemorySink for the duration of a block.

        The previous level is restored and the sink removed afterwards.
        """
        sink = MemorySink(max_records=max_records)
        previous = self._level
        self.add_sink(sink)
        self._level = level
        try:
            yield sink
        finally:
            self.remove_sink(sink)
            self._level = previous

    def reset_counts(self) -> None:
        with self._emit_lock:
            self._counts.clear()

    @property
    def counts(self) -> Dict[str, int]:
        """Delivered records per record type since the last reset."""
        return dict(self._counts)

    @property
    def enabled(self) -> bool:
        return self._level > TraceLevel.OFF

    @property
    def verbose(self) -> bool:
        """True if records should carry full tree dumps."""
        return self._level >= TraceLevel.VERBOSE

    @property
    def level(self) -> TraceLevel:
        return self._level

    def allows(self, level: TraceLevel) -> bool:
        return self._level >= level


def _flush_and_close(sink: Sink) -> None:
    sink.flush()
    sink.close()


# Records and sinks import TraceLevel and Sink from this module
from temporalflow.observability.records import TraceRecord
from temporalflow.observability.sinks import FileSink, ConsoleSink, MemorySink, NullSink

__all__ = [
    "TraceLevel",
    "Sink",
    "ObservabilityHub",
    "TraceRecord",
    "FileSink",
    "ConsoleSink",
    "MemorySink",
    "NullSink",
]
