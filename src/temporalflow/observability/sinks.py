"""Trace output sinks for observability.

Sinks receive trace records and handle their output to various destinations:
- FileSink: JSONL file output
- ConsoleSink: Formatted console output
- MemorySink: In-memory buffer for testing/analysis
- NullSink: Discards everything
"""

import sys
import threading
from collections import Counter, deque
from pathlib import Path
from typing import Callable, Deque, Dict, List, Optional, TextIO

from temporalflow.observability import Sink
from temporalflow.observability.records import (
    TraceRecord,
    PushRecord,
    BranchRecord,
    ExecuteRecord,
    PeriodicFireRecord,
)


class FileSink(Sink):
    """Sink that writes trace records to a JSONL file.

    Each record is written as a single JSON line, suitable for
    post-processing with tools like jq.

    Args:
        path: Path to the output file.
        buffer_size: Number of records to buffer before flushing (default: 100).
        append: Whether to append to existing file (default: False).

    Example:
        >>> sink = FileSink("/tmp/trace.jsonl")
        >>> hub.add_sink(sink)
        >>> # ... run flows ...
        >>> sink.close()  # Ensure final flush
    """

    def __init__(
        self,
        path: str,
        buffer_size: int = 100,
        append: bool = False,
    ):
        self._path = Path(path)
        self._buffer_size = buffer_size
        self._append = append

        self._buffer: List[str] = []
        self._file: Optional[TextIO] = None
        self._lock = threading.Lock()

        self._open_file()

    def _open_file(self) -> None:
        mode = "a" if self._append else "w"
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self._path, mode, encoding="utf-8")

    def write(self, record: TraceRecord) -> None:
        line = record.to_json()

        with self._lock:
            self._buffer.append(line)
            if len(self._buffer) >= self._buffer_size:
                self._flush_buffer()

    def _flush_buffer(self) -> None:
        """Flush the buffer to disk. Must be called with lock held."""
        if not self._buffer or self._file is None:
            return

        for line in self._buffer:
            self._file.write(line + "\n")
        self._file.flush()
        self._buffer.clear()

    def flush(self) -> None:
        with self._lock:
            self._flush_buffer()

    def close(self) -> None:
        with self._lock:
            self._flush_buffer()
            if self._file is not None:
                self._file.close()
                self._file = None


class ConsoleSink(Sink):
    """Sink that writes formatted trace records to console.

    Args:
        stream: Output stream (default: sys.stderr).
        color: Enable ANSI color codes (default: True).
        show_rejected: Also print pushes nothing accepted (default: True).
        format_fn: Optional custom format function for records.

    Example:
        >>> sink = ConsoleSink()
        >>> hub.add_sink(sink)
    """

    # ANSI color codes
    COLORS = {
        "reset": "\033[0m",
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "blue": "\033[94m",
        "magenta": "\033[95m",
        "cyan": "\033[96m",
        "gray": "\033[90m",
    }

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        color: bool = True,
        show_rejected: bool = True,
        format_fn: Optional[Callable[[TraceRecord], Optional[str]]] = None,
    ):
        self._stream = stream or sys.stderr
        self._color = color and self._stream.isatty()
        self._show_rejected = show_rejected
        self._format_fn = format_fn
        self._lock = threading.Lock()

    def _colorize(self, text: str, color: str) -> str:
        if not self._color:
            return text
        return f"{self.COLORS.get(color, '')}{text}{self.COLORS['reset']}"

    def write(self, record: TraceRecord) -> None:
        if self._format_fn:
            line = self._format_fn(record)
        else:
            line = self._format_record(record)

        if line:
            with self._lock:
                self._stream.write(line + "\n")
                self._stream.flush()

    def _format_record(self, record: TraceRecord) -> Optional[str]:
        """Format a record for console output, or None to skip it."""
        if isinstance(record, PushRecord):
            return self._format_push(record)
        elif isinstance(record, BranchRecord):
            return self._format_branch(record)
        elif isinstance(record, ExecuteRecord):
            return self._format_execute(record)
        elif isinstance(record, PeriodicFireRecord):
            tag = self._colorize("[PERIODIC]", "magenta")
            return f"{tag} every {record.period:g} (fire {record.fire_index}, remainder {record.remainder:g})"
        else:
            return None

    def _format_push(self, record: PushRecord) -> Optional[str]:
        if record.accepted:
            tag = self._colorize("[PUSH]", "green")
            status = "accepted"
        elif self._show_rejected:
            tag = self._colorize("[PUSH]", "yellow")
            status = self._colorize("rejected", "red")
        else:
            return None
        when = ""
        if record.moment or record.period:
            when = f" @{record.moment:g}/{record.period:g}"
        return f"{tag} {record.content}{when} {status} ({record.futures} points)"

    def _format_branch(self, record: BranchRecord) -> str:
        tag = self._colorize("[BRANCH]", "cyan")
        return f"{tag} +{record.added} -> {record.branch_count} branches"

    def _format_execute(self, record: ExecuteRecord) -> str:
        tag = self._colorize("[EXEC]", "blue")
        return f"{tag} {record.expression} -> {record.output} ({record.processing_ms:.3f}ms)"

    def flush(self) -> None:
        with self._lock:
            self._stream.flush()


class MemorySink(Sink):
    """Sink that stores trace records in memory.

    Useful for testing and for in-session analysis.

    Args:
        max_records: Maximum number of records to keep (default: 10000).

    Example:
        >>> sink = MemorySink()
        >>> hub.add_sink(sink)
        >>> # ... run flows ...
        >>> branches = sink.get_records("branch")
    """

    def __init__(self, max_records: int = 10000):
        self._max_records = max_records
        self._records: Deque[TraceRecord] = deque(maxlen=max_records)
        self._lock = threading.Lock()

    def write(self, record: TraceRecord) -> None:
        with self._lock:
            self._records.append(record)

    def get_records(self, record_type: Optional[str] = None) -> List[TraceRecord]:
        """Get stored records, optionally filtered by record type."""
        with self._lock:
            records = list(self._records)

        if record_type:
            records = [r for r in records if r.record_type == record_type]

        return records

    def get_counts(self) -> Dict[str, int]:
        """Number of stored records per record type."""
        with self._lock:
            return dict(Counter(r.record_type for r in self._records))

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        return len(self._records)


class NullSink(Sink):
    """Sink that discards all records."""

    def write(self, record: TraceRecord) -> None:
        pass


__all__ = [
    "FileSink",
    "ConsoleSink",
    "MemorySink",
    "NullSink",
]
