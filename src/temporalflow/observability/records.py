"""Trace record data classes for observability.

Record Categories:
- Base: TraceRecord base class
- Flow: push, branch, execute and periodic re-trigger records
- Session: Session start/end records
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Any
import time
import json


# Forward reference for TraceLevel
from temporalflow.observability import TraceLevel


@dataclass
class TraceRecord:
    """Base class for all trace records.

    All trace records have:
    - record_type: String identifying the record type
    - timestamp_ns: When the record was created (monotonic)
    - min_level: Minimum trace level required to emit this record

    Subclasses should set record_type as a class variable.
    """
    record_type: str = field(default="base", init=False)
    timestamp_ns: int = field(default_factory=lambda: time.perf_counter_ns())
    min_level: TraceLevel = field(default=TraceLevel.NORMAL, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert record to a JSON-friendly dictionary."""
        d = asdict(self)
        # Internal use only
        d.pop("min_level", None)
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


# =============================================================================
# Flow Records
# =============================================================================


@dataclass
class PushRecord(TraceRecord):
    """Record of a push into a flow.

    Emitted after every non-empty push, whether it succeeded or not.
    """
    record_type: str = field(default="push", init=False)

    content: str = ""
    accepted: bool = False
    futures: int = 0  # Candidate points, catch-all included
    moment: float = 0.0
    period: float = 0.0

    # VERBOSE only
    pending: str = ""


@dataclass
class BranchRecord(TraceRecord):
    """Record of branches added to a point for ambiguous content."""
    record_type: str = field(default="branch", init=False)

    priority: float = 0.0
    branch_count: int = 0  # Branches after the push
    added: int = 0


@dataclass
class ExecuteRecord(TraceRecord):
    """Record of a pending tree handed to the executor."""
    record_type: str = field(default="execute", init=False)

    expression: str = ""
    context: str = ""
    output: str = ""
    context_changed: bool = False
    processing_ms: float = 0.0


@dataclass
class PeriodicFireRecord(TraceRecord):
    """Record of a periodic child flow being re-triggered."""
    record_type: str = field(default="periodic_fire", init=False)

    period: float = 0.0
    remainder: float = 0.0
    fire_index: int = 0


# =============================================================================
# Session Records
# =============================================================================


@dataclass
class SessionStartRecord(TraceRecord):
    """Record emitted when a flow run starts."""
    record_type: str = field(default="session_start", init=False)
    min_level: TraceLevel = field(default=TraceLevel.MINIMAL, repr=False)

    session_id: str = ""
    flow_name: str = ""
    ticks: int = 0
    dt: float = 0.0

    config: Dict[str, Any] = field(default_factory=dict)
    trace_level: str = ""


@dataclass
class SessionEndRecord(TraceRecord):
    """Record emitted when a flow run ends."""
    record_type: str = field(default="session_end", init=False)
    min_level: TraceLevel = field(default=TraceLevel.MINIMAL, repr=False)

    session_id: str = ""
    duration_sec: float = 0.0

    total_ticks: int = 0
    time_elapsed: float = 0.0
    outputs: List[str] = field(default_factory=list)
    record_counts: Dict[str, int] = field(default_factory=dict)


__all__ = [
    "TraceRecord",
    "PushRecord",
    "BranchRecord",
    "ExecuteRecord",
    "PeriodicFireRecord",
    "SessionStartRecord",
    "SessionEndRecord",
]
