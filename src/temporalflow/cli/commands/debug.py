"""Debug command: trace a demo flow step by step.

The demo flow adds a pushed number to 1, receives an ambiguous push
(which branches the open argument), re-runs an echo periodically and
schedules another echo for later.

Usage:
    temporalflow debug --ticks 4
    temporalflow debug --ticks 6 --dt 0.5 --period 1.0 --debug
"""

from temporalflow.expr import action, any_of, future
from temporalflow.flow import SimpleExecutor, TemporalFlow
from temporalflow.expr.nodes import Group
from temporalflow.observability import ObservabilityHub, TraceLevel
from temporalflow.runner import OutputCollector


def build_demo_flow(executor, period: float, later: float) -> TemporalFlow:
    """Demo flow used by the debug command."""
    flow = TemporalFlow(
        executor=executor,
        pending=action("add", priority=5, source=1, argument=future(int)),
    )
    flow.push(2)
    flow.push(any_of(10, 20))
    flow.push_at(action("echo", argument="tick"), period=period)
    flow.push_at(action("echo", argument="later"), moment=later)
    return flow


def cmd_debug(
    ticks: int = 3,
    dt: float = 1.0,
    period: float = 1.0,
    debug: bool = False,
) -> int:
    """Run the demo flow and print its state after every tick.

    Args:
        ticks: Number of ticks to run.
        dt: Time per tick.
        period: Period of the periodic sub-flow.
        debug: Print every executed action and the trace records.

    Returns:
        Exit code (0 for success, 1 for invalid arguments).
    """
    if ticks < 1 or dt <= 0 or period <= 0:
        print("Error: ticks, dt and period must be positive")
        return 1

    print("=" * 60)
    print("TemporalFlow Debug")
    print("=" * 60)
    print(f"Ticks: {ticks}")
    print(f"dt: {dt:g}")
    print(f"Period: {period:g}")
    print(f"Debug: {debug}")
    print("=" * 60)

    collector = OutputCollector(
        SimpleExecutor(debug_hook=print if debug else None),
        on_output=lambda output: print(f"  output: {output}"),
    )

    hub = ObservabilityHub.get_instance()
    with hub.capture(TraceLevel.NORMAL if debug else hub.level) as sink:
        flow = build_demo_flow(collector, period=period, later=2 * dt)

        print("\n[Initial flow]")
        print(flow.to_debug_string())
        if not debug:
            print("(use --debug for detailed output)")

        context = Group()
        for tick in range(ticks):
            print(f"\n--- Tick {tick} (t={flow.time_elapsed:g}) ---")
            flow.update(context, dt)
            print(flow.to_debug_string())

    if debug:
        print("\n[Trace Records]")
        for record in sink.get_records():
            print(f"  {record.record_type}: {record}")

    print("\n" + "=" * 60)
    print("[Results]")
    print(f"  Ticks: {ticks}")
    print(f"  Time elapsed: {flow.time_elapsed:g}")
    print(f"  Outputs: {len(collector.outputs)}")
    print("=" * 60)
    return 0
