"""Plain-text rendering of states and analysis results.

Every function returns a string and prints nothing; the shell and REPL
decide where the text goes.
"""

from collections.abc import Sequence

from deadlock_lab.resolution import Resolution
from deadlock_lab.safety import DetectionResult
from deadlock_lab.state import Matrix, SystemState

_CELL = 4


def _header(state: SystemState) -> str:
    names = "".join(f"{state.resource_label(j):>{_CELL}}" for j in range(state.num_resources))
    return f"{'':6}{names}"


def _matrix(title: str, state: SystemState, rows: Matrix) -> list[str]:
    lines = [title, _header(state)]
    for i, row in enumerate(rows):
        cells = "".join(f"{v:>{_CELL}}" for v in row)
        lines.append(f"{state.process_label(i):>4}: {cells}")
    return lines


def format_state(state: SystemState) -> str:
    """Render Available, Allocation, Max Need and Need as tables."""
    available = "".join(f"{v:>{_CELL}}" for v in state.available)
    lines = [
        f"Processes: {state.num_processes} | Resources: {state.num_resources}",
        "",
        "Available",
        _header(state),
        f"{'':6}{available}",
        "",
    ]
    lines.extend(_matrix("Allocation", state, state.allocation))
    lines.append("")
    lines.extend(_matrix("Max Need", state, state.max_need))
    lines.append("")
    lines.extend(_matrix("Need (Max - Alloc)", state, state.need))
    return "\n".join(lines)


def format_sequence(sequence: Sequence[int]) -> str:
    """Render a process order as ``P1 → P3 → P4``."""
    return " → ".join(f"P{p}" for p in sequence) if sequence else "(empty)"


def format_result(result: DetectionResult) -> str:
    """Render a detection result as a short report."""
    if not result.is_deadlocked:
        return f"SAFE — no deadlock.\nSafe sequence: {format_sequence(result.safe_sequence)}"
    stuck = ", ".join(f"P{p}" for p in result.deadlocked_processes)
    lines = [
        f"DEADLOCK detected! Deadlocked processes ({len(result.deadlocked_processes)}): {stuck}",
    ]
    if result.safe_sequence:
        lines.append(f"Partial sequence before deadlock: {format_sequence(result.safe_sequence)}")
    return "\n".join(lines)


def format_resolution(resolution: Resolution, before: SystemState) -> str:
    """Describe one termination: victim, released resources, outcome.

    Args:
        resolution: The resolution to describe.
        before: The state the victim was terminated from.

    """
    victim = resolution.victim
    lines = [
        f"Terminated P{victim} (holding {before.total_allocation(victim)} resource units)",
    ]
    released = [
        f"  {before.resource_label(j)}: {held} units"
        for j, held in enumerate(before.allocation[victim])
        if held > 0
    ]
    lines.append("Resources released:" if released else "Resources released: none")
    lines.extend(released)
    if resolution.result.is_deadlocked:
        lines.append("Deadlock still exists. More processes need termination.")
    else:
        lines.append("Deadlock resolved.")
    lines.append(format_result(resolution.result))
    return "\n".join(lines)
