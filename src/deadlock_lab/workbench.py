"""Workbench — the session that drives the analysis engine.

The engine functions are pure: they take a snapshot and return a
result.  An interactive session needs *somewhere* to keep "the state I
am looking at" and "how far the step-by-step walkthrough has got".
That somewhere is the workbench.

It holds three things, all owned by the caller:

    - **state** — the current ``SystemState`` (or None before loading).
    - **step_state** — the walkthrough snapshot, threaded explicitly
      into each ``step_safety`` call.
    - **logger** — an audit trail of every operation.

Replacing the state (loading, editing, resolving, importing) always
resets the walkthrough, because a snapshot from one state means
nothing for another.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from deadlock_lab.avoidance import SimulationResult, simulate_request
from deadlock_lab.graph import ResourceGraph, build_graph, has_cycle
from deadlock_lab.logging import Logger, LogLevel
from deadlock_lab.persistence import dump_state, load_state
from deadlock_lab.resolution import (
    PreconditionError,
    Resolution,
    resolve_deadlock,
    resolve_until_safe,
)
from deadlock_lab.safety import DetectionResult, StepResult, StepState, check_safety, step_safety
from deadlock_lab.scenarios import get_scenario
from deadlock_lab.state import SystemState

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path


class Workbench:
    """Caller-held session state for an interactive analysis."""

    def __init__(self, *, logger: Logger | None = None) -> None:
        """Create an empty workbench.

        Args:
            logger: Audit log to write to (a fresh one if omitted).

        """
        self._logger = logger if logger is not None else Logger()
        self._state: SystemState | None = None
        self._step_state: StepState | None = None
        self._last_step: StepResult | None = None

    @property
    def logger(self) -> Logger:
        """Return the session's audit log."""
        return self._logger

    @property
    def state(self) -> SystemState | None:
        """Return the current state, or None if nothing is loaded."""
        return self._state

    @property
    def step_state(self) -> StepState | None:
        """Return the walkthrough snapshot (None before the first step)."""
        return self._step_state

    @property
    def last_step(self) -> StepResult | None:
        """Return the most recent step result."""
        return self._last_step

    def require_state(self) -> SystemState:
        """Return the current state.

        Raises:
            PreconditionError: If no state has been loaded.

        """
        if self._state is None:
            msg = "No system state loaded (use 'load' or 'new' first)."
            raise PreconditionError(msg)
        return self._state

    # -- building the state ----------------------------------------------

    def set_state(self, state: SystemState, *, reason: str = "state replaced") -> SystemState:
        """Adopt *state* as the current state and reset the walkthrough."""
        self._state = state
        self.reset_steps()
        self._logger.log(
            LogLevel.INFO,
            f"{reason}: {state.num_processes} processes, {state.num_resources} resources",
            source="state",
        )
        return state

    def load_scenario(self, name: str) -> SystemState:
        """Load a built-in sample scenario by name."""
        return self.set_state(get_scenario(name).state, reason=f"loaded scenario '{name}'")

    def new_state(self, num_processes: int, num_resources: int) -> SystemState:
        """Start from an all-zero state of the given shape."""
        return self.set_state(
            SystemState.empty(num_processes, num_resources), reason="new empty state"
        )

    def resize(self, num_processes: int, num_resources: int) -> SystemState:
        """Reshape the current state, keeping overlapping values."""
        state = self.require_state().resized(num_processes, num_resources)
        return self.set_state(state, reason="resized")

    def set_available(self, values: Sequence[int]) -> SystemState:
        """Replace the Available vector."""
        return self.set_state(
            self.require_state().with_available(values), reason="available updated"
        )

    def set_allocation(self, process: int, row: Sequence[int]) -> SystemState:
        """Replace one process's Allocation row."""
        state = self.require_state().with_allocation_row(process, row)
        return self.set_state(state, reason=f"allocation of P{process} updated")

    def set_max_need(self, process: int, row: Sequence[int]) -> SystemState:
        """Replace one process's Max Need row."""
        state = self.require_state().with_max_need_row(process, row)
        return self.set_state(state, reason=f"max need of P{process} updated")

    # -- analysis ----------------------------------------------------------

    def detect(self) -> DetectionResult:
        """Run the batch safety check on the current state."""
        result = check_safety(self.require_state())
        if result.is_deadlocked:
            self._logger.log(
                LogLevel.WARNING,
                f"deadlock: processes {list(result.deadlocked_processes)}",
                source="detect",
            )
        else:
            self._logger.log(
                LogLevel.INFO,
                f"safe: sequence {list(result.safe_sequence)}",
                source="detect",
            )
        return result

    def step(self) -> StepResult:
        """Advance the walkthrough by one decision."""
        result = step_safety(self.require_state(), self._step_state)
        self._step_state = result.step_state
        self._last_step = result
        self._logger.log(LogLevel.DEBUG, result.explanation, source="step")
        return result

    def reset_steps(self) -> None:
        """Forget the walkthrough so the next step starts afresh."""
        self._step_state = None
        self._last_step = None

    def resolve(self, victim: int | None = None) -> Resolution:
        """Terminate one victim and adopt the resulting state."""
        resolution = resolve_deadlock(self.require_state(), victim)
        self._logger.log(
            LogLevel.WARNING,
            f"terminated P{resolution.victim}; "
            f"{'still deadlocked' if resolution.result.is_deadlocked else 'now safe'}",
            source="resolve",
        )
        self.set_state(resolution.state, reason=f"P{resolution.victim} terminated")
        return resolution

    def resolve_all(self) -> list[Resolution]:
        """Terminate victims until safe and adopt the final state."""
        rounds = resolve_until_safe(self.require_state())
        victims = [r.victim for r in rounds]
        self._logger.log(LogLevel.WARNING, f"terminated {victims}", source="resolve")
        self.set_state(rounds[-1].state, reason="deadlock resolved")
        return rounds

    def simulate(self, process: int, resource: int, amount: int) -> SimulationResult:
        """Dry-run a request; the current state is not changed."""
        result = simulate_request(self.require_state(), process, resource, amount)
        self._logger.log(
            LogLevel.INFO,
            f"P{process} requests {amount} x R{resource}: "
            f"{'granted' if result.granted else 'blocked'} ({result.message})",
            source="simulate",
        )
        return result

    def graph(self) -> ResourceGraph:
        """Build the resource allocation graph of the current state."""
        graph = build_graph(self.require_state())
        self._logger.log(
            LogLevel.DEBUG,
            f"{len(graph.edges)} edges, cycle: {has_cycle(graph)}",
            source="graph",
        )
        return graph

    # -- export / import ---------------------------------------------------

    def export(self, path: Path) -> None:
        """Write the current state to a JSON file."""
        dump_state(self.require_state(), path)
        self._logger.log(LogLevel.INFO, f"exported to {path}", source="persist")

    def import_(self, path: Path) -> SystemState:
        """Load a state from a JSON file and adopt it."""
        state = load_state(path)
        self._logger.log(LogLevel.INFO, f"imported from {path}", source="persist")
        return self.set_state(state, reason="imported")
